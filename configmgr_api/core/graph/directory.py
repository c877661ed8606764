"""Entra ID user, device and group operations."""
from __future__ import annotations
import logging

from ..exceptions import GraphAPIError, NotFoundError
from .client import GraphClient, odata_string, values

logger = logging.getLogger(__name__)


class DirectoryManager:
    """Service for Entra ID lookups and group membership."""
    
    def __init__(self, client: GraphClient):
        """Initialize directory manager.
        
        Args:
            client: Authenticated Graph client
        """
        self.client = client
    
    # ─────────────────────────────────────────────────────────────────────────
    # Lookups (first match; NotFoundError when empty)
    # ─────────────────────────────────────────────────────────────────────────
    def get_user_id_by_upn(self, upn: str) -> str:
        path = f"users?$filter=(userPrincipalName eq {odata_string(upn)})&$select=id"
        return self._first_id(path, f"user with UPN {upn}")
    
    def get_user_id_by_sam_account_name(self, sam_account_name: str) -> str:
        # onPremisesSamAccountName is an advanced query property
        path = f"users?$filter=onPremisesSamAccountName eq {odata_string(sam_account_name)}&$count=true&$select=id"
        return self._first_id(path, f"user with sAMAccountName {sam_account_name}",
                              headers={"ConsistencyLevel": "eventual"})
    
    def get_entra_device_id_by_name(self, name: str) -> str:
        return self._first_id(f"devices?$filter=displayName eq {odata_string(name)}&$select=id", f"device {name}")
    
    def get_group_id_by_name(self, group_name: str) -> str:
        return self._first_id(f"groups?$filter=displayName eq {odata_string(group_name)}&$select=id",
                              f"group {group_name}")
    
    def _first_id(self, path: str, what: str, headers=None) -> str:
        items = values(self.client.get(path, headers=headers))
        for item in items:
            if item.get("id"):
                return item["id"]
        raise NotFoundError(f"Unable to find {what}")
    
    # ─────────────────────────────────────────────────────────────────────────
    # Group membership
    # ─────────────────────────────────────────────────────────────────────────
    def is_member_of_group(self, object_id: str, group_id: str) -> bool:
        """Check membership client-side against the group's member list."""
        path = f"groups/{group_id}/members?$select=id"
        while path:
            resp = self.client.get(path)
            if any(member.get("id") == object_id for member in values(resp)):
                return True
            path = _next_page(resp, self.client.graph_url)
        return False
    
    def add_member_to_group(self, object_id: str, group_id: str) -> bool:
        """Add a user or device by directory object id. Empty response body means success."""
        resp = self.client.post(f"groups/{group_id}/members/$ref",
                                json=self.client.reference(f"directoryObjects/{object_id}"))
        success = not resp.content
        logger.info("Added %s to group %s: %s", object_id, group_id, success)
        return success
    
    def remove_member_from_group(self, object_id: str, group_id: str) -> bool:
        """Remove a member; returns False when Graph reports it already absent (404)."""
        try:
            resp = self.client.delete(f"groups/{group_id}/members/{object_id}/$ref")
        except GraphAPIError as exc:
            if exc.status_code == 404:
                logger.info("%s not a member of group %s (404)", object_id, group_id)
                return False
            raise
        return not resp.content
    
    is_device_member_of_group = is_member_of_group
    add_device_to_group = add_member_to_group
    remove_device_from_group = remove_member_from_group


def _next_page(resp, graph_url: str):
    if not resp.content:
        return None
    link = (resp.json() or {}).get("@odata.nextLink")
    if link and link.startswith(graph_url):
        return link[len(graph_url):]
    return None
