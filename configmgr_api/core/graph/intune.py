"""Intune managed device operations."""
from __future__ import annotations
import logging
from typing import Optional

from ..exceptions import GraphAPIError, NotFoundError, OperationFailedError
from .client import GraphClient, odata_string, values

logger = logging.getLogger(__name__)

CO_MANAGEMENT_AGENT = "configurationManagerClientMdm"
CO_MANAGEMENT_ENROLLMENT = "windowsCoManagement"


class IntuneManager:
    """Service for Intune managed devices (primary user, co-management, category)."""
    
    def __init__(self, client: GraphClient):
        self.client = client
    
    def get_intune_device_id_by_name(self, name: str) -> str:
        """Resolve a managed device id by device name.
        
        Raises:
            NotFoundError: If Intune has no device with this name
        """
        items = values(self.client.get(
            f"deviceManagement/managedDevices?$filter=(deviceName eq {odata_string(name)})&$select=id"
        ))
        for item in items:
            if item.get("id"):
                return item["id"]
        raise NotFoundError(f"Unable to find Intune device {name}")
    
    def get_primary_user(self, device_id: str) -> Optional[str]:
        """UPN of the device's primary user, or None when it has none."""
        users = values(self.client.get(f"deviceManagement/managedDevices/{device_id}/users"))
        for user in users:
            if user.get("userPrincipalName"):
                return user["userPrincipalName"]
        return None
    
    def set_primary_user(self, device_id: str, user_id: str) -> bool:
        resp = self.client.post(
            f"deviceManagement/managedDevices('{device_id}')/users/$ref",
            json=self.client.reference(f"users/{user_id}"),
        )
        success = not resp.content
        logger.info("Set primary user %s on managed device %s: %s", user_id, device_id, success)
        return success
    
    def is_device_co_managed(self, device_id: str) -> bool:
        """Co-managed when either the management agent or the enrollment type says so."""
        resp = self.client.get(
            f"deviceManagement/managedDevices/{device_id}?$select=id,managementAgent,deviceEnrollmentType"
        )
        device = resp.json() if resp.content else {}
        return (
            device.get("managementAgent") == CO_MANAGEMENT_AGENT
            or device.get("deviceEnrollmentType") == CO_MANAGEMENT_ENROLLMENT
        )
    
    def set_device_category(self, device_id: str, category_name: str) -> bool:
        """Assign a device category by display name (case-insensitive).
        
        Returns:
            True on success, False if the managed device no longer exists (404)
            
        Raises:
            OperationFailedError: If no category has this name
        """
        categories = values(self.client.get("deviceManagement/deviceCategories?$select=id,displayName"))
        category = next(
            (item for item in categories if (item.get("displayName") or "").lower() == category_name.lower()),
            None,
        )
        if category is None:
            raise OperationFailedError(f"Device category '{category_name}' not found in Intune")
        
        try:
            resp = self.client.put(
                f"deviceManagement/managedDevices/{device_id}/deviceCategory/$ref",
                json=self.client.reference(f"deviceManagement/deviceCategories/{category['id']}"),
            )
        except GraphAPIError as exc:
            if exc.status_code == 404:
                logger.warning("Managed device %s not found while setting category", device_id)
                return False
            raise
        return not resp.content
