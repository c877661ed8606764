"""ConfigMgr device collection operations."""
from __future__ import annotations
import logging
from typing import List

from ..exceptions import NotFoundError, OperationFailedError
from .client import ConfigMgrClient, all_of, eq, offloaded
from .devices import DeviceManager
from .records import Collection, CollectionAction

logger = logging.getLogger(__name__)

COLLECTION_CLASS = "SMS_Collection"
MEMBERSHIP_CLASS = "SMS_FullCollectionMembership"
DEVICE_COLLECTION_TYPE = 2


class CollectionManager:
    """Service for managing ConfigMgr device collections and direct membership rules."""
    
    def __init__(self, client: ConfigMgrClient, devices: DeviceManager = None):
        self.client = client
        self.devices = devices or DeviceManager(client)
    
    @offloaded
    def create_collection(self, name: str, description: str, limiting_name: str) -> str:
        """Create a device collection limited to an existing collection.
        
        Args:
            name: New collection name
            description: Free-text comment
            limiting_name: Name of the limiting (parent) collection
            
        Returns:
            CollectionID assigned by the plane
            
        Raises:
            NotFoundError: If the limiting collection does not exist
        """
        limiting_id = self.get_collection_id(limiting_name)
        logger.info("Creating device collection %s limited to %s", name, limiting_id)
        
        created = self.client.create_instance(COLLECTION_CLASS, {
            "Name": name,
            "Comment": description or "",
            "CollectionType": DEVICE_COLLECTION_TYPE,
            "LimitToCollectionID": limiting_id,
        })
        collection_id = Collection.from_wmi(created).collection_id
        if not collection_id:
            raise OperationFailedError(f"Plane did not return a CollectionID for {name}")
        
        logger.info("Created device collection %s with id %s", name, collection_id)
        return collection_id
    
    @offloaded
    def get_collection_id(self, name: str) -> str:
        """Resolve a collection id by exact name.
        
        Raises:
            NotFoundError: If no collection has this name
        """
        rows = self.client.query(COLLECTION_CLASS, filter=eq("Name", name), select=["CollectionID", "Name"])
        if not rows:
            raise NotFoundError(f"Unable to find a collection with name {name}")
        return Collection.from_wmi(rows[0]).collection_id
    
    @offloaded
    def get_collection(self, collection_id: str) -> Collection:
        rows = self.client.query(COLLECTION_CLASS, filter=eq("CollectionID", collection_id))
        if not rows:
            raise NotFoundError(f"Unable to find collection with id {collection_id}")
        return Collection.from_wmi(rows[0])
    
    @offloaded
    def get_members(self, collection_id: str) -> List[str]:
        """Device names in the collection's evaluated membership."""
        rows = self.client.query(MEMBERSHIP_CLASS, filter=eq("CollectionID", collection_id), select=["Name"])
        return [row.get("Name") or "" for row in rows]
    
    @offloaded
    def is_member(self, collection_id: str, resource_id: int) -> bool:
        rows = self.client.query(
            MEMBERSHIP_CLASS,
            filter=all_of(eq("CollectionID", collection_id), eq("ResourceID", int(resource_id))),
            select=["ResourceID"],
        )
        return any(int(row.get("ResourceID", -1)) == int(resource_id) for row in rows)
    
    @offloaded
    def add_or_remove_member(self, collection_id: str, device_name: str, action: CollectionAction) -> bool:
        """Add or remove a direct membership rule for one device.
        
        Idempotent: adding a member or removing a non-member does nothing.
        
        Returns:
            True if a rule was submitted, False if the state already held
            
        Raises:
            NotFoundError: If the collection or device does not exist
            OperationFailedError: If the plane rejects the rule change
        """
        collection = self.get_collection(collection_id)
        device = self.devices.get_device(device_name)
        present = self.is_member(collection.collection_id, device.resource_id)
        
        if action is CollectionAction.ADD_MEMBERSHIP_RULE and present:
            logger.info("%s is already a member of %s", device.name, collection.collection_id)
            return False
        if action is CollectionAction.DELETE_MEMBERSHIP_RULE and not present:
            logger.info("%s is not a member of %s", device.name, collection.collection_id)
            return False
        
        rule = {
            "@odata.type": "#AdminService.SMS_CollectionRuleDirect",
            "ResourceClassName": "SMS_R_System",
            "ResourceID": device.resource_id,
            "RuleName": device.name,
        }
        out = self.client.invoke_instance_method(
            COLLECTION_CLASS, collection.collection_id, action.value, {"collectionRule": rule}
        )
        if out.get("ReturnValue", 0) != 0:
            raise OperationFailedError(
                f"Failed to {action.value} for {device.name} in collection {collection.name}"
            )
        logger.info("%s applied for %s in %s", action.value, device.name, collection.collection_id)
        return True
    
    def add_member(self, collection_id: str, device_name: str) -> bool:
        return self.add_or_remove_member(collection_id, device_name, CollectionAction.ADD_MEMBERSHIP_RULE)
    
    def remove_member(self, collection_id: str, device_name: str) -> bool:
        return self.add_or_remove_member(collection_id, device_name, CollectionAction.DELETE_MEMBERSHIP_RULE)
    
    @offloaded
    def refresh_membership(self, collection_id: str) -> None:
        """Ask the plane to re-evaluate membership rules.
        
        Success means the request was accepted, not that membership changed.
        """
        self.client.invoke_instance_method(COLLECTION_CLASS, collection_id, "RequestRefresh")
        logger.info("Requested membership refresh for collection %s", collection_id)
