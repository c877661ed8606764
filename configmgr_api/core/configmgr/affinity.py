"""ConfigMgr user device affinity (SMS_UserMachineRelationship) operations."""
from __future__ import annotations
import logging
from typing import List

from ..exceptions import InvalidArgumentError, NotFoundError, OperationFailedError
from ..validators import bare_user_name
from .client import ConfigMgrClient, eq, offloaded
from .devices import DeviceManager
from .records import AffinityRecord, DeviceAffinitySource, PlaneUser

logger = logging.getLogger(__name__)

RELATIONSHIP_CLASS = "SMS_UserMachineRelationship"
PRIMARY_USER_TYPE = 1


class AffinityManager:
    """Service for reading and changing the primary users of a device."""
    
    def __init__(self, client: ConfigMgrClient, devices: DeviceManager = None):
        self.client = client
        self.devices = devices or DeviceManager(client)
    
    @offloaded
    def get_user(self, user_name: str) -> PlaneUser:
        rows = self.client.query("SMS_R_User", filter=eq("UniqueUserName", user_name),
                                 select=["ResourceID", "UniqueUserName"])
        if not rows:
            raise NotFoundError(f"Unable to find user with name {user_name}")
        return PlaneUser.from_wmi(rows[0])
    
    @offloaded
    def get_affinity_records(self, name: str) -> List[AffinityRecord]:
        rows = self.client.query(RELATIONSHIP_CLASS, filter=eq("ResourceName", name))
        return [AffinityRecord.from_wmi(row) for row in rows]
    
    def get_primary_users(self, name: str) -> List[str]:
        """Unique user names with Administrator-sourced affinity to the device."""
        return [
            record.unique_user_name
            for record in self.get_affinity_records(name)
            if DeviceAffinitySource.ADMINISTRATOR in record.sources
        ]
    
    @offloaded
    def set_primary_user(
        self, name: str, user_name: str, source: DeviceAffinitySource = DeviceAffinitySource.ADMINISTRATOR
    ) -> None:
        """Create a primary-user relationship.
        
        Raises:
            NotFoundError: If the device or user does not exist
            OperationFailedError: If CreateRelationship returns non-zero
        """
        device = self.devices.get_device(name)
        user = self.get_user(user_name)
        logger.info("Setting primary user %s for %s", user.unique_user_name, device.name)
        
        out = self.client.invoke_method(RELATIONSHIP_CLASS, "CreateRelationship", {
            "MachineResourceID": device.resource_id,
            "UserAccountName": user.unique_user_name,
            "SourceId": int(source),
            "TypeId": PRIMARY_USER_TYPE,
        })
        if out.get("ReturnValue", 1) != 0:
            raise OperationFailedError(
                f"Failed to create user device affinity for {device.name} with user {user.unique_user_name}"
            )
    
    @offloaded
    def delete_primary_user(self, name: str, user_name: str) -> bool:
        """Delete the first affinity whose account name ends with the bare user name.
        
        ``DOMAIN\\user`` is reduced to ``user`` and compared case-insensitively.
        
        Returns:
            True if a record was deleted, False if none matched
            
        Raises:
            InvalidArgumentError: If nothing is left after the domain prefix
        """
        wanted = bare_user_name(user_name).lower()
        if not wanted:
            raise InvalidArgumentError(f"User name {user_name!r} has no account part")
        device = self.devices.get_device(name)
        
        rows = self.client.query(RELATIONSHIP_CLASS, filter=eq("ResourceID", device.resource_id))
        for record in (AffinityRecord.from_wmi(row) for row in rows):
            if not record.unique_user_name.lower().endswith(wanted):
                continue
            if record.relationship_resource_id is None:
                raise OperationFailedError(f"Relationship for {record.unique_user_name} has no key")
            self.client.delete_instance(RELATIONSHIP_CLASS, record.relationship_resource_id)
            logger.info("Deleted primary user %s for %s", record.unique_user_name, device.name)
            return True
        
        logger.info("No primary user matching %s on %s", user_name, device.name)
        return False
