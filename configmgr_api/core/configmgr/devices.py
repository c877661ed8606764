"""ConfigMgr device (SMS_R_System) operations."""
from __future__ import annotations
import logging

from ..exceptions import AlreadyExistsError, ConfigMgrAPIError, InvalidArgumentError, NotFoundError, OperationFailedError
from .client import ConfigMgrClient, NOT_OBSOLETE, all_of, eq, is_duplicate_error, offloaded
from .records import Device, HardwareIdKind

logger = logging.getLogger(__name__)

DEVICE_CLASS = "SMS_R_System"
DEVICE_FIELDS = ["ResourceID", "Name", "SMSUniqueIdentifier"]


class DeviceManager:
    """Service for importing, resolving and deleting ConfigMgr devices."""
    
    def __init__(self, client: ConfigMgrClient):
        """Initialize device manager.
        
        Args:
            client: ConfigMgr AdminService client
        """
        self.client = client
    
    @offloaded
    def add_device(self, name: str, hardware_id: str, kind: HardwareIdKind) -> int:
        """Import a device via SMS_Site.ImportMachineEntry.
        
        Args:
            name: NetBIOS name of the device
            hardware_id: MAC address or SMBIOS GUID
            kind: Which hardware identifier is supplied
            
        Returns:
            Resource id assigned by the plane
            
        Raises:
            AlreadyExistsError: If the plane rejects a duplicate import
            OperationFailedError: If the import returns no resource id
        """
        if not hardware_id:
            raise InvalidArgumentError("MAC address or BIOS GUID must have a value")
        
        if kind is HardwareIdKind.MAC:
            hardware_id = hardware_id.replace("-", ":")
        
        params = {
            "NetbiosName": name,
            kind.value: hardware_id,
            "OverwriteExistingRecord": False,
        }
        logger.info("Importing device %s by %s", name, kind.name)
        try:
            out = self.client.invoke_method("SMS_Site", "ImportMachineEntry", params)
        except ConfigMgrAPIError as exc:
            if is_duplicate_error(exc):
                raise AlreadyExistsError(f"A computer named {name} or with {kind.name} {hardware_id} already exists") from exc
            raise
        
        if out.get("MachineExists"):
            raise AlreadyExistsError(f"A computer named {name} or with {kind.name} {hardware_id} already exists")
        
        resource_id = out.get("ResourceID")
        if not resource_id:
            raise OperationFailedError(f"ImportMachineEntry returned no resource id for {name}")
        
        logger.info("Imported device %s with resource id %s", name, resource_id)
        return int(resource_id)
    
    @offloaded
    def delete_device(self, name: str) -> int:
        """Delete every record with this name; returns how many were deleted."""
        return self._delete_matching(eq("Name", name), name)
    
    @offloaded
    def delete_device_by_guid(self, guid: str) -> int:
        """Delete every record with this SMBIOS GUID; returns how many were deleted."""
        return self._delete_matching(eq("SMBIOSGUID", guid), guid)
    
    def _delete_matching(self, filter: str, identifier: str) -> int:
        # Duplicate records for one device are possible; remove all of them
        rows = self.client.query(DEVICE_CLASS, filter=filter, select=["ResourceID"])
        deleted = 0
        for row in rows:
            self.client.delete_instance(DEVICE_CLASS, int(row["ResourceID"]))
            deleted += 1
        logger.info("Deleted %d device record(s) matching %s", deleted, identifier)
        return deleted
    
    @offloaded
    def get_device(self, name: str) -> Device:
        """Resolve a non-obsolete device by name.
        
        Raises:
            NotFoundError: If no such device exists
        """
        rows = self.client.query(DEVICE_CLASS, filter=all_of(eq("Name", name), NOT_OBSOLETE), select=DEVICE_FIELDS)
        if not rows:
            raise NotFoundError(f"Unable to find computer with name {name}")
        return Device.from_wmi(rows[0])
    
    @offloaded
    def get_device_by_guid(self, guid: str) -> Device:
        rows = self.client.query(DEVICE_CLASS, filter=eq("SMBIOSGUID", guid), select=DEVICE_FIELDS)
        if not rows:
            raise NotFoundError(f"Unable to find computer with SMBIOS GUID {guid}")
        return Device.from_wmi(rows[0])
    
    @offloaded
    def get_device_by_resource_id(self, resource_id: int) -> Device:
        """Fetch a device by its plane-assigned key.
        
        Raises:
            NotFoundError: If no device has this resource id
        """
        return Device.from_wmi(self.client.get_instance(DEVICE_CLASS, int(resource_id)))
    
    def get_resource_id(self, name: str) -> int:
        return self.get_device(name).resource_id
    
    def get_sms_guid(self, name: str) -> str:
        return self.get_device(name).sms_unique_identifier
    
    # Existence checks: only "not found" means False, plane failures propagate
    def device_exists(self, name: str) -> bool:
        return self._exists(self.get_device, name)
    
    def device_exists_by_guid(self, guid: str) -> bool:
        return self._exists(self.get_device_by_guid, guid)
    
    def device_exists_by_resource_id(self, resource_id: int) -> bool:
        return self._exists(self.get_device_by_resource_id, resource_id)
    
    @staticmethod
    def _exists(lookup, key) -> bool:
        try:
            lookup(key)
        except NotFoundError:
            return False
        return True
    
    @offloaded
    def clear_pxe_flag(self, name: str) -> None:
        """Clear the last PXE advertisement so the device can PXE boot again.
        
        Raises:
            NotFoundError: If the device does not exist
            OperationFailedError: If the plane returns a non-zero StatusCode
        """
        device = self.get_device(name)
        logger.info("Clearing last PXE advertisement for %s", name)
        out = self.client.invoke_method(
            "SMS_Collection", "ClearLastNBSAdvForMachines", {"ResourceIDs": [device.resource_id]}
        )
        if out.get("StatusCode", 1) != 0:
            raise OperationFailedError(f"Failed to clear last PXE advertisement for {name}")
