"""Device lifecycle: import, delete, existence, details and PXE flag."""
from __future__ import annotations
import logging

from configmgr_api.core.configmgr import Device, DeviceManager, HardwareIdKind
from configmgr_api.core.exceptions import NotFoundError
from configmgr_api.core.validators import normalize_mac_address, validate_computer_name, validate_guid

from .base import operation

logger = logging.getLogger(__name__)


class ComputerService:
    def __init__(self, devices: DeviceManager):
        self.devices = devices
    
    def add_computer_by_bios_guid(self, computer_name: str, bios_guid: str) -> int:
        computer_name = validate_computer_name(computer_name)
        bios_guid = validate_guid(bios_guid)
        with operation(logger, "Add computer by BIOS GUID", computer=computer_name, guid=bios_guid):
            return self.devices.add_device(computer_name, bios_guid, HardwareIdKind.SMBIOS_GUID)
    
    def add_computer_by_mac_address(self, computer_name: str, mac_address: str) -> int:
        computer_name = validate_computer_name(computer_name)
        mac_address = normalize_mac_address(mac_address)
        with operation(logger, "Add computer by MAC address", computer=computer_name, mac=mac_address):
            return self.devices.add_device(computer_name, mac_address, HardwareIdKind.MAC)
    
    def delete_computer(self, computer_name: str) -> int:
        """Delete all records for a name.
        
        Raises:
            NotFoundError: If nothing was deleted
        """
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Delete computer", computer=computer_name):
            deleted = self.devices.delete_device(computer_name)
            if deleted == 0:
                raise NotFoundError(f"Computer {computer_name} not found")
            return deleted
    
    def delete_computer_by_guid(self, bios_guid: str) -> int:
        bios_guid = validate_guid(bios_guid)
        with operation(logger, "Delete computer by BIOS GUID", guid=bios_guid):
            deleted = self.devices.delete_device_by_guid(bios_guid)
            if deleted == 0:
                raise NotFoundError(f"Computer with BIOS GUID {bios_guid} not found")
            return deleted
    
    def computer_exists(self, computer_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Check computer exists", computer=computer_name):
            return self.devices.device_exists(computer_name)
    
    def get_computer(self, computer_name: str) -> Device:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Get computer", computer=computer_name):
            return self.devices.get_device(computer_name)
    
    def get_resource_id(self, computer_name: str) -> int:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Get resource id", computer=computer_name):
            return self.devices.get_resource_id(computer_name)
    
    def get_sms_guid(self, computer_name: str) -> str:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Get SMS GUID", computer=computer_name):
            return self.devices.get_sms_guid(computer_name)
    
    def clear_pxe_flag(self, computer_name: str) -> None:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Clear PXE flag", computer=computer_name):
            self.devices.clear_pxe_flag(computer_name)
