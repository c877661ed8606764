"""ConfigMgr state migration (USMT) association operations."""
from __future__ import annotations
import logging

from ..exceptions import NotFoundError, OperationFailedError
from .client import ConfigMgrClient, all_of, eq, offloaded
from .devices import DeviceManager
from .records import MigrationStatus

logger = logging.getLogger(__name__)

MIGRATION_CLASS = "SMS_StateMigration"


class MigrationManager:
    """Service for computer association (source -> restore) records."""
    
    def __init__(self, client: ConfigMgrClient, devices: DeviceManager = None):
        self.client = client
        self.devices = devices or DeviceManager(client)
    
    def create_association(self, source_name: str, destination_name: str) -> None:
        self._change_association("AddAssociation", source_name, destination_name)
    
    def remove_association(self, source_name: str, destination_name: str) -> None:
        self._change_association("DeleteAssociation", source_name, destination_name)
    
    @offloaded
    def _change_association(self, method: str, source_name: str, destination_name: str) -> None:
        source_id = self.devices.get_resource_id(source_name)
        destination_id = self.devices.get_resource_id(destination_name)
        logger.info("%s %s (%s) -> %s (%s)", method, source_name, source_id, destination_name, destination_id)
        
        out = self.client.invoke_method(MIGRATION_CLASS, method, {
            "SourceClientResourceID": source_id,
            "RestoreClientResourceID": destination_id,
        })
        return_value = out.get("ReturnValue", 1)
        if return_value != 0:
            raise OperationFailedError(f"{method} returned error code {return_value}")
    
    @offloaded
    def get_migration_status(self, source_name: str, destination_name: str) -> MigrationStatus:
        """Status of the association between two devices.
        
        Raises:
            NotFoundError: If no association exists for the pair
        """
        rows = self.client.query(
            MIGRATION_CLASS,
            filter=all_of(eq("SourceName", source_name), eq("RestoreName", destination_name)),
            select=["MigrationStatus"],
        )
        if not rows:
            raise NotFoundError(f"No migration association from {source_name} to {destination_name}")
        return MigrationStatus.from_code(rows[0].get("MigrationStatus"))
