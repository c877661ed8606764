"""USMT computer association management."""
from __future__ import annotations
import logging

from configmgr_api.core.configmgr import MigrationManager, MigrationStatus
from configmgr_api.core.validators import validate_computer_name

from .base import operation

logger = logging.getLogger(__name__)


class MigrationService:
    def __init__(self, migration: MigrationManager):
        self.migration = migration
    
    @staticmethod
    def _pair(source: str, destination: str):
        return (
            validate_computer_name(source, "sourceComputerName"),
            validate_computer_name(destination, "destinationComputerName"),
        )
    
    def create_association(self, source: str, destination: str) -> None:
        source, destination = self._pair(source, destination)
        with operation(logger, "Create USMT association", source=source, destination=destination):
            self.migration.create_association(source, destination)
    
    def remove_association(self, source: str, destination: str) -> None:
        source, destination = self._pair(source, destination)
        with operation(logger, "Delete USMT association", source=source, destination=destination):
            self.migration.remove_association(source, destination)
    
    def get_migration_status(self, source: str, destination: str) -> MigrationStatus:
        source, destination = self._pair(source, destination)
        with operation(logger, "Get USMT migration status", source=source, destination=destination):
            return self.migration.get_migration_status(source, destination)
