"""Device collection creation, membership and refresh."""
from __future__ import annotations
import logging
from typing import List

from configmgr_api.core.configmgr import CollectionManager, DeviceManager
from configmgr_api.core.validators import require, validate_collection_id, validate_computer_name

from .base import operation

logger = logging.getLogger(__name__)


class CollectionService:
    def __init__(self, collections: CollectionManager, devices: DeviceManager):
        self.collections = collections
        self.devices = devices
    
    def create_device_collection(self, name: str, description: str, limiting_collection_name: str) -> str:
        name = require(name, "collectionName")
        limiting_collection_name = require(limiting_collection_name, "limitingCollectionName")
        with operation(logger, "Create device collection", collection=name, limiting=limiting_collection_name):
            return self.collections.create_collection(name, description or "", limiting_collection_name)
    
    def get_collection_id(self, name: str) -> str:
        name = require(name, "collectionName")
        with operation(logger, "Resolve collection", collection=name):
            return self.collections.get_collection_id(name)
    
    def get_collection_members(self, collection_id: str) -> List[str]:
        collection_id = validate_collection_id(collection_id)
        with operation(logger, "List collection members", collection_id=collection_id):
            # Raises NotFoundError for an unknown id instead of returning an empty list
            self.collections.get_collection(collection_id)
            return self.collections.get_members(collection_id)
    
    def is_member(self, collection_id: str, computer_name: str) -> bool:
        collection_id = validate_collection_id(collection_id)
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Check collection membership", collection_id=collection_id, computer=computer_name):
            device = self.devices.get_device(computer_name)
            return self.collections.is_member(collection_id, device.resource_id)
    
    def add_member(self, collection_id: str, computer_name: str) -> bool:
        collection_id = validate_collection_id(collection_id)
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Add collection member", collection_id=collection_id, computer=computer_name):
            return self.collections.add_member(collection_id, computer_name)
    
    def remove_member(self, collection_id: str, computer_name: str) -> bool:
        collection_id = validate_collection_id(collection_id)
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Remove collection member", collection_id=collection_id, computer=computer_name):
            return self.collections.remove_member(collection_id, computer_name)
    
    def refresh_membership(self, collection_id: str) -> None:
        collection_id = validate_collection_id(collection_id)
        with operation(logger, "Refresh collection membership", collection_id=collection_id):
            self.collections.refresh_membership(collection_id)
