"""ConfigMgr (management plane) client and per-entity managers."""
from .client import ConfigMgrClient
from .devices import DeviceManager
from .collections import CollectionManager
from .affinity import AffinityManager
from .migration import MigrationManager
from .records import (
    AffinityRecord,
    Collection,
    CollectionAction,
    Device,
    DeviceAffinitySource,
    HardwareIdKind,
    MigrationStatus,
    PlaneUser,
)

__all__ = [
    "ConfigMgrClient",
    "DeviceManager",
    "CollectionManager",
    "AffinityManager",
    "MigrationManager",
    "AffinityRecord",
    "Collection",
    "CollectionAction",
    "Device",
    "DeviceAffinitySource",
    "HardwareIdKind",
    "MigrationStatus",
    "PlaneUser",
]
