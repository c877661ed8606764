"""Typed records for ConfigMgr WMI instances.

Every read of a plane property name happens in a from_wmi() mapper here;
managers and services only see these records.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class HardwareIdKind(str, Enum):
    MAC = "MACAddress"
    SMBIOS_GUID = "SMBIOSGUID"


class CollectionAction(str, Enum):
    ADD_MEMBERSHIP_RULE = "AddMembershipRule"
    DELETE_MEMBERSHIP_RULE = "DeleteMembershipRule"


class DeviceAffinitySource(IntEnum):
    SOFTWARE_CATALOG = 1
    ADMINISTRATOR = 2
    USER = 3
    USAGE_AGENT = 4
    DEVICE_MANAGEMENT = 5
    OSD = 6
    FAST_INSTALL = 7
    EXCHANGE_CONNECTOR = 8


class MigrationStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    UNKNOWN = "UNKNOWN"
    
    @classmethod
    def from_code(cls, code: Any) -> "MigrationStatus":
        return {0: cls.NOT_STARTED, 1: cls.IN_PROGRESS, 2: cls.COMPLETED}.get(_int(code), cls.UNKNOWN)


@dataclass(frozen=True)
class Device:
    resource_id: int
    name: str
    sms_unique_identifier: str = ""
    
    @classmethod
    def from_wmi(cls, row: Dict[str, Any]) -> "Device":
        return cls(
            resource_id=_int(row.get("ResourceID")),
            name=row.get("Name") or "",
            sms_unique_identifier=row.get("SMSUniqueIdentifier") or "",
        )


@dataclass(frozen=True)
class PlaneUser:
    resource_id: int
    unique_user_name: str
    
    @classmethod
    def from_wmi(cls, row: Dict[str, Any]) -> "PlaneUser":
        return cls(resource_id=_int(row.get("ResourceID")), unique_user_name=row.get("UniqueUserName") or "")


@dataclass(frozen=True)
class Collection:
    collection_id: str
    name: str
    comment: str = ""
    limit_to_collection_id: str = ""
    collection_type: int = 2
    
    @classmethod
    def from_wmi(cls, row: Dict[str, Any]) -> "Collection":
        return cls(
            collection_id=row.get("CollectionID") or "",
            name=row.get("Name") or "",
            comment=row.get("Comment") or "",
            limit_to_collection_id=row.get("LimitToCollectionID") or "",
            collection_type=_int(row.get("CollectionType"), 2),
        )


@dataclass(frozen=True)
class AffinityRecord:
    resource_id: int
    resource_name: str
    unique_user_name: str
    sources: List[int] = field(default_factory=list)
    types: List[int] = field(default_factory=list)
    relationship_resource_id: Optional[int] = None
    
    @classmethod
    def from_wmi(cls, row: Dict[str, Any]) -> "AffinityRecord":
        return cls(
            resource_id=_int(row.get("ResourceID")),
            resource_name=row.get("ResourceName") or "",
            unique_user_name=row.get("UniqueUserName") or "",
            sources=_int_list(row.get("Sources")),
            types=_int_list(row.get("Types")),
            relationship_resource_id=(
                _int(row["RelationshipResourceID"]) if row.get("RelationshipResourceID") is not None else None
            ),
        )


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _int_list(value: Any) -> List[int]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_int(item) for item in value]
    return [_int(value)]
