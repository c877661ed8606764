import logging
from unittest.mock import MagicMock

import pytest

from conftest import captured_records
from configmgr_api.core.configmgr import DeviceAffinitySource, HardwareIdKind
from configmgr_api.core.exceptions import (
    ConfigMgrAPIError,
    InvalidArgumentError,
    NotFoundError,
)
from configmgr_api.services import (
    CollectionService,
    ComputerService,
    DirectoryService,
    MigrationService,
    UserService,
)
from configmgr_api.services.base import operation

logger = logging.getLogger("configmgr_api.services.test")


@pytest.fixture(autouse=True)
def propagate_logs(monkeypatch):
    monkeypatch.setattr(logging.getLogger("configmgr_api"), "propagate", True)


# ─────────────────────────────────────────────────────────────────────────────
# operation()
# ─────────────────────────────────────────────────────────────────────────────
def test_operation_logs_context(caplog):
    with caplog.at_level(logging.INFO, logger="configmgr_api"):
        with operation(logger, "Add computer", computer="PC01"):
            pass
    assert "Add computer | computer=PC01" in caplog.text


def test_operation_expected_failure_logs_warning(caplog):
    with caplog.at_level(logging.INFO, logger="configmgr_api"):
        with pytest.raises(NotFoundError):
            with operation(logger, "Get computer", computer="PC01"):
                raise NotFoundError("gone")
    assert [r.levelno for r in captured_records(caplog)] == [logging.INFO, logging.WARNING]


def test_operation_plane_failure_logs_error(caplog):
    with caplog.at_level(logging.INFO, logger="configmgr_api"):
        with pytest.raises(ConfigMgrAPIError):
            with operation(logger, "Get computer", computer="PC01"):
                raise ConfigMgrAPIError(500, "boom", "/x")
    assert caplog.records[-1].levelno == logging.ERROR


# ─────────────────────────────────────────────────────────────────────────────
# Computer
# ─────────────────────────────────────────────────────────────────────────────
def test_add_by_mac_normalizes_before_import():
    devices = MagicMock()
    ComputerService(devices).add_computer_by_mac_address(" PC01 ", "00-11-22-aa-bb-cc")
    devices.add_device.assert_called_once_with("PC01", "00:11:22:AA:BB:CC", HardwareIdKind.MAC)


def test_add_by_guid_rejects_bad_guid_without_plane_call():
    devices = MagicMock()
    with pytest.raises(InvalidArgumentError):
        ComputerService(devices).add_computer_by_bios_guid("PC01", "1234")
    devices.add_device.assert_not_called()


def test_delete_nothing_is_not_found():
    devices = MagicMock()
    devices.delete_device.return_value = 0
    with pytest.raises(NotFoundError):
        ComputerService(devices).delete_computer("PC01")


def test_delete_returns_count():
    devices = MagicMock()
    devices.delete_device_by_guid.return_value = 2
    assert ComputerService(devices).delete_computer_by_guid("4C4C4544-0042-3510-8052-B4C04F4D4E31") == 2


# ─────────────────────────────────────────────────────────────────────────────
# Collection / user / migration
# ─────────────────────────────────────────────────────────────────────────────
def test_collection_members_of_unknown_collection():
    collections = MagicMock()
    collections.get_collection.side_effect = NotFoundError("no such collection")
    with pytest.raises(NotFoundError):
        CollectionService(collections, MagicMock()).get_collection_members("PS100001")
    collections.get_members.assert_not_called()


def test_create_collection_requires_limiting_collection():
    with pytest.raises(InvalidArgumentError, match="limitingCollectionName"):
        CollectionService(MagicMock(), MagicMock()).create_device_collection("Pilot", "", "")


@pytest.mark.parametrize("user_name,domain,expected", [
    ("jdoe", "CONTOSO", "CONTOSO\\jdoe"),
    ("FABRIKAM\\jdoe", "CONTOSO", "FABRIKAM\\jdoe"),
    ("jdoe", "", "jdoe"),
])
def test_set_primary_user_qualifies_account(user_name, domain, expected):
    affinity = MagicMock()
    UserService(affinity, domain).set_primary_user("PC01", user_name)
    affinity.set_primary_user.assert_called_once_with("PC01", expected, DeviceAffinitySource.ADMINISTRATOR)


@pytest.mark.parametrize("user_name", ["CONTOSO\\", "CONTOSO\\   "])
def test_delete_primary_user_requires_account_part(user_name):
    affinity = MagicMock()
    with pytest.raises(InvalidArgumentError, match="userName"):
        UserService(affinity, "CONTOSO").delete_primary_user("PC01", user_name)
    affinity.delete_primary_user.assert_not_called()


def test_migration_validation_names_the_field():
    with pytest.raises(InvalidArgumentError, match="destinationComputerName"):
        MigrationService(MagicMock()).create_association("OLD01", "")


# ─────────────────────────────────────────────────────────────────────────────
# Directory
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def directory():
    manager = MagicMock()
    manager.get_entra_device_id_by_name.return_value = "d1"
    manager.get_user_id_by_sam_account_name.return_value = "u1"
    manager.get_group_id_by_name.return_value = "g1"
    manager.add_member_to_group.return_value = True
    manager.remove_member_from_group.return_value = True
    return manager


def test_add_computer_already_member_is_noop(directory):
    directory.is_member_of_group.return_value = True
    assert DirectoryService(directory, MagicMock()).add_computer_to_group("PC01", "Pilot") is False
    directory.add_member_to_group.assert_not_called()


def test_add_user_to_group(directory):
    directory.is_member_of_group.return_value = False
    assert DirectoryService(directory, MagicMock()).add_user_to_group("jdoe", "Pilot") is True
    directory.add_member_to_group.assert_called_once_with("u1", "g1")


def test_remove_non_member_is_noop(directory):
    directory.is_member_of_group.return_value = False
    assert DirectoryService(directory, MagicMock()).remove_user_from_group("jdoe", "Pilot") is False
    directory.remove_member_from_group.assert_not_called()


def test_intune_device_exists_only_swallows_not_found():
    intune = MagicMock()
    intune.get_intune_device_id_by_name.side_effect = NotFoundError("gone")
    service = DirectoryService(MagicMock(), intune)
    assert service.intune_device_exists("PC01") is False

    intune.get_intune_device_id_by_name.side_effect = ConfigMgrAPIError(503, "down", "/")
    with pytest.raises(ConfigMgrAPIError):
        service.intune_device_exists("PC01")


def test_set_intune_primary_user_resolves_both_ids(directory):
    intune = MagicMock()
    intune.get_intune_device_id_by_name.return_value = "m1"
    directory.get_user_id_by_upn.return_value = "u1"
    intune.set_primary_user.return_value = True

    assert DirectoryService(directory, intune).set_intune_primary_user("PC01", "jdoe@contoso.com") is True
    intune.set_primary_user.assert_called_once_with("m1", "u1")
