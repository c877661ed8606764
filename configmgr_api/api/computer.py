"""Device lifecycle endpoints (/api/v1/computer)."""
from __future__ import annotations

from flask import Blueprint, url_for

from .decorators import require_auth
from .helpers import json_body, services
from .responses import Messages, ok

bp = Blueprint("computer", __name__, url_prefix="/api/v1/computer")


@bp.route("/add-by-bios-guid", methods=["POST"])
@require_auth()
def add_by_bios_guid():
    payload = json_body()
    name = payload.get("computerName")
    services().computer.add_computer_by_bios_guid(name, payload.get("biosGuid"))
    location = url_for("computer.computer_exists", computer_name=name.strip())
    return ok(None, Messages.COMPUTER_ADDED, 201, {"Location": location})


@bp.route("/add-by-mac-address", methods=["POST"])
@require_auth()
def add_by_mac_address():
    payload = json_body()
    name = payload.get("computerName")
    services().computer.add_computer_by_mac_address(name, payload.get("macAddress"))
    location = url_for("computer.computer_exists", computer_name=name.strip())
    return ok(None, Messages.COMPUTER_ADDED, 201, {"Location": location})


@bp.route("/<computer_name>", methods=["DELETE"])
@require_auth()
def delete_computer(computer_name):
    deleted = services().computer.delete_computer(computer_name)
    return ok({"computerName": computer_name, "deletedCount": deleted}, Messages.COMPUTER_DELETED)


@bp.route("/by-bios-guid/<bios_guid>", methods=["DELETE"])
@require_auth()
def delete_computer_by_guid(bios_guid):
    deleted = services().computer.delete_computer_by_guid(bios_guid)
    return ok({"biosGuid": bios_guid, "deletedCount": deleted}, Messages.COMPUTER_DELETED)


@bp.route("/<computer_name>/exists", methods=["GET"])
@require_auth()
def computer_exists(computer_name):
    exists = services().computer.computer_exists(computer_name)
    message = Messages.COMPUTER_EXISTS if exists else Messages.COMPUTER_NOT_FOUND
    return ok({"exists": exists, "computerName": computer_name}, message)


@bp.route("/<computer_name>", methods=["GET"])
@require_auth()
def get_computer(computer_name):
    device = services().computer.get_computer(computer_name)
    return ok({
        "computerName": device.name,
        "resourceId": device.resource_id,
        "smsGuid": device.sms_unique_identifier,
    })


@bp.route("/<computer_name>/resource-id", methods=["GET"])
@require_auth()
def get_resource_id(computer_name):
    resource_id = services().computer.get_resource_id(computer_name)
    return ok({"computerName": computer_name, "resourceId": resource_id})


@bp.route("/<computer_name>/sms-guid", methods=["GET"])
@require_auth()
def get_sms_guid(computer_name):
    sms_guid = services().computer.get_sms_guid(computer_name)
    return ok({"computerName": computer_name, "smsGuid": sms_guid})


@bp.route("/<computer_name>/clear-pxe-flag", methods=["POST"])
@require_auth()
def clear_pxe_flag(computer_name):
    services().computer.clear_pxe_flag(computer_name)
    return ok(None, Messages.PXE_FLAG_CLEARED)
