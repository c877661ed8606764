"""Entra ID and Intune endpoints (/api/v1/directory)."""
from __future__ import annotations

from flask import Blueprint

from .decorators import require_auth
from .helpers import json_body, services
from .responses import Messages, ok

bp = Blueprint("directory", __name__, url_prefix="/api/v1/directory")


# ─────────────────────────────────────────────────────────────────────────────
# Lookups
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/users/by-upn/<upn>", methods=["GET"])
@require_auth()
def user_by_upn(upn):
    return ok({"userPrincipalName": upn, "id": services().directory.get_user_id_by_upn(upn)})


@bp.route("/users/by-sam/<sam_account_name>", methods=["GET"])
@require_auth()
def user_by_sam(sam_account_name):
    user_id = services().directory.get_user_id_by_sam_account_name(sam_account_name)
    return ok({"samAccountName": sam_account_name, "id": user_id})


@bp.route("/devices/<computer_name>", methods=["GET"])
@require_auth()
def device_by_name(computer_name):
    return ok({"computerName": computer_name, "id": services().directory.get_device_id(computer_name)})


# ─────────────────────────────────────────────────────────────────────────────
# Group membership
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/groups/<group_name>/devices/<computer_name>", methods=["GET"])
@require_auth()
def device_in_group(group_name, computer_name):
    member = services().directory.is_computer_in_group(computer_name, group_name)
    return ok({"isMember": member, "status": "MEMBER" if member else "NOT_MEMBER"})


@bp.route("/groups/<group_name>/devices", methods=["POST"])
@require_auth()
def add_device_to_group(group_name):
    changed = services().directory.add_computer_to_group(json_body().get("computerName"), group_name)
    return ok({"changed": changed}, Messages.GROUP_UPDATED)


@bp.route("/groups/<group_name>/devices/<computer_name>", methods=["DELETE"])
@require_auth()
def remove_device_from_group(group_name, computer_name):
    changed = services().directory.remove_computer_from_group(computer_name, group_name)
    return ok({"changed": changed}, Messages.GROUP_UPDATED)


@bp.route("/groups/<group_name>/users", methods=["POST"])
@require_auth()
def add_user_to_group(group_name):
    changed = services().directory.add_user_to_group(json_body().get("samAccountName"), group_name)
    return ok({"changed": changed}, Messages.GROUP_UPDATED)


@bp.route("/groups/<group_name>/users/<sam_account_name>", methods=["DELETE"])
@require_auth()
def remove_user_from_group(group_name, sam_account_name):
    changed = services().directory.remove_user_from_group(sam_account_name, group_name)
    return ok({"changed": changed}, Messages.GROUP_UPDATED)


# ─────────────────────────────────────────────────────────────────────────────
# Intune
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/intune/<computer_name>/exists", methods=["GET"])
@require_auth()
def intune_device_exists(computer_name):
    exists = services().directory.intune_device_exists(computer_name)
    return ok({"exists": exists, "computerName": computer_name})


@bp.route("/intune/<computer_name>/primary-user", methods=["GET"])
@require_auth()
def intune_primary_user(computer_name):
    upn = services().directory.get_intune_primary_user(computer_name)
    return ok({"computerName": computer_name, "userPrincipalName": upn})


@bp.route("/intune/<computer_name>/primary-user", methods=["PUT"])
@require_auth()
def set_intune_primary_user(computer_name):
    changed = services().directory.set_intune_primary_user(computer_name, json_body().get("userPrincipalName"))
    return ok({"changed": changed}, Messages.USER_ADDED)


@bp.route("/intune/<computer_name>/co-managed", methods=["GET"])
@require_auth()
def co_managed(computer_name):
    return ok({"computerName": computer_name, "coManaged": services().directory.is_co_managed(computer_name)})


@bp.route("/intune/<computer_name>/category", methods=["PUT"])
@require_auth()
def set_category(computer_name):
    changed = services().directory.set_device_category(computer_name, json_body().get("categoryName"))
    return ok({"changed": changed})
