"""Primary user endpoints (/api/v1/user)."""
from __future__ import annotations

from flask import Blueprint

from .decorators import require_auth
from .helpers import json_body, services
from .responses import Messages, ok

bp = Blueprint("user", __name__, url_prefix="/api/v1/user")


@bp.route("/<computer_name>/primary-users", methods=["GET"])
@require_auth()
def get_primary_users(computer_name):
    users = services().user.get_primary_users(computer_name)
    return ok({"computerName": computer_name, "primaryUsers": users})


@bp.route("/primary-user", methods=["POST"])
@require_auth()
def add_primary_user():
    payload = json_body()
    services().user.set_primary_user(payload.get("computerName"), payload.get("userName"))
    return ok(None, Messages.USER_ADDED, 201)


@bp.route("/primary-user", methods=["DELETE"])
@require_auth()
def remove_primary_user():
    payload = json_body()
    removed = services().user.delete_primary_user(payload.get("computerName"), payload.get("userName"))
    return ok({"removed": removed}, Messages.USER_REMOVED)
