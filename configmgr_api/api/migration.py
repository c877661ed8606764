"""USMT computer association endpoints (/api/v1/migration-association)."""
from __future__ import annotations

from flask import Blueprint, request

from .decorators import require_auth
from .helpers import json_body, services
from .responses import Messages, ok

bp = Blueprint("migration", __name__, url_prefix="/api/v1/migration-association")


def _pair(source_mapping):
    return source_mapping.get("sourceComputerName"), source_mapping.get("destinationComputerName")


@bp.route("", methods=["POST"])
@require_auth()
def create_association():
    services().migration.create_association(*_pair(json_body()))
    return ok(None, Messages.ASSOCIATION_CREATED, 201)


@bp.route("", methods=["DELETE"])
@require_auth()
def delete_association():
    services().migration.remove_association(*_pair(json_body()))
    return ok(None, Messages.ASSOCIATION_DELETED)


@bp.route("/status", methods=["GET"])
@require_auth()
def migration_status():
    source, destination = _pair(request.args)
    status = services().migration.get_migration_status(source, destination)
    return ok({
        "sourceComputerName": source,
        "destinationComputerName": destination,
        "status": status.value,
    })
