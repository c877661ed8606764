"""Device collection endpoints (/api/v1/collection)."""
from __future__ import annotations

from flask import Blueprint

from .decorators import require_auth
from .helpers import json_body, services
from .responses import Messages, ok

bp = Blueprint("collection", __name__, url_prefix="/api/v1/collection")


@bp.route("", methods=["POST"])
@require_auth()
def create_collection():
    payload = json_body()
    collection_id = services().collection.create_device_collection(
        payload.get("collectionName"),
        payload.get("description") or "",
        payload.get("limitingCollectionName"),
    )
    return ok({"collectionId": collection_id}, Messages.COLLECTION_CREATED, 201)


@bp.route("/by-name/<collection_name>", methods=["GET"])
@require_auth()
def get_collection_by_name(collection_name):
    collection_id = services().collection.get_collection_id(collection_name)
    return ok({"collectionId": collection_id, "collectionName": collection_name})


@bp.route("/<collection_id>/members", methods=["GET"])
@require_auth()
def get_members(collection_id):
    members = services().collection.get_collection_members(collection_id)
    return ok({"collectionId": collection_id, "members": members})


@bp.route("/<collection_id>/members/<computer_name>", methods=["GET"])
@require_auth()
def is_member(collection_id, computer_name):
    member = services().collection.is_member(collection_id, computer_name)
    return ok({"isMember": member, "status": "MEMBER" if member else "NOT_MEMBER"})


@bp.route("/<collection_id>/members", methods=["POST"])
@require_auth()
def add_member(collection_id):
    payload = json_body()
    changed = services().collection.add_member(collection_id, payload.get("computerName"))
    return ok({"changed": changed}, Messages.COLLECTION_UPDATED)


@bp.route("/<collection_id>/members/<computer_name>", methods=["DELETE"])
@require_auth()
def remove_member(collection_id, computer_name):
    changed = services().collection.remove_member(collection_id, computer_name)
    return ok({"changed": changed}, Messages.COLLECTION_UPDATED)


@bp.route("/<collection_id>/refresh", methods=["POST"])
@require_auth()
def refresh_membership(collection_id):
    # Accepted, not applied: the plane re-evaluates asynchronously
    services().collection.refresh_membership(collection_id)
    return ok(None, Messages.COLLECTION_REFRESH_REQUESTED, 202)
