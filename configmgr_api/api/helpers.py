"""Request helpers shared by the route blueprints."""
from __future__ import annotations
from typing import Any, Dict

from flask import current_app, request

from configmgr_api.core.exceptions import InvalidArgumentError

EXTENSION_KEY = "configmgr"


def services():
    """The Services container registered by create_app()."""
    return current_app.extensions[EXTENSION_KEY]


def json_body() -> Dict[str, Any]:
    """Parsed JSON object body.
    
    Raises:
        InvalidArgumentError: If the body is missing, not JSON, or not an object
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Request body must be a JSON object")
    return payload
