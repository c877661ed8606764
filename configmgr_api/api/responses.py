"""Uniform response envelope and message constants."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from flask import g, jsonify

CORRELATION_HEADER = "X-Correlation-ID"
API_KEY_HEADER = "X-API-Key"
API_PREFIX = "/api/v1"


class Messages:
    OPERATION_SUCCESS = "Operation completed successfully"
    COMPUTER_ADDED = "Computer added successfully"
    COMPUTER_DELETED = "Computer deleted successfully"
    COMPUTER_EXISTS = "Computer exists"
    USER_ADDED = "Primary user added successfully"
    USER_REMOVED = "Primary user removed successfully"
    COLLECTION_CREATED = "Collection created successfully"
    COLLECTION_UPDATED = "Collection membership updated successfully"
    COLLECTION_REFRESH_REQUESTED = "Collection membership refresh requested"
    PXE_FLAG_CLEARED = "PXE flag cleared successfully"
    ASSOCIATION_CREATED = "USMT association created successfully"
    ASSOCIATION_DELETED = "USMT association deleted successfully"
    GROUP_UPDATED = "Group membership updated successfully"
    
    OPERATION_FAILED = "Operation failed"
    COMPUTER_ALREADY_EXISTS = "A computer with this identifier already exists"
    COMPUTER_NOT_FOUND = "Computer not found"
    NOT_FOUND = "Resource not found"
    INVALID_REQUEST = "Invalid request parameters"
    UNAUTHORIZED = "Unauthorized access"
    INTERNAL_ERROR = "An internal server error occurred"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def envelope(success: bool, data: Any = None, message: Optional[str] = None,
             errors: Optional[Iterable[str]] = None) -> dict:
    """Build ``{success, data, message, errors, correlationId, timestamp}``."""
    if message is None:
        message = Messages.OPERATION_SUCCESS if success else Messages.OPERATION_FAILED
    return {
        "success": success,
        "data": data,
        "message": message,
        "errors": list(errors or []),
        "correlationId": g.get("correlation_id"),
        "timestamp": _timestamp(),
    }


def ok(data: Any = None, message: Optional[str] = None, status: int = 200, headers: Optional[dict] = None):
    """Success response tuple for route handlers."""
    return jsonify(envelope(True, data, message)), status, headers or {}


def fail(status: int, message: str, errors: Optional[Iterable[str]] = None, headers: Optional[dict] = None):
    """Failure response tuple for route handlers and error handlers."""
    return jsonify(envelope(False, None, message, errors)), status, headers or {}
