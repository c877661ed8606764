"""Error handlers: the single translation from exceptions to HTTP envelopes."""
import logging

from flask import current_app
from werkzeug.exceptions import HTTPException

from configmgr_api.core.exceptions import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)

from .responses import Messages, fail

logger = logging.getLogger(__name__)

# First match wins; anything else is a 500
STATUS_BY_ERROR = (
    (InvalidArgumentError, 400, Messages.INVALID_REQUEST),
    (UnauthorizedError, 401, Messages.UNAUTHORIZED),
    (NotFoundError, 404, Messages.NOT_FOUND),
    (AlreadyExistsError, 409, Messages.COMPUTER_ALREADY_EXISTS),
)


def status_for(error: Exception):
    """Return (status, message) for a domain error."""
    for error_type, status, message in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status, message
    return 500, Messages.INTERNAL_ERROR


def _challenge_headers(status: int) -> dict:
    cfg = current_app.config.get("APP_CONFIG")
    if status == 401 and cfg is not None and cfg.enable_windows_auth:
        return {"WWW-Authenticate": "Negotiate"}
    return {}


def register_error_handlers(app):
    """Register error handlers with the Flask app."""
    
    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        """Unknown routes, wrong methods and malformed JSON keep their status."""
        status = error.code or 500
        return fail(status, error.name, [error.description] if error.description else [],
                    headers=_challenge_headers(status))
    
    @app.errorhandler(Exception)
    def handle_exception(error):
        """Map the error taxonomy to a status code; hide details of 500s."""
        status, message = status_for(error)
        if status == 500:
            logger.error("Unhandled exception: %s", error, exc_info=True)
            return fail(500, message, [])
        
        logger.warning("%s -> %s: %s", type(error).__name__, status, error)
        return fail(status, message, [str(error)], headers=_challenge_headers(status))
