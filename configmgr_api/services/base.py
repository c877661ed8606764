"""Shared logging context for domain service operations."""
from __future__ import annotations
from contextlib import contextmanager

from configmgr_api.core.exceptions import (
    AlreadyExistsError,
    ConfigMgrServiceError,
    InvalidArgumentError,
    NotFoundError,
)

EXPECTED_ERRORS = (NotFoundError, AlreadyExistsError, InvalidArgumentError)


@contextmanager
def operation(logger, action: str, **context):
    """Log an operation and any failure with its context, then re-raise unchanged.
    
    Expected outcomes (not found, duplicate, bad input) log at WARNING;
    plane failures log at ERROR.
    """
    details = " | ".join(f"{key}={value}" for key, value in context.items())
    logger.info("%s | %s", action, details)
    try:
        yield
    except EXPECTED_ERRORS as exc:
        logger.warning("%s failed | %s | %s", action, details, exc)
        raise
    except ConfigMgrServiceError as exc:
        logger.error("%s failed | %s | %s", action, details, exc)
        raise
