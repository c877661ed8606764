"""
Flask decorators for authentication.

require_auth() guards a route with one of the authentication policies in
configmgr_api.api.auth. Failures raise UnauthorizedError, which the error
handlers turn into a 401 envelope (with a Negotiate challenge when Windows
authentication is enabled).
"""

import logging
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from configmgr_api.core.exceptions import UnauthorizedError

from . import auth

logger = logging.getLogger(__name__)


def require_auth(policy: str = auth.POLICY_COMBINED):
    """
    Decorator to require an authenticated principal.
    
    Args:
        policy: "combined" (API key OR Windows), "api_key" or "windows"
    
    Raises:
        UnauthorizedError: Credential rejected, absent, or no scheme enabled
    
    Example:
        @bp.route("/computer/<name>/exists")
        @require_auth()
        def computer_exists(name):
            ...
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            cfg = current_app.config["APP_CONFIG"]
            result = auth.evaluate(request, cfg, policy, current_app.config.get("TRUSTED_PROXY_NETWORKS", ()))
            
            if result.outcome is auth.AuthOutcome.REJECTED:
                raise UnauthorizedError(result.reason or "Credential rejected")
            if result.outcome is auth.AuthOutcome.NO_RESULT:
                if not auth.enabled_schemes(cfg, policy):
                    logger.error("Policy %s has no enabled authentication scheme", policy)
                else:
                    logger.warning("Unauthenticated request to %s from %s", request.path, auth.client_ip(request))
                raise UnauthorizedError("Authentication required")
            
            g.principal = result.principal
            logger.debug("Request authenticated as %s via %s", result.principal.name, result.principal.auth_type)
            return fn(*args, **kwargs)
        
        return wrapper
    return decorator


def get_principal() -> Optional[auth.Principal]:
    """Principal of the current request. Must be called after @require_auth."""
    return g.get("principal")
