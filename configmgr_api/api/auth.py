"""Authentication gate: API-key and Windows (Negotiate) schemes.

Each scheme evaluates a request to one of three outcomes:

    AUTHENTICATED  principal established
    REJECTED       credential present but invalid (no fall-through)
    NO_RESULT      scheme disabled or its credential absent

Policies combine schemes with OR semantics. A policy whose schemes are all
disabled never authenticates anyone.

Windows authentication itself (Kerberos/NTLM handshake) is performed by the
fronting server (IIS/HttpPlatformHandler, Apache mod_auth_gssapi, nginx
spnego). It hands the authenticated identity to the app as REMOTE_USER or,
behind a reverse proxy, in the WINDOWS_AUTH_HEADER header from a trusted peer.
"""
from __future__ import annotations
import hmac
import ipaddress
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from flask import Request

from .responses import API_KEY_HEADER

logger = logging.getLogger(__name__)

SCHEME_API_KEY = "ApiKey"
SCHEME_WINDOWS = "Negotiate"

POLICY_WINDOWS = "windows"
POLICY_API_KEY = "api_key"
POLICY_COMBINED = "combined"

POLICY_SCHEMES = {
    POLICY_WINDOWS: (SCHEME_WINDOWS,),
    POLICY_API_KEY: (SCHEME_API_KEY,),
    POLICY_COMBINED: (SCHEME_API_KEY, SCHEME_WINDOWS),
}


class AuthOutcome(str, Enum):
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    NO_RESULT = "no_result"


@dataclass(frozen=True)
class Principal:
    name: str
    auth_type: str
    roles: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AuthResult:
    outcome: AuthOutcome
    principal: Optional[Principal] = None
    reason: str = ""
    
    @classmethod
    def no_result(cls) -> "AuthResult":
        return cls(AuthOutcome.NO_RESULT)


def client_ip(request: Request) -> str:
    return request.remote_addr or "unknown"


def authenticate_api_key(request: Request, enabled: bool, api_keys: Dict[str, str]) -> AuthResult:
    """Evaluate the X-API-Key header against the configured key table."""
    if not enabled:
        return AuthResult.no_result()
    
    provided = (request.headers.get(API_KEY_HEADER) or "").strip()
    if not provided:
        return AuthResult.no_result()
    
    client_name = _lookup_key(provided, api_keys)
    if client_name is None:
        logger.warning("Invalid API key attempted from IP: %s", client_ip(request))
        return AuthResult(AuthOutcome.REJECTED, reason="Invalid API key")
    
    logger.info("API key authenticated for client %s", client_name)
    return AuthResult(AuthOutcome.AUTHENTICATED, Principal(client_name, SCHEME_API_KEY, ["ApiClient"]))


def _lookup_key(provided: str, api_keys: Dict[str, str]) -> Optional[str]:
    # Compare against every key so timing does not reveal which one matched
    match = None
    for key, client_name in api_keys.items():
        if hmac.compare_digest(provided.encode("utf-8"), key.encode("utf-8")):
            match = client_name
    return match


def authenticate_windows(
    request: Request,
    enabled: bool,
    trusted_header: str = "",
    trusted_networks: Sequence = (),
) -> AuthResult:
    """Accept the identity established by the fronting server's Negotiate handshake.
    
    REMOTE_USER is set by servers that share the WSGI environ (IIS, mod_wsgi).
    A reverse proxy in front of gunicorn forwards the identity in a header
    instead; that header is read only when the direct peer is a trusted proxy.
    """
    if not enabled:
        return AuthResult.no_result()
    
    remote_user = (request.environ.get("REMOTE_USER") or "").strip()
    if remote_user:
        return AuthResult(AuthOutcome.AUTHENTICATED, Principal(remote_user, SCHEME_WINDOWS))
    
    if not trusted_header:
        return AuthResult.no_result()
    forwarded_user = (request.headers.get(trusted_header) or "").strip()
    if not forwarded_user:
        return AuthResult.no_result()
    if not _peer_is_trusted(request, trusted_networks):
        logger.warning("Ignoring %s header from untrusted peer %s", trusted_header, direct_peer(request))
        return AuthResult.no_result()
    return AuthResult(AuthOutcome.AUTHENTICATED, Principal(forwarded_user, SCHEME_WINDOWS))


def direct_peer(request: Request) -> str:
    """Address of the connection itself, before any X-Forwarded-For rewrite."""
    original = request.environ.get("werkzeug.proxy_fix.orig") or {}
    return original.get("REMOTE_ADDR") or request.environ.get("REMOTE_ADDR") or ""


def _peer_is_trusted(request: Request, trusted_networks: Sequence) -> bool:
    try:
        address = ipaddress.ip_address(direct_peer(request))
    except ValueError:
        return False
    return any(address in network for network in trusted_networks)


def enabled_schemes(cfg, policy: str) -> Tuple[str, ...]:
    if policy not in POLICY_SCHEMES:
        raise ValueError(f"Unknown authentication policy: {policy}")
    flags = {SCHEME_API_KEY: cfg.enable_api_key_auth, SCHEME_WINDOWS: cfg.enable_windows_auth}
    return tuple(scheme for scheme in POLICY_SCHEMES[policy] if flags[scheme])


def evaluate(request: Request, cfg, policy: str = POLICY_COMBINED, trusted_networks: Sequence = ()) -> AuthResult:
    """Run the policy's enabled schemes in order; first decisive outcome wins.
    
    Returns NO_RESULT when no scheme is enabled or none found a credential.
    """
    for scheme in enabled_schemes(cfg, policy):
        if scheme == SCHEME_API_KEY:
            result = authenticate_api_key(request, True, cfg.api_keys)
        else:
            result = authenticate_windows(request, True, cfg.windows_auth_header, trusted_networks)
        if result.outcome is not AuthOutcome.NO_RESULT:
            return result
    return AuthResult.no_result()
