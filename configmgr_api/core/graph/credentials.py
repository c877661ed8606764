"""OAuth2 client-credential token provider for Microsoft Graph."""
from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

import requests

from ..exceptions import GraphAPIError

REQUEST_TIMEOUT = 10
DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
REFRESH_LEEWAY = timedelta(seconds=60)

logger = logging.getLogger(__name__)


class ClientCredentialProvider:
    """Renewable bearer token for an Entra ID app registration.
    
    The token is fetched lazily, cached until shortly before it expires,
    and can be invalidated after the API rejects it.
    
    Usage:
        creds = ClientCredentialProvider(tenant_id, app_id, secret)
        headers = {"Authorization": f"Bearer {creds.get_token()}"}
    """
    
    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority: str = DEFAULT_AUTHORITY,
        scope: str = GRAPH_SCOPE,
        session: Optional[requests.Session] = None,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self.token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self.scope = scope
        self._session = session or requests.Session()
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._lock = threading.Lock()
    
    def get_token(self) -> str:
        """Return a valid access token, acquiring a new one when needed.
        
        Raises:
            GraphAPIError: If the app registration is incomplete, the authority
                rejects its credentials, or the token endpoint fails
        """
        with self._lock:
            if self._token and self._token_expires_at and datetime.now() < self._token_expires_at - REFRESH_LEEWAY:
                return self._token
            self._token, self._token_expires_at = self._acquire()
            return self._token
    
    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._token_expires_at = None
    
    def close(self) -> None:
        self._session.close()
    
    def _acquire(self):
        if not (self.tenant_id and self.client_id and self._client_secret):
            raise GraphAPIError(0, "Graph app registration is not configured", self.token_url)
        
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "scope": self.scope,
        }
        try:
            resp = self._session.post(self.token_url, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise GraphAPIError(0, f"Token endpoint unreachable: {exc}", self.token_url) from exc
        
        if resp.status_code in (400, 401):
            logger.error("Token request for app %s rejected: %s", self.client_id, resp.status_code)
            raise GraphAPIError(resp.status_code, "Token request rejected", self.token_url)
        if resp.status_code != 200:
            raise GraphAPIError(resp.status_code, resp.text, self.token_url)
        
        payload = resp.json()
        expires_in = int(payload.get("expires_in", 3600))
        logger.info("Acquired Graph token for app %s (expires in %ss)", self.client_id, expires_in)
        return payload["access_token"], datetime.now() + timedelta(seconds=expires_in)
