"""Low-level HTTP client for Microsoft Graph.

Handles bearer authentication, a single retry after a rejected token, and
centralized error handling.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any
from urllib.parse import quote

import requests

from ..exceptions import GraphAPIError
from .credentials import ClientCredentialProvider

REQUEST_TIMEOUT = 30
DEFAULT_GRAPH_URL = "https://graph.microsoft.com/beta/"

logger = logging.getLogger(__name__)


class GraphClient:
    """HTTP client for Microsoft Graph with renewable bearer tokens.
    
    Usage:
        client = GraphClient(DEFAULT_GRAPH_URL, ClientCredentialProvider(...))
        resp = client.get("groups?$filter=displayName eq 'Pilot'&$select=id")
    """
    
    def __init__(
        self,
        graph_url: str,
        credentials: ClientCredentialProvider,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Graph client.
        
        Args:
            graph_url: Graph base URL ending with the API version
            credentials: Token provider for the app registration
            session: Pre-built session (tests)
        """
        self.graph_url = (graph_url or DEFAULT_GRAPH_URL).rstrip("/") + "/"
        self.credentials = credentials
        self._session = session or requests.Session()
    
    def reference(self, path: str) -> Dict[str, str]:
        """Body for a $ref link: ``{"@odata.id": "<graph_url><path>"}``."""
        return {"@odata.id": f"{self.graph_url}{path}"}
    
    def get(self, path: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        return self._request("GET", path, headers=headers)
    
    def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self._request("POST", path, json=json)
    
    def put(self, path: str, json: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self._request("PUT", path, json=json)
    
    def delete(self, path: str) -> requests.Response:
        return self._request("DELETE", path)
    
    def close(self) -> None:
        self._session.close()
        self.credentials.close()
    
    def _request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """Execute a request; on 401 re-acquire the token and retry once.
        
        Raises:
            GraphAPIError: On HTTP error or when Graph is unreachable
        """
        url = f"{self.graph_url}{path}"
        resp = self._send(method, url, headers, **kwargs)
        if resp.status_code == 401:
            logger.warning("Graph rejected token for %s %s; re-acquiring", method, path)
            self.credentials.invalidate()
            resp = self._send(method, url, headers, **kwargs)
        self._handle_error(resp)
        return resp
    
    def _send(self, method: str, url: str, headers: Optional[Dict[str, str]], **kwargs) -> requests.Response:
        merged = {"Authorization": f"Bearer {self.credentials.get_token()}", "Accept": "application/json"}
        merged.update(headers or {})
        logger.debug("Graph %s %s", method, url)
        try:
            return self._session.request(method, url, headers=merged, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise GraphAPIError(0, f"Graph unreachable: {exc}", url) from exc
    
    def _handle_error(self, resp: requests.Response) -> None:
        if resp.status_code >= 400:
            raise GraphAPIError(resp.status_code, resp.text, resp.url)


def values(resp: requests.Response) -> list:
    """The ``value`` array of a Graph collection response."""
    if not resp.content:
        return []
    return (resp.json() or {}).get("value", [])


def odata_string(value: str) -> str:
    """Quoted, URL-escaped OData string literal for a $filter in a path."""
    return "'" + quote(value.replace("'", "''"), safe="@") + "'"
