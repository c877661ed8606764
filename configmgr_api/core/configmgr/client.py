"""Low-level HTTP client for the ConfigMgr AdminService WMI route.

Handles the session, optional NTLM credentials, OData filter building and
offloading blocking plane calls to a bounded worker pool.
"""
from __future__ import annotations
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from functools import wraps
from typing import Optional, Dict, Any, List

import requests
from requests_ntlm import HttpNtlmAuth

from ..exceptions import ConfigMgrAPIError, NotFoundError

REQUEST_TIMEOUT = 30
DEFAULT_WORKERS = 4
DEFAULT_OFFLOAD_TIMEOUT = 120

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# OData filter helpers
# ─────────────────────────────────────────────────────────────────────────────
def literal(value: Any) -> str:
    """Render a value as an OData literal (strings quoted, quotes doubled)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def eq(field: str, value: Any) -> str:
    return f"{field} eq {literal(value)}"


def all_of(*clauses: str) -> str:
    return " and ".join(f"({clause})" if " or " in clause else clause for clause in clauses if clause)


# ConfigMgr marks replaced records obsolete rather than deleting them
NOT_OBSOLETE = "Obsolete eq 0 or Obsolete eq null"


class ConfigMgrClient:
    """HTTP client for the ConfigMgr AdminService with a dedicated worker pool.
    
    Features:
    - One requests.Session for the client's lifetime (closed by close())
    - Windows-integrated (NTLM) credentials when a user name is configured
    - Centralized error handling (ConfigMgrAPIError / NotFoundError)
    - run() offloads blocking plane calls off the request thread
    
    Usage:
        client = ConfigMgrClient("cm01.contoso.com", "CONTOSO\\svc-cm", "password")
        rows = client.query("SMS_R_System", filter=eq("Name", "PC01"))
        client.close()
    """
    
    def __init__(
        self,
        site_server: str,
        username: str = "",
        password: str = "",
        verify_tls: bool = True,
        max_workers: int = DEFAULT_WORKERS,
        offload_timeout: float = DEFAULT_OFFLOAD_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize ConfigMgr client.
        
        Args:
            site_server: Host name of the SMS Provider / AdminService server
            username: Optional DOMAIN\\user for NTLM (current identity when empty)
            password: Password for username
            verify_tls: Verify the AdminService certificate
            max_workers: Size of the plane worker pool
            offload_timeout: Seconds a caller waits on an offloaded call
            session: Pre-built session (tests)
        """
        self.site_server = site_server
        self.base_url = f"https://{site_server}/AdminService/wmi"
        self.offload_timeout = offload_timeout
        self._session = session or requests.Session()
        self._session.verify = verify_tls
        self._session.headers.update({"Accept": "application/json"})
        if username:
            self._session.auth = HttpNtlmAuth(username, password)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="configmgr")
        self._worker = threading.local()
        self._closed = False
    
    # ─────────────────────────────────────────────────────────────────────────
    # Offloading
    # ─────────────────────────────────────────────────────────────────────────
    def run(self, fn, *args, **kwargs):
        """Run a blocking plane call on the worker pool and wait for its result.
        
        Calls made from inside a worker run inline so nested lookups cannot
        exhaust the pool.
        
        Raises:
            ConfigMgrAPIError: If the call does not finish within offload_timeout
        """
        if getattr(self._worker, "active", False):
            return fn(*args, **kwargs)
        if self._closed:
            raise ConfigMgrAPIError(0, "Client is closed", self.base_url)
        
        future = self._executor.submit(self._in_worker, fn, *args, **kwargs)
        try:
            return future.result(timeout=self.offload_timeout)
        except FutureTimeoutError:
            # No cancellation: the in-flight call is left to finish on its own
            logger.error("ConfigMgr call %s timed out after %ss", getattr(fn, "__name__", fn), self.offload_timeout)
            raise ConfigMgrAPIError(504, f"Timed out after {self.offload_timeout}s", self.base_url)
    
    def _in_worker(self, fn, *args, **kwargs):
        self._worker.active = True
        try:
            return fn(*args, **kwargs)
        finally:
            self._worker.active = False
    
    def close(self) -> None:
        """Release the session and worker pool. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self._session.close()
        logger.info("ConfigMgr client for %s closed", self.site_server)
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self.close()
    
    # ─────────────────────────────────────────────────────────────────────────
    # WMI primitives
    # ─────────────────────────────────────────────────────────────────────────
    def query(self, wmi_class: str, filter: Optional[str] = None, select: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Query instances of a WMI class.
        
        Args:
            wmi_class: Class name (e.g., "SMS_R_System")
            filter: OData $filter expression
            select: Properties to project
            
        Returns:
            List of instance property dicts (empty when nothing matches)
        """
        params = {}
        if filter:
            params["$filter"] = filter
        if select:
            params["$select"] = ",".join(select)
        resp = self._request("GET", f"/{wmi_class}", params=params or None)
        return _rows(resp)
    
    def get_instance(self, wmi_class: str, key: Any) -> Dict[str, Any]:
        """Fetch one instance by key.
        
        Raises:
            NotFoundError: If no instance has this key
        """
        resp = self._request("GET", f"/{wmi_class}({literal(key)})", not_found=True)
        rows = _rows(resp)
        if not rows:
            raise NotFoundError(f"{wmi_class} {key} not found")
        return rows[0]
    
    def create_instance(self, wmi_class: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Create and persist an instance; returns it with plane-assigned keys."""
        resp = self._request("POST", f"/{wmi_class}", json=properties)
        rows = _rows(resp)
        return rows[0] if rows else {}
    
    def delete_instance(self, wmi_class: str, key: Any) -> None:
        self._request("DELETE", f"/{wmi_class}({literal(key)})", not_found=True)
    
    def invoke_method(self, wmi_class: str, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Invoke a static class method and return its out-parameters."""
        resp = self._request("POST", f"/{wmi_class}/AdminService.{method}", json=params or {})
        return _out_params(resp)
    
    def invoke_instance_method(
        self, wmi_class: str, key: Any, method: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Invoke a method on one instance and return its out-parameters."""
        resp = self._request(
            "POST", f"/{wmi_class}({literal(key)})/AdminService.{method}", json=params or {}, not_found=True
        )
        return _out_params(resp)
    
    # ─────────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────────
    def _request(self, method: str, path: str, not_found: bool = False, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug("ConfigMgr %s %s", method, url)
        try:
            resp = self._session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise ConfigMgrAPIError(0, f"Unable to reach {self.site_server}: {exc}", url) from exc
        self._handle_error(resp, url, not_found)
        return resp
    
    def _handle_error(self, resp: requests.Response, url: str, not_found: bool) -> None:
        """Centralized error handling for AdminService responses.
        
        Raises:
            NotFoundError: 404 on an instance path
            ConfigMgrAPIError: Any other error status
        """
        if resp.status_code == 404 and not_found:
            raise NotFoundError(f"{url} not found")
        if resp.status_code >= 400:
            raise ConfigMgrAPIError(resp.status_code, resp.text, url)


def offloaded(method):
    """Run a manager method through its client's worker pool."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        return self.client.run(method, self, *args, **kwargs)
    return wrapper


def is_duplicate_error(exc: ConfigMgrAPIError) -> bool:
    """Plane signal for a rejected duplicate create (HTTP 409 or WBEM_E_ALREADY_EXISTS)."""
    text = (exc.message or "").lower()
    return exc.status_code == 409 or "0x80041019" in text or "already exists" in text


def _rows(resp: requests.Response) -> List[Dict[str, Any]]:
    if not resp.content:
        return []
    payload = resp.json()
    if isinstance(payload, dict) and "value" in payload:
        value = payload["value"]
        return value if isinstance(value, list) else [value]
    return [payload] if isinstance(payload, dict) else list(payload or [])


def _out_params(resp: requests.Response) -> Dict[str, Any]:
    if not resp.content:
        return {}
    payload = resp.json()
    return payload if isinstance(payload, dict) else {}
