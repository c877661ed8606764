"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from configmgr_api.core.crypto import ScsCrypto

ENCRYPTED_PREFIX = "enc:"
DEFAULT_GRAPH_URL = "https://graph.microsoft.com/beta/"
DEFAULT_GRAPH_AUTHORITY = "https://login.microsoftonline.com"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).
    
    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)
    
    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback
    
    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name
    
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")
    
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value
    
    return None


def _decrypt_if_needed(name: str, value: Optional[str]) -> str:
    """Decrypt ``enc:<base64>`` values with ScsCrypto.
    
    The key comes from CMWS_CRYPTO_KEY; without it the machine-bound key is
    used, so values produced by ``scripts/encrypt_secret.py`` on the same
    host decrypt without extra configuration.
    """
    if not value or not value.startswith(ENCRYPTED_PREFIX):
        return value or ""
    
    crypto_key = os.environ.get("CMWS_CRYPTO_KEY")
    crypto = ScsCrypto(crypto_key) if crypto_key else ScsCrypto()
    try:
        return crypto.decrypt(value[len(ENCRYPTED_PREFIX):])
    except ValueError as exc:
        raise RuntimeError(f"{name} is encrypted but could not be decrypted: {exc}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}")


def parse_api_keys(raw: str) -> Dict[str, str]:
    """Parse ``key=client`` pairs separated by commas or newlines.
    
    Example:
        >>> parse_api_keys("k1=Provisioning, k2=Helpdesk")
        {'k1': 'Provisioning', 'k2': 'Helpdesk'}
    """
    keys: Dict[str, str] = {}
    for entry in raw.replace("\n", ",").split(","):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, client = entry.partition("=")
        key, client = key.strip(), client.strip()
        if not sep or not key or not client:
            raise RuntimeError("API_KEYS entries must look like '<key>=<client name>'")
        keys[key] = client
    return keys


@dataclass
class AppConfig:
    """Application configuration container."""
    # ConfigMgr (management plane)
    configmgr_site_server: str = "localhost"
    configmgr_username: str = ""
    configmgr_password: str = field(default="", repr=False)
    configmgr_verify_tls: bool = True
    configmgr_domain_short_name: str = ""
    plane_workers: int = 4
    plane_timeout: int = 120
    
    # Microsoft Graph (directory plane)
    graph_app_display_name: str = ""
    graph_app_id: str = ""
    graph_tenant_id: str = ""
    graph_client_secret: str = field(default="", repr=False)
    graph_url: str = DEFAULT_GRAPH_URL
    graph_authority: str = DEFAULT_GRAPH_AUTHORITY
    
    # Authentication
    enable_windows_auth: bool = True
    windows_auth_header: str = ""
    enable_api_key_auth: bool = True
    api_keys: Dict[str, str] = field(default_factory=dict, repr=False)
    
    # Hosting
    log_level: str = "INFO"
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"
    
    @property
    def graph_configured(self) -> bool:
        return bool(self.graph_tenant_id and self.graph_app_id and self.graph_client_secret)


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets.
    
    Missing plane settings do not fail startup; the affected plane reports
    errors on first use instead.
    """
    configmgr_password = _decrypt_if_needed(
        "CONFIGMGR_PASSWORD", _load_secret_from_file("configmgr_password", "CONFIGMGR_PASSWORD")
    )
    graph_client_secret = _decrypt_if_needed(
        "GRAPH_CLIENT_SECRET", _load_secret_from_file("graph_client_secret", "GRAPH_CLIENT_SECRET")
    )
    api_keys_raw = _decrypt_if_needed("API_KEYS", _load_secret_from_file("api_keys", "API_KEYS"))
    api_keys = parse_api_keys(api_keys_raw)
    
    enable_windows_auth = _env_bool("ENABLE_WINDOWS_AUTH", True)
    enable_api_key_auth = _env_bool("ENABLE_API_KEY_AUTH", True)
    
    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    
    cfg = AppConfig(
        configmgr_site_server=os.environ.get("CONFIGMGR_SITE_SERVER", "localhost").strip() or "localhost",
        configmgr_username=os.environ.get("CONFIGMGR_USERNAME", "").strip(),
        configmgr_password=configmgr_password,
        configmgr_verify_tls=_env_bool("CONFIGMGR_VERIFY_TLS", True),
        configmgr_domain_short_name=os.environ.get("CONFIGMGR_DOMAIN_SHORT_NAME", "").strip(),
        plane_workers=_env_int("PLANE_WORKERS", 4),
        plane_timeout=_env_int("PLANE_TIMEOUT", 120),
        graph_app_display_name=os.environ.get("GRAPH_APP_DISPLAY_NAME", "").strip(),
        graph_app_id=os.environ.get("GRAPH_APP_ID", "").strip(),
        graph_tenant_id=os.environ.get("GRAPH_TENANT_ID", "").strip(),
        graph_client_secret=graph_client_secret,
        graph_url=os.environ.get("GRAPH_URL", DEFAULT_GRAPH_URL).strip() or DEFAULT_GRAPH_URL,
        graph_authority=os.environ.get("GRAPH_AUTHORITY", DEFAULT_GRAPH_AUTHORITY).strip() or DEFAULT_GRAPH_AUTHORITY,
        enable_windows_auth=enable_windows_auth,
        windows_auth_header=os.environ.get("WINDOWS_AUTH_HEADER", "").strip(),
        enable_api_key_auth=enable_api_key_auth,
        api_keys=api_keys,
        log_level=log_level,
        trusted_proxy_ips=os.environ.get("TRUSTED_PROXY_IPS", "127.0.0.1/32,::1/128"),
    )
    
    print(
        f"[settings] ConfigMgr={cfg.configmgr_site_server}; "
        f"windows_auth={enable_windows_auth}; api_key_auth={enable_api_key_auth} ({len(api_keys)} key(s)); "
        f"log_level={log_level}"
    )
    if not cfg.graph_configured:
        print("[settings] WARNING: Graph app registration incomplete; directory routes will fail")
    if not (enable_windows_auth or enable_api_key_auth):
        print("[settings] WARNING: All authentication schemes disabled; every protected route will return 401")
    if cfg.windows_auth_header:
        print(f"[settings] Windows identity read from {cfg.windows_auth_header} when sent by TRUSTED_PROXY_IPS")
    
    return cfg
