"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import atexit
import ipaddress
import logging
import sys
import time
import uuid
from typing import Optional

from flask import Flask, g, request
from werkzeug.middleware.proxy_fix import ProxyFix

from configmgr_api.api.helpers import EXTENSION_KEY
from configmgr_api.api.responses import CORRELATION_HEADER
from configmgr_api.config import AppConfig, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"
MAX_CORRELATION_ID_LENGTH = 128

logger = logging.getLogger("configmgr_api.requests")


# ─────────────────────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────────────────────
class CorrelationIdFilter(logging.Filter):
    """Inject the current request's correlation id into every log record."""
    
    def filter(self, record: logging.LogRecord) -> bool:
        from flask import has_request_context
        
        record.correlation_id = g.get("correlation_id", "-") if has_request_context() else "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the package logger (idempotent)."""
    package_logger = logging.getLogger("configmgr_api")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if any(getattr(handler, "_configmgr_api", False) for handler in package_logger.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    handler._configmgr_api = True
    package_logger.addHandler(handler)
    package_logger.propagate = False


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, services=None) -> Flask:
    """Create and configure Flask application.
    
    Args:
        cfg: Settings (loaded from the environment when omitted)
        services: Pre-built Services container (tests inject fakes here)
    """
    cfg = cfg or load_settings()
    configure_logging(cfg.log_level)
    
    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.json.sort_keys = False
    
    # Trust X-Forwarded-* headers from the reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore
    app.config["TRUSTED_PROXY_NETWORKS"] = _parse_networks(cfg.trusted_proxy_ips)
    
    if services is None:
        from configmgr_api.services import build_services
        services = build_services(cfg)
        atexit.register(services.close)
    app.extensions[EXTENSION_KEY] = services
    
    from configmgr_api.api import collection, computer, directory, errors, health, migration, user
    
    app.register_blueprint(health.bp)
    app.register_blueprint(computer.bp)
    app.register_blueprint(collection.bp)
    app.register_blueprint(user.bp)
    app.register_blueprint(migration.bp)
    app.register_blueprint(directory.bp)
    
    errors.register_error_handlers(app)
    _register_middleware(app)
    
    print(f"[flask_app] ConfigMgr Web Service API registered at /api/v1 (site server {cfg.configmgr_site_server})")
    return app


def _parse_networks(value: str) -> list:
    networks = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            print(f"[flask_app] Ignoring invalid TRUSTED_PROXY_IPS entry: {entry}")
    return networks


def _register_middleware(app: Flask) -> None:
    """Register correlation id and request logging middleware."""
    
    @app.before_request
    def assign_correlation_id() -> None:
        """Reuse the caller's X-Correlation-ID or generate one."""
        inbound = (request.headers.get(CORRELATION_HEADER) or "").strip()
        g.correlation_id = inbound[:MAX_CORRELATION_ID_LENGTH] if inbound else str(uuid.uuid4())
        g.request_started = time.perf_counter()
    
    @app.before_request
    def restrict_forwarded_headers() -> None:
        """Drop the forwarded client address unless it came through a trusted proxy."""
        original_remote = (request.environ.get("werkzeug.proxy_fix.orig") or {}).get("REMOTE_ADDR")
        if not original_remote:
            return
        try:
            address = ipaddress.ip_address(original_remote)
        except ValueError:
            address = None
        trusted = app.config["TRUSTED_PROXY_NETWORKS"]
        if address is None or not any(address in network for network in trusted):
            request.environ["REMOTE_ADDR"] = original_remote
            request.remote_addr = original_remote
    
    @app.before_request
    def log_request_start() -> None:
        logger.info(
            "HTTP %s %s started | client_ip=%s | user=%s",
            request.method,
            request.path,
            request.remote_addr,
            request.environ.get("REMOTE_USER") or "anonymous",
        )
    
    @app.after_request
    def finish_request(response):
        """Echo the correlation id and log completion with elapsed time."""
        correlation_id = g.get("correlation_id")
        if correlation_id:
            response.headers[CORRELATION_HEADER] = correlation_id
        
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        principal = g.get("principal")
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "HTTP %s %s responded %s in %.1f ms | principal=%s",
            request.method,
            request.path,
            response.status_code,
            elapsed_ms,
            principal.name if principal else "-",
        )
        return response
