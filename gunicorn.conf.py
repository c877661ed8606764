"""Gunicorn configuration.

One request per thread over a small worker pool. ConfigMgr calls are
offloaded again to each worker's plane pool (PLANE_WORKERS), so request
threads never wait on WMI longer than PLANE_TIMEOUT.

Windows authentication is performed by the fronting server (Apache
mod_auth_gssapi or nginx spnego). Gunicorn does not pass REMOTE_USER
through from a proxy, so the proxy must put the authenticated identity in
a header and drop any client-supplied copy, e.g. for Apache:

    RequestHeader unset X-Remote-User early
    RequestHeader set X-Remote-User "%{REMOTE_USER}s"

and run the app with WINDOWS_AUTH_HEADER=X-Remote-User. The header is
honoured only when the connection comes from TRUSTED_PROXY_IPS.
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
worker_class = "gthread"
threads = int(os.environ.get("GUNICORN_THREADS", "8"))
timeout = int(os.environ.get("PLANE_TIMEOUT", "120")) + 30
forwarded_allow_ips = os.environ.get("TRUSTED_PROXY_IPS", "127.0.0.1")
accesslog = "-"
errorlog = "-"


def post_fork(server, worker):
    """
    Called just after a worker has been forked.
    
    Secrets mounted under /run/secrets are read by the settings loader in
    each worker; log what is available so a missing mount is visible early.
    """
    from pathlib import Path
    
    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        names = sorted(path.name for path in secrets_dir.glob("*") if path.is_file())
        worker.log.info(f"Found {len(names)} secrets in /run/secrets: {', '.join(names) or 'none'}")
    else:
        worker.log.info("No /run/secrets mount; settings come from environment variables")


def worker_exit(server, worker):
    """Release plane connections held by this worker."""
    try:
        from wsgi import app
    except ImportError:
        return
    services = app.extensions.get("configmgr")
    if services is not None:
        services.close()
        worker.log.info("Closed ConfigMgr and Graph clients")
