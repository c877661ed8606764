"""Health check endpoints."""
from flask import Blueprint

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Liveness: the process is serving requests."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness: no plane round trip, so a slow site server cannot fail the probe."""
    return ("ready", 200, {"Content-Type": "text/plain"})
