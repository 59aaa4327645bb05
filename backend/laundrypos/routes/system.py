# backend/laundrypos/routes/system.py
"""
System health endpoint.

Reports local store availability (fatal when down), the connectivity
signal (informational; offline is a normal operating mode) and the
per-collection unsynced backlog.
"""

import time
from flask import Blueprint, current_app

from ..context import get_terminal
from ..services.local_store import StorageUnavailable
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_local_store_health() -> dict:
    start_time = time.time()
    terminal = get_terminal()
    try:
        terminal.store.ensure_available()
        counts = terminal.store.counts()
    except StorageUnavailable:
        current_app.logger.exception("Local store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Local store unavailable",
        }

    return {
        "status": "healthy",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "details": counts,
    }


def check_remote_health() -> dict:
    start_time = time.time()
    online = get_terminal().connectivity.is_online()
    return {
        # Offline is a supported mode, so it only degrades the terminal
        "status": "healthy" if online else "degraded",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "online": online,
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: local store usable (remote may be offline)
    - 503: local store unavailable
    """
    local = check_local_store_health()
    remote = check_remote_health()

    if local["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif remote["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "sync_in_progress": get_terminal().sync.busy,
        "checks": {
            "local_store": local,
            "remote": remote,
        },
    }, http_status
