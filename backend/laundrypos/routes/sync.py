# Overview: The explicit Save action; the only route that uploads to the remote backend.

from flask import Blueprint, request, jsonify, current_app

from ..context import get_terminal
from ..services.local_store import StorageUnavailable
from ..services.sync_service import STATUS_BUSY, STATUS_FAILED


sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")


@sync_bp.post("/save")
def save_route():
    """
    Returns:
    - 200: saved locally, bootstrapped, or fully synced
    - 409: another save is already running
    - 503: the remote rejected part of the upload (data kept locally),
           or the local store itself is unavailable
    """
    data = request.get_json(silent=True) or {}

    try:
        outcome = get_terminal().sync.save(data.get("employee_id"), data.get("session_date"))
    except StorageUnavailable as e:
        current_app.logger.exception("Save aborted: local store unavailable")
        return jsonify({"error": str(e)}), 503

    if outcome.status == STATUS_BUSY:
        return jsonify(outcome.to_dict()), 409
    if outcome.status == STATUS_FAILED:
        return jsonify(outcome.to_dict()), 503
    return jsonify(outcome.to_dict())


@sync_bp.get("/status")
def sync_status_route():
    terminal = get_terminal()
    return jsonify({
        "online": terminal.connectivity.is_online(),
        "sync_in_progress": terminal.sync.busy,
        "collections": terminal.store.counts(),
    })
