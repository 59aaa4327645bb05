# Overview: Administrative routes; roster listing, session review and closing sessions.

from flask import Blueprint, request, jsonify

from ..context import get_terminal
from ..models import SESSION_STATUSES
from ..services import timekeeping_service
from ..services.session_service import SessionError
from ..time_utils import parse_iso_date


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/profiles")
def list_profiles_route():
    profiles = get_terminal().store.get_all("profiles")
    return jsonify({"profiles": [p.to_dict() for p in profiles]})


@admin_bp.get("/sessions")
def list_sessions_route():
    filters = {}
    status = request.args.get("status")
    if status:
        if status not in SESSION_STATUSES:
            return jsonify({"error": f"status must be one of {', '.join(SESSION_STATUSES)}"}), 400
        filters["status"] = status
    if request.args.get("employee_id"):
        filters["employee_id"] = request.args["employee_id"]

    sessions = get_terminal().store.get_all("sessions", **filters)
    return jsonify({"sessions": [s.to_dict() for s in reversed(sessions)]})


@admin_bp.post("/sessions/<session_id>/complete")
def complete_session_route(session_id):
    try:
        session = get_terminal().sessions.complete(session_id)
        return jsonify({"session": session.to_dict()})
    except SessionError as e:
        return jsonify({"error": str(e)}), 404


@admin_bp.get("/timesheets")
def list_timesheets_route():
    try:
        session_date = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    entries = timekeeping_service.list_entries(
        get_terminal().store,
        employee_id=request.args.get("employee_id"),
        session_date=session_date,
    )
    return jsonify({"timesheets": [e.to_dict() for e in entries]})
