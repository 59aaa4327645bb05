# Overview: Flask API routes for timekeeping operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..context import get_terminal
from ..services import timekeeping_service
from ..services.timekeeping_service import TimekeepingError
from ..time_utils import parse_iso_date


timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api/timekeeping")


@timekeeping_bp.post("/clock-in")
def clock_in_route():
    data = request.get_json(silent=True) or {}
    employee_id = data.get("employee_id")
    if not employee_id:
        return jsonify({"error": "employee_id is required"}), 400

    try:
        entry = timekeeping_service.clock_in(get_terminal().store, employee_id=employee_id, notes=data.get("notes"))
        return jsonify({"entry": entry.to_dict()}), 201
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400


@timekeeping_bp.post("/clock-out")
def clock_out_route():
    data = request.get_json(silent=True) or {}
    employee_id = data.get("employee_id")
    if not employee_id:
        return jsonify({"error": "employee_id is required"}), 400

    try:
        entry = timekeeping_service.clock_out(get_terminal().store, employee_id=employee_id, notes=data.get("notes"))
        return jsonify({"entry": entry.to_dict()})
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400


@timekeeping_bp.get("/status")
def status_route():
    employee_id = request.args.get("employee_id")
    if not employee_id:
        return jsonify({"error": "employee_id is required"}), 400
    return jsonify(timekeeping_service.get_current_status(get_terminal().store, employee_id))


@timekeeping_bp.get("/entries")
def list_entries_route():
    try:
        session_date = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    entries = timekeeping_service.list_entries(
        get_terminal().store,
        employee_id=request.args.get("employee_id"),
        session_date=session_date,
    )
    return jsonify({"entries": [e.to_dict() for e in entries]})
