# Overview: Flask API routes for the terminal screen; employee switch, inventory, tickets and cash edits.

"""
Terminal Routes

Every write lands in the local store only. Nothing here talks to the
remote backend except reading the master price list for display; uploads
happen through /api/sync/save.
"""

from flask import Blueprint, request, jsonify, current_app

from ..context import get_terminal
from ..services import inventory_service, ticket_service
from ..services.inventory_service import InventoryError
from ..services.local_store import StorageUnavailable
from ..services.session_service import SessionError
from ..services.ticket_service import TicketError


terminal_bp = Blueprint("terminal", __name__, url_prefix="/api/terminal")


def _session_payload(terminal, session) -> dict:
    return {
        "session": session.to_dict(),
        "inventory": [line.to_dict() for line in inventory_service.session_lines(terminal.store, session.id)],
        "tickets": [t.to_dict() for t in terminal.store.get_all("tickets", session_id=session.id)],
    }


@terminal_bp.get("/employees")
def list_employees_route():
    profiles = get_terminal().store.get_all("profiles")
    profiles.sort(key=lambda p: (p.full_name or "").lower())
    return jsonify({"employees": [p.to_dict() for p in profiles]})


@terminal_bp.post("/switch")
def switch_employee_route():
    data = request.get_json(silent=True) or {}
    employee_id = data.get("employee_id")
    if not employee_id:
        return jsonify({"error": "employee_id is required"}), 400

    terminal = get_terminal()
    try:
        session = terminal.sessions.switch_employee(employee_id, data.get("session_date"))
        return jsonify(_session_payload(terminal, session))
    except (SessionError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except StorageUnavailable as e:
        current_app.logger.exception("Employee switch failed")
        return jsonify({"error": str(e)}), 503


@terminal_bp.get("/sessions/<session_id>")
def get_session_route(session_id):
    terminal = get_terminal()
    try:
        session = terminal.sessions.get(session_id)
    except SessionError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(_session_payload(terminal, session))


@terminal_bp.patch("/sessions/<session_id>")
def update_session_route(session_id):
    data = request.get_json(silent=True) or {}
    fields = {k: data[k] for k in ("cash_started", "cash_added", "notes") if k in data}
    if not fields:
        return jsonify({"error": "Nothing to update"}), 400

    terminal = get_terminal()
    try:
        terminal.sessions.get(session_id)
    except SessionError as e:
        return jsonify({"error": str(e)}), 404

    try:
        session = terminal.sessions.update(session_id, **fields)
        return jsonify({"session": session.to_dict()})
    except SessionError as e:
        status = 409 if "completed" in str(e) else 400
        return jsonify({"error": str(e)}), status
    except (TypeError, ValueError):
        return jsonify({"error": "cash amounts must be numbers"}), 400


@terminal_bp.get("/inventory")
def display_inventory_route():
    terminal = get_terminal()
    lines = inventory_service.display_inventory(
        terminal.store,
        terminal.remote,
        terminal.connectivity,
        session_id=request.args.get("session_id"),
    )
    return jsonify({"inventory": [line.to_dict() for line in lines]})


@terminal_bp.put("/sessions/<session_id>/inventory")
def update_inventory_route(session_id):
    data = request.get_json(silent=True) or {}
    item_name = data.get("item_name")
    if not item_name:
        return jsonify({"error": "item_name is required"}), 400

    terminal = get_terminal()
    try:
        record = inventory_service.update_item_counts(
            terminal.store,
            session_id,
            item_name,
            start=data.get("start_count"),
            add=data.get("add_count"),
            sold=data.get("sold_count"),
            unit_price=data.get("unit_price"),
            quantity=data.get("quantity"),
        )
        session = terminal.sessions.refresh_totals(session_id)
        return jsonify({"item": record.to_dict(), "session": session.to_dict()})
    except InventoryError as e:
        status = 404 if "not found" in str(e) else 400
        return jsonify({"error": str(e)}), status
    except TypeError:
        return jsonify({"error": "counts must be numbers"}), 400


@terminal_bp.post("/sessions/<session_id>/tickets")
def record_ticket_route(session_id):
    data = request.get_json(silent=True) or {}
    ticket_number = data.get("ticket_number")
    if not ticket_number:
        return jsonify({"error": "ticket_number is required"}), 400

    terminal = get_terminal()
    duplicate = ticket_service.is_duplicate_in_session(
        terminal.store, session_id, ticket_number, exclude_id=data.get("id")
    )
    try:
        ticket = ticket_service.record_ticket(
            terminal.store,
            session_id,
            ticket_number=ticket_number,
            wash=data.get("wash_amount", 0),
            dry=data.get("dry_amount", 0),
            ticket_id=data.get("id"),
        )
        session = terminal.sessions.refresh_totals(session_id)
        return jsonify({
            "ticket": ticket.to_dict(),
            "session": session.to_dict(),
            "duplicate_number": duplicate,
        }), 200 if data.get("id") else 201
    except TicketError as e:
        status = 404 if "not found" in str(e) else 400
        return jsonify({"error": str(e)}), status
    except TypeError:
        return jsonify({"error": "wash_amount and dry_amount must be numbers"}), 400


@terminal_bp.post("/sessions/<session_id>/tickets/start")
def start_shift_tickets_route(session_id):
    data = request.get_json(silent=True) or {}
    terminal = get_terminal()
    count = data.get("count", current_app.config["DEFAULT_TICKET_COUNT"])

    try:
        tickets = ticket_service.start_shift_tickets(terminal.store, terminal.sequencer, session_id, int(count))
        return jsonify({"tickets": [t.to_dict() for t in tickets]}), 201
    except TicketError as e:
        status = 404 if "not found" in str(e) else 400
        return jsonify({"error": str(e)}), status
    except (TypeError, ValueError):
        return jsonify({"error": "count must be an integer"}), 400


@terminal_bp.get("/tickets/next")
def next_ticket_numbers_route():
    try:
        count = int(request.args.get("count", current_app.config["DEFAULT_TICKET_COUNT"]))
    except ValueError:
        return jsonify({"error": "count must be an integer"}), 400
    return jsonify({"ticket_numbers": get_terminal().sequencer.generate_next(count)})
