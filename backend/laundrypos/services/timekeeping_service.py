# Overview: Local clock-in/clock-out; timesheet entries are uploaded later by the save workflow.

"""
Timekeeping Service

WHY: Employees clock in/out on the terminal even when it is offline. Entries
are written to the local store unsynced and pushed up on the next save.
"""

from __future__ import annotations

from ..models import CLOCKED_IN, CLOCKED_OUT
from ..time_utils import utcnow, today_iso


class TimekeepingError(ValueError):
    """Raised for invalid timekeeping operations."""
    pass


def _get_open_entry(store, employee_id: str):
    entries = [e for e in store.get_all("timesheets", employee_id=employee_id, status=CLOCKED_IN) if e.clock_out_time is None]
    return entries[-1] if entries else None


def clock_in(store, *, employee_id: str, notes: str | None = None):
    if not employee_id:
        raise TimekeepingError("employee_id is required")
    if _get_open_entry(store, employee_id):
        raise TimekeepingError("Employee is already clocked in")

    now = utcnow()
    return store.put("timesheets", {
        "employee_id": employee_id,
        "session_date": today_iso(),
        "clock_in_time": now,
        "clock_out_time": None,
        "work_duration": None,
        "status": CLOCKED_IN,
        "notes": notes,
    })


def clock_out(store, *, employee_id: str, notes: str | None = None):
    entry = _get_open_entry(store, employee_id)
    if not entry:
        raise TimekeepingError("Employee is not clocked in")

    clock_out_time = utcnow()
    worked = int((clock_out_time - entry.clock_in_time).total_seconds() // 60)

    values = {
        "id": entry.id,
        "clock_out_time": clock_out_time,
        "work_duration": max(worked, 0),
        "status": CLOCKED_OUT,
    }
    if notes:
        values["notes"] = f"{entry.notes}\n{notes}" if entry.notes else notes
    return store.put("timesheets", values)


def get_current_status(store, employee_id: str) -> dict:
    entry = _get_open_entry(store, employee_id)
    if not entry:
        return {"status": CLOCKED_OUT, "entry": None}
    return {"status": CLOCKED_IN, "entry": entry.to_dict()}


def list_entries(store, *, employee_id: str | None = None, session_date: str | None = None) -> list:
    filters = {}
    if employee_id:
        filters["employee_id"] = employee_id
    if session_date:
        filters["session_date"] = session_date
    entries = store.get_all("timesheets", **filters)
    return sorted(entries, key=lambda e: e.clock_in_time, reverse=True)
