from datetime import timedelta

import pytest

from laundrypos.models import CLOCKED_IN, CLOCKED_OUT
from laundrypos.services import timekeeping_service
from laundrypos.services.timekeeping_service import TimekeepingError


def test_clock_in_and_out(store):
    entry = timekeeping_service.clock_in(store, employee_id="employee-a", notes="Opening")

    assert entry.status == CLOCKED_IN
    assert entry.clock_out_time is None
    assert entry.synced is False
    assert timekeeping_service.get_current_status(store, "employee-a")["status"] == CLOCKED_IN

    # Pretend the shift started 95 minutes ago
    store.put("timesheets", {"id": entry.id, "clock_in_time": entry.clock_in_time - timedelta(minutes=95)})
    closed = timekeeping_service.clock_out(store, employee_id="employee-a", notes="Closing")

    assert closed.id == entry.id
    assert closed.status == CLOCKED_OUT
    assert closed.work_duration == 95
    assert closed.notes == "Opening\nClosing"
    assert timekeeping_service.get_current_status(store, "employee-a") == {"status": CLOCKED_OUT, "entry": None}


def test_double_clock_in_is_rejected(store):
    timekeeping_service.clock_in(store, employee_id="employee-a")

    with pytest.raises(TimekeepingError):
        timekeeping_service.clock_in(store, employee_id="employee-a")

    # Another employee is unaffected
    timekeeping_service.clock_in(store, employee_id="employee-b")


def test_clock_out_requires_open_entry(store):
    with pytest.raises(TimekeepingError):
        timekeeping_service.clock_out(store, employee_id="employee-a")
    with pytest.raises(TimekeepingError):
        timekeeping_service.clock_in(store, employee_id="")


def test_list_entries_filters_and_orders_newest_first(store):
    first = timekeeping_service.clock_in(store, employee_id="employee-a")
    store.put("timesheets", {"id": first.id, "clock_in_time": first.clock_in_time - timedelta(hours=3)})
    timekeeping_service.clock_out(store, employee_id="employee-a")
    second = timekeeping_service.clock_in(store, employee_id="employee-a")
    timekeeping_service.clock_in(store, employee_id="employee-b")

    entries = timekeeping_service.list_entries(store, employee_id="employee-a")

    assert [e.id for e in entries] == [second.id, first.id]
    assert len(timekeeping_service.list_entries(store)) == 3
    assert timekeeping_service.list_entries(store, session_date="1999-01-01") == []


def test_remote_payload_uses_minutes_field(store):
    entry = timekeeping_service.clock_in(store, employee_id="employee-a")
    closed = timekeeping_service.clock_out(store, employee_id="employee-a")

    payload = closed.to_remote()

    assert payload["id"] == entry.id
    assert payload["work_duration_minutes"] == 0
    assert payload["clock_out_time"].endswith("Z")
    assert "work_duration" not in payload
