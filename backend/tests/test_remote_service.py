import json

import httpx
import pytest

from laundrypos.config import Config
from laundrypos.services.remote_service import (
    Connectivity,
    NetworkUnreachable,
    RemoteBackend,
    RemoteConflict,
    RemoteRejected,
)


BASE_URL = "https://pos.example.test"


def _backend(handler, **kwargs):
    return RemoteBackend(
        BASE_URL,
        "anon-key",
        tables=Config.REMOTE_TABLES,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_fetch_builds_postgrest_query():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "s1", "employee_id": "employee-a"}])

    backend = _backend(handler)
    rows = backend.fetch("sessions", filters={"employee_id": "employee-a"}, order="created_at.desc")

    assert rows == [{"id": "s1", "employee_id": "employee-a"}]
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/pos_sessions"
    assert request.url.params["employee_id"] == "eq.employee-a"
    assert request.url.params["order"] == "created_at.desc"
    assert request.url.params["select"] == "*"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


def test_upsert_merges_on_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json=json.loads(request.content))

    backend = _backend(handler)
    rows = backend.upsert("tickets", [{"id": "t1", "ticket_number": "008"}])

    assert rows == [{"id": "t1", "ticket_number": "008"}]
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/pos_wash_dry_tickets"
    assert request.url.params["on_conflict"] == "id"
    assert "resolution=merge-duplicates" in request.headers["prefer"]


def test_empty_upsert_sends_nothing():
    def handler(request):
        raise AssertionError("no request expected")

    assert _backend(handler).upsert("tickets", []) == []


@pytest.mark.parametrize("status,body", [
    (409, {"code": "23505", "message": "duplicate key value violates unique constraint"}),
    (400, {"code": "23505", "message": "duplicate key value"}),
    (409, {"message": "conflict"}),
])
def test_duplicate_key_responses_raise_conflict(status, body):
    backend = _backend(lambda request: httpx.Response(status, json=body))

    with pytest.raises(RemoteConflict) as excinfo:
        backend.upsert("sessions", [{"id": "s1"}])

    assert excinfo.value.operation == "upsert sessions"


def test_other_errors_raise_rejected_with_status():
    backend = _backend(lambda request: httpx.Response(500, text="upstream timeout"))

    with pytest.raises(RemoteRejected) as excinfo:
        backend.insert("timesheets", [{"id": "e1"}])

    assert "HTTP 500" in excinfo.value.message
    assert "upstream timeout" in excinfo.value.message


def test_transport_failure_raises_network_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkUnreachable):
        _backend(handler).fetch("employees")


def test_unconfigured_backend_is_unreachable():
    backend = RemoteBackend("", tables=Config.REMOTE_TABLES)

    assert not backend.configured
    with pytest.raises(NetworkUnreachable):
        backend.fetch("employees")


def test_update_delete_and_exists_target_one_id():
    seen = []

    def handler(request):
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": "e1"}])
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=[{"id": "e1", "status": "clocked_out"}])

    backend = _backend(handler)

    assert backend.exists("timesheets", "e1")
    assert backend.update("timesheets", "e1", {"status": "clocked_out"}) == [{"id": "e1", "status": "clocked_out"}]
    assert backend.delete("timesheets", "e1") is None
    assert [r.method for r in seen] == ["GET", "PATCH", "DELETE"]
    assert all(r.url.params["id"] == "eq.e1" for r in seen)
    assert seen[0].url.params["select"] == "id"


def test_unknown_resource_is_rejected():
    with pytest.raises(RemoteRejected):
        _backend(lambda request: httpx.Response(200, json=[])).fetch("receipts")


def test_connectivity_probe():
    online = Connectivity(BASE_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    assert online.is_online()

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert not Connectivity(BASE_URL, transport=httpx.MockTransport(refuse)).is_online()


def test_connectivity_is_offline_when_forced_or_unconfigured():
    def handler(request):
        raise AssertionError("no probe expected")

    assert not Connectivity(BASE_URL, force_offline=True, transport=httpx.MockTransport(handler)).is_online()
    assert not Connectivity("", transport=httpx.MockTransport(handler)).is_online()
