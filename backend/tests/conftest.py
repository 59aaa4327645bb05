"""
Pytest fixtures for the laundrypos terminal tests.

Provides an app on an in-memory SQLite store, an in-memory fake of the
remote backend that records every call, and a scriptable connectivity
signal.
"""

import pytest

from laundrypos import create_app, close_terminal
from laundrypos.context import TerminalContext
from laundrypos.extensions import db
from laundrypos.services.local_store import LocalStore
from laundrypos.services.session_service import SessionManager
from laundrypos.services.sync_service import SyncOrchestrator
from laundrypos.services.ticket_service import TicketSequencer


class FakeRemote:
    """
    In-memory stand-in for RemoteBackend.

    rows[resource][id] holds what the "server" has accepted. Failures are
    scripted with fail(); each scripted failure fires once, after `after`
    matching calls have succeeded.
    """

    configured = True

    def __init__(self):
        self.rows: dict[str, dict[str, dict]] = {}
        self.calls: list[tuple] = []
        self._failures: list[dict] = []
        self.closed = False

    def seed(self, resource, rows):
        for row in rows:
            self.rows.setdefault(resource, {})[row["id"]] = dict(row)

    def fail(self, method, resource, exc, *, after=0, times=1):
        for _ in range(times):
            self._failures.append({"method": method, "resource": resource, "exc": exc, "after": after})

    def calls_to(self, method, resource=None):
        return [c for c in self.calls if c[0] == method and (resource is None or c[1] == resource)]

    def _record(self, method, resource, payload=None):
        self.calls.append((method, resource, payload))
        for failure in self._failures:
            if failure["method"] != method or failure["resource"] != resource:
                continue
            if failure["after"] > 0:
                failure["after"] -= 1
                return
            self._failures.remove(failure)
            raise failure["exc"]
        return

    def fetch(self, resource, *, filters=None, order=None, select="*"):
        self._record("fetch", resource, filters)
        rows = list(self.rows.get(resource, {}).values())
        for column, value in (filters or {}).items():
            rows = [r for r in rows if r.get(column) == value]
        return [dict(r) for r in rows]

    def insert(self, resource, rows):
        self._record("insert", resource, rows)
        self.seed(resource, rows)
        return [dict(r) for r in rows]

    def update(self, resource, record_id, values):
        self._record("update", resource, values)
        row = self.rows.setdefault(resource, {}).get(record_id)
        if row is None:
            return []
        row.update(values)
        return [dict(row)]

    def delete(self, resource, record_id):
        self._record("delete", resource, record_id)
        self.rows.get(resource, {}).pop(record_id, None)

    def upsert(self, resource, rows):
        self._record("upsert", resource, rows)
        table = self.rows.setdefault(resource, {})
        for row in rows:
            table.setdefault(row["id"], {}).update(row)
        return [dict(r) for r in rows]

    def exists(self, resource, record_id):
        return record_id in self.rows.get(resource, {})

    def close(self):
        self.closed = True


class FakeConnectivity:
    def __init__(self, online=True):
        self.online = online
        self.probes = 0

    def is_online(self):
        self.probes += 1
        return self.online


@pytest.fixture(scope='function')
def app():
    """Fresh application and empty local store per test."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REMOTE_URL': '',
        'TERMINAL_FORCE_OFFLINE': True,
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()

    close_terminal(app)


@pytest.fixture(scope='function')
def remote():
    return FakeRemote()


@pytest.fixture(scope='function')
def connectivity():
    return FakeConnectivity(online=True)


@pytest.fixture(scope='function')
def terminal(app, remote, connectivity):
    """Terminal context wired to the fake remote; replaces the app's own."""
    app.extensions["laundrypos"].remote.close()

    store = LocalStore()
    sessions = SessionManager(store, remote, conflict_retries=2)
    sequencer = TicketSequencer(store, pad=3)
    sync = SyncOrchestrator(store, remote, connectivity, sessions, ticket_batch_size=5)
    context = TerminalContext(store, remote, connectivity, sessions, sequencer, sync)
    app.extensions["laundrypos"] = context
    return context


@pytest.fixture(scope='function')
def store(terminal):
    return terminal.store


@pytest.fixture(scope='function')
def client(app, terminal):
    return app.test_client()
