# Overview: Session identity resolution, local session edits, and remote commit with conflict recovery.

"""
Session Manager

WHY: Everything an employee records during a shift hangs off one session
per (employee_id, session_date). The terminal creates that session locally
with its own identifier; the remote only learns about it on save.

STATES:
- active: every edit keeps (or puts) the session here and resets its sync flag
- synced: set by the save workflow after session, inventory and tickets upload
- completed: administrative close; terminal for employee-side edits

IDENTIFIER COLLISIONS: if the remote reports that the session identifier
already denotes a different session, a fresh identifier is generated, the
session (and its inventory/tickets) is re-keyed locally and the upload is
retried, up to conflict_retries times. The differing remote record is never
overwritten.
"""

from __future__ import annotations

from flask import current_app

from ..identifiers import money, new_id
from ..models import SESSION_ACTIVE, SESSION_SYNCED, SESSION_COMPLETED
from ..signals import record_committed
from ..time_utils import today_iso, utcnow, parse_iso_date
from . import inventory_service
from .remote_service import RemoteConflict, RemoteRejected


class SessionError(ValueError):
    """Raised for invalid session operations."""
    pass


EDITABLE_FIELDS = {"cash_started", "cash_added", "notes"}


class SessionManager:
    def __init__(self, store, remote=None, *, conflict_retries: int = 2):
        self.store = store
        self.remote = remote
        self.conflict_retries = conflict_retries
        record_committed.connect(self._on_record_committed, sender=store)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def find_open(self, employee_id: str, session_date: str | None = None):
        """Most recent non-completed session for the pair, or None."""
        session_date = parse_iso_date(session_date) or today_iso()
        candidates = [
            s for s in self.store.get_all("sessions", employee_id=employee_id, session_date=session_date)
            if s.status != SESSION_COMPLETED
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda s: (s.created_at, s.id))

    def resolve(self, employee_id: str, session_date: str | None = None):
        """Return the open session for (employee, date), creating a fresh one if needed."""
        if not employee_id:
            raise SessionError("employee_id is required")
        session_date = parse_iso_date(session_date) or today_iso()

        session = self.find_open(employee_id, session_date)
        if session is not None:
            return session

        session = self.store.put("sessions", {
            "id": new_id(),
            "employee_id": employee_id,
            "session_date": session_date,
            "cash_started": 0,
            "cash_added": 0,
            "inventory_total": 0,
            "wash_dry_total": 0,
            "notes": "",
            "status": SESSION_ACTIVE,
        })
        current_app.logger.info("Created session %s for employee %s on %s", session.id, employee_id, session_date)
        return session

    def switch_employee(self, employee_id: str, session_date: str | None = None):
        """
        Resolve the incoming employee's session and seed its inventory.

        Seeding carries each item's last known stock (left) over as the new start.
        """
        session = self.resolve(employee_id, session_date)
        if session.status != SESSION_COMPLETED:
            inventory_service.seed_session(self.store, session.id)
            session = self.refresh_totals(session.id)
        return session

    # ------------------------------------------------------------------
    # Local edits
    # ------------------------------------------------------------------

    def get(self, session_id: str):
        session = self.store.get("sessions", session_id)
        if session is None:
            raise SessionError("Session not found")
        return session

    def update(self, session_id: str, **fields):
        """Edit cash counts / notes. Any edit returns the session to active."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise SessionError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")
        session = self._require_editable(session_id)
        for key in ("cash_started", "cash_added"):
            if key in fields and money(fields[key]) < 0:
                raise SessionError(f"{key} cannot be negative")

        values = {"id": session.id, "status": SESSION_ACTIVE}
        values.update(fields)
        return self.store.put("sessions", values)

    def append_note(self, session_id: str, note: str):
        session = self.get(session_id)
        notes = session.notes or ""
        combined = f"{notes}\n{note}" if notes else note
        values = {"id": session.id, "notes": combined}
        if session.status == SESSION_SYNCED:
            values["status"] = SESSION_ACTIVE
        return self.store.put("sessions", values)

    def refresh_totals(self, session_id: str):
        """Recompute inventory, wash/dry and grand totals from the session's local records."""
        session = self.get(session_id)
        inventory_total = money(sum(money(r.total_amount) for r in self.store.get_all("inventory", session_id=session.id)))
        wash_dry_total = money(sum(money(t.total_amount) for t in self.store.get_all("tickets", session_id=session.id)))
        if money(session.inventory_total) == inventory_total and money(session.wash_dry_total) == wash_dry_total:
            return session
        values = {
            "id": session.id,
            "inventory_total": inventory_total,
            "wash_dry_total": wash_dry_total,
        }
        if session.status == SESSION_SYNCED:
            values["status"] = SESSION_ACTIVE
        return self.store.put("sessions", values)

    def mark_fully_synced(self, session_id: str):
        """Record a fully successful upload of session, inventory and tickets."""
        session = self.get(session_id)
        if session.status == SESSION_COMPLETED:
            return session
        return self.store.put("sessions", {"id": session.id, "status": SESSION_SYNCED, "synced": True})

    def complete(self, session_id: str):
        """Administrative close. Completed sessions accept no further employee edits."""
        session = self.get(session_id)
        if session.status == SESSION_COMPLETED:
            return session
        return self.store.put("sessions", {"id": session.id, "status": SESSION_COMPLETED})

    # ------------------------------------------------------------------
    # Remote commit
    # ------------------------------------------------------------------

    def commit(self, session):
        """
        Upload the session row, regenerating its identifier on conflict.

        Returns the committed session (possibly under a new id). Raises
        RemoteRejected once the conflict retries are exhausted.
        """
        if self.remote is None:
            raise RemoteRejected("session commit", "no remote backend configured")

        regenerations = 0
        while True:
            try:
                self.remote.upsert("sessions", [session.to_remote()])
            except RemoteConflict as exc:
                if regenerations >= self.conflict_retries:
                    raise RemoteRejected(
                        "session commit",
                        f"identifier conflict persisted after {regenerations} regeneration(s): {exc.message}",
                    ) from exc
                regenerations += 1
                old_id = session.id
                session = self.regenerate_id(session)
                current_app.logger.warning(
                    "Session id %s conflicts with a different remote session; retrying as %s", old_id, session.id
                )
                continue

            # Inventory and tickets reference the session row, so it must be readable back
            if not self.remote.exists("sessions", session.id):
                raise RemoteRejected("session commit", "session row not found on the remote after upsert")
            self.store.mark_synced("sessions", [session.id])
            return self.get(session.id)

    def regenerate_id(self, session):
        """
        Re-key a session under a fresh identifier.

        The new record replaces the old one in a single transaction, and the
        session's inventory and tickets follow it (and become unsynced).
        """
        old_id = session.id
        fields = session.to_dict()
        fields.pop("synced", None)
        values = {
            "id": new_id(),
            "employee_id": fields["employee_id"],
            "session_date": fields["session_date"],
            "cash_started": fields["cash_started"],
            "cash_added": fields["cash_added"],
            "inventory_total": fields["inventory_total"],
            "wash_dry_total": fields["wash_dry_total"],
            "notes": fields["notes"],
            "status": SESSION_ACTIVE if session.status == SESSION_SYNCED else session.status,
            "created_at": session.created_at,
        }
        with self.store.atomic():
            replacement = self.store.put("sessions", values)
            for collection in ("inventory", "tickets"):
                for record in self.store.get_all(collection, session_id=old_id):
                    self.store.put(collection, {"id": record.id, "session_id": replacement.id})
            self.store.delete("sessions", old_id)
        return replacement

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_editable(self, session_id: str):
        session = self.get(session_id)
        if session.status == SESSION_COMPLETED:
            raise SessionError("Session is completed and can no longer be edited")
        return session

    def _on_record_committed(self, store, collection: str, ids: list, **kwargs) -> None:
        # Inventory/ticket edits return a synced session to active.
        if collection not in ("inventory", "tickets"):
            return
        session_ids = set()
        for record_id in ids:
            record = store.get(collection, record_id)
            if record is not None and record.session_id:
                session_ids.add(record.session_id)
        for session_id in session_ids:
            session = store.get("sessions", session_id)
            if session is not None and session.status == SESSION_SYNCED:
                store.put("sessions", {"id": session.id, "status": SESSION_ACTIVE, "updated_at": utcnow()})
