# Overview: The explicit "save" workflow; bootstraps from the remote or pushes local edits up, never both.

"""
Sync Orchestrator

Runs only when the user presses Save. One invocation takes exactly one path:

- offline at the start: nothing touches the network; an offline note is
  appended to the session and the outcome is "saved locally".
- Phase A (download/bootstrap): when local state looks untouched, the
  remote wins. Missing employee profiles are downloaded, and an empty or
  all-zero local inventory is replaced by the remote history.
- Phase B (upload): otherwise local wins. The session is committed (with
  identifier-conflict recovery) and confirmed to exist remotely, then the
  session's unsynced inventory, its unsynced tickets in fixed-size
  batches, any completed sessions changed since their last upload, and all
  unsynced timesheets.

Remote failures in Phase B become a single user-facing message; records
already accepted stay synced, everything else stays unsynced for the next
save. Local writes are never rolled back because of a remote failure.
A StorageUnavailable error is fatal and propagates.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from flask import current_app

from ..identifiers import money
from ..models import EmployeeProfile, InventoryRecord, SESSION_COMPLETED
from ..signals import save_finished
from ..time_utils import to_utc_z, utcnow
from . import inventory_service
from .remote_service import RemoteError, NetworkUnreachable, RemoteRejected


STATUS_SAVED_LOCALLY = "saved_locally"
STATUS_BOOTSTRAPPED = "bootstrapped"
STATUS_SYNCED = "synced"
STATUS_FAILED = "failed"
STATUS_BUSY = "busy"

OFFLINE_MARKER = "No internet detected"
OFFLINE_NOTE = OFFLINE_MARKER + " at {time}, saved locally. Save again when the connection is back to sync."


class PartialBatchFailure(Exception):
    """Some ticket batches were uploaded, the rest were not."""

    def __init__(self, failed_batches: list[int], skipped_batches: list[int], total_batches: int,
                 cause: Exception | None = None):
        self.failed_batches = failed_batches
        self.skipped_batches = skipped_batches
        self.total_batches = total_batches
        self.cause = cause
        super().__init__(
            f"Ticket batch(es) {failed_batches} of {total_batches} failed"
            + (f", {skipped_batches} not attempted" if skipped_batches else "")
        )


@dataclass
class SaveOutcome:
    status: str
    message: str
    session_id: str | None = None
    failed_batches: list[int] = field(default_factory=list)
    skipped_batches: list[int] = field(default_factory=list)
    uploaded: dict = field(default_factory=dict)
    inventory: list = field(default_factory=list)
    employees_loaded: int = 0

    @property
    def ok(self) -> bool:
        return self.status in (STATUS_SAVED_LOCALLY, STATUS_BOOTSTRAPPED, STATUS_SYNCED)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "ok": self.ok,
            "message": self.message,
            "session_id": self.session_id,
            "failed_batches": self.failed_batches,
            "skipped_batches": self.skipped_batches,
            "uploaded": self.uploaded,
            "inventory": [line.to_dict() for line in self.inventory],
            "employees_loaded": self.employees_loaded,
        }


class SyncOrchestrator:
    def __init__(self, store, remote, connectivity, sessions, *, ticket_batch_size: int = 5):
        if ticket_batch_size < 1:
            raise ValueError("ticket_batch_size must be at least 1")
        self.store = store
        self.remote = remote
        self.connectivity = connectivity
        self.sessions = sessions
        self.ticket_batch_size = ticket_batch_size
        self.employee_names: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def save(self, employee_id: str | None, session_date: str | None = None) -> SaveOutcome:
        """
        Run one save. A save requested while another is running is not
        queued: it returns a "busy" outcome immediately.
        """
        if not self._lock.acquire(blocking=False):
            return SaveOutcome(STATUS_BUSY, "A save is already in progress.")
        try:
            outcome = self._run(employee_id, session_date)
        finally:
            self._lock.release()

        current_app.logger.info("Save finished: %s (%s)", outcome.status, outcome.message)
        save_finished.send(self, outcome=outcome)
        return outcome

    def employee_directory(self) -> dict[str, str]:
        """id -> full name projection of the cached roster."""
        if not self.employee_names:
            self.employee_names = {p.id: p.full_name for p in self.store.get_all("profiles")}
        return dict(self.employee_names)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def _run(self, employee_id, session_date) -> SaveOutcome:
        self.store.ensure_available()

        if not self.connectivity.is_online():
            return self._save_offline(employee_id, session_date)

        employees_loaded = self._bootstrap_profiles()

        if self._looks_untouched():
            outcome = self._bootstrap_inventory()
            outcome.employees_loaded = employees_loaded
            return outcome

        if not self.connectivity.is_online():
            return self._save_offline(employee_id, session_date)

        outcome = self._upload(employee_id, session_date)
        outcome.employees_loaded = employees_loaded
        return outcome

    def _save_offline(self, employee_id, session_date) -> SaveOutcome:
        current_app.logger.warning("Offline at save; keeping changes in the local store")
        if not employee_id:
            return SaveOutcome(STATUS_SAVED_LOCALLY, "You are offline. Changes are saved on this terminal.")

        session = self.sessions.resolve(employee_id, session_date)
        session = self.sessions.refresh_totals(session.id)
        session = self.sessions.append_note(session.id, OFFLINE_NOTE.format(time=to_utc_z(utcnow())))
        return SaveOutcome(
            STATUS_SAVED_LOCALLY,
            "You are offline. Changes are saved on this terminal; save again when online to sync.",
            session_id=session.id,
        )

    def _looks_untouched(self) -> bool:
        """No meaningful local edits: zero-valued inventory and nothing else waiting for upload."""
        if not inventory_service.is_untouched(self.store.get_all("inventory", strict=True)):
            return False
        if any(money(t.total_amount) for t in self.store.get_unsynced("tickets", strict=True)):
            return False
        if self.store.get_unsynced("timesheets", strict=True):
            return False
        for session in self.store.get_unsynced("sessions", strict=True):
            if money(session.cash_started) or money(session.cash_added) or (session.notes or "").strip():
                return False
        return True

    # ------------------------------------------------------------------
    # Phase A: download / bootstrap
    # ------------------------------------------------------------------

    def _bootstrap_profiles(self) -> int:
        if self.store.get_all("profiles", strict=True):
            self.employee_directory()
            return 0

        try:
            rows = self.remote.fetch("employees", order="full_name.asc", select="id,full_name,email,role")
        except (NetworkUnreachable, RemoteRejected) as exc:
            current_app.logger.warning("Employee bootstrap skipped: %s", exc)
            return 0

        records = [dict(EmployeeProfile.from_remote(row), synced=True) for row in rows if row.get("id")]
        if not records:
            current_app.logger.warning("No employees found on the remote backend")
            return 0

        profiles = self.store.put_many("profiles", records)
        self.employee_names = {p.id: p.full_name for p in profiles}
        current_app.logger.info("Loaded %d employee profiles from the remote backend", len(profiles))
        return len(profiles)

    def _bootstrap_inventory(self) -> SaveOutcome:
        try:
            rows = self.remote.fetch("inventory_items", order="item_name.asc,updated_at.desc")
        except (NetworkUnreachable, RemoteRejected) as exc:
            current_app.logger.warning("Inventory bootstrap skipped, local inventory kept: %s", exc)
            return SaveOutcome(STATUS_SAVED_LOCALLY, "Remote inventory could not be loaded; local data was kept.")

        records = [
            dict(InventoryRecord.from_remote(row), synced=True)
            for row in rows
            if row.get("id") and row.get("item_name")
        ]
        if records:
            self.store.put_many("inventory", records)
            current_app.logger.info("Stored %d remote inventory records locally", len(records))
        else:
            current_app.logger.warning("No inventory found on the remote backend")

        lines = inventory_service.display_inventory(self.store, self.remote, self.connectivity)
        return SaveOutcome(
            STATUS_BOOTSTRAPPED,
            f"Loaded {len(records)} inventory record(s) from the remote backend.",
            inventory=lines,
        )

    # ------------------------------------------------------------------
    # Phase B: upload
    # ------------------------------------------------------------------

    def _upload(self, employee_id, session_date) -> SaveOutcome:
        if not employee_id:
            return SaveOutcome(STATUS_FAILED, "Select an employee before saving.")

        session = self.sessions.resolve(employee_id, session_date)
        session = self.sessions.refresh_totals(session.id)
        uploaded = {}

        try:
            session = self.sessions.commit(session)
            uploaded["sessions"] = 1
            uploaded["inventory"] = self._upload_inventory(session.id)
            uploaded["tickets"] = self._upload_tickets(session.id)
            self.sessions.mark_fully_synced(session.id)
            self._upload_completed_sessions(uploaded)
            uploaded["timesheets"] = self._upload_timesheets()
        except PartialBatchFailure as exc:
            current_app.logger.warning("Ticket upload incomplete for session %s: %s", session.id, exc)
            return SaveOutcome(
                STATUS_FAILED,
                f"Some tickets were not saved (batch {', '.join(str(i) for i in exc.failed_batches)} failed). "
                "Everything is kept on this terminal; save again to retry.",
                session_id=session.id,
                failed_batches=exc.failed_batches,
                skipped_batches=exc.skipped_batches,
                uploaded=uploaded,
            )
        except RemoteError as exc:
            current_app.logger.warning("Save failed during %s: %s", exc.operation, exc.message)
            # A conflict may have re-keyed the session before the failure
            if self.store.get("sessions", session.id) is None:
                session = self.sessions.find_open(employee_id, session_date) or session
            return SaveOutcome(
                STATUS_FAILED,
                f"Save failed during {exc.operation}: {exc.message}. Everything is kept on this terminal.",
                session_id=session.id,
                uploaded=uploaded,
            )

        return SaveOutcome(STATUS_SYNCED, "All data saved to the remote backend.", session_id=session.id, uploaded=uploaded)

    def _upload_completed_sessions(self, uploaded: dict) -> None:
        """Push administratively completed sessions changed since their last upload."""
        for session in self.store.get_unsynced("sessions", strict=True, status=SESSION_COMPLETED):
            session = self.sessions.commit(session)
            uploaded["sessions"] += 1
            uploaded["inventory"] += self._upload_inventory(session.id)
            uploaded["tickets"] += self._upload_tickets(session.id)

    def _upload_inventory(self, session_id: str) -> int:
        records = self.store.get_unsynced("inventory", strict=True, session_id=session_id)
        if not records:
            return 0
        self.remote.upsert("inventory_items", [r.to_remote() for r in records])
        self.store.mark_synced("inventory", [r.id for r in records])
        return len(records)

    def _upload_tickets(self, session_id: str) -> int:
        tickets = self.store.get_unsynced("tickets", strict=True, session_id=session_id)
        size = self.ticket_batch_size
        batches = [tickets[i:i + size] for i in range(0, len(tickets), size)]

        uploaded = 0
        for index, batch in enumerate(batches):
            try:
                self.remote.upsert("tickets", [t.to_remote() for t in batch])
            except RemoteError as exc:
                raise PartialBatchFailure(
                    failed_batches=[index],
                    skipped_batches=list(range(index + 1, len(batches))),
                    total_batches=len(batches),
                    cause=exc,
                ) from exc
            self.store.mark_synced("tickets", [t.id for t in batch])
            uploaded += len(batch)
        return uploaded

    def _upload_timesheets(self) -> int:
        uploaded = 0
        for entry in self.store.get_unsynced("timesheets", strict=True):
            payload = entry.to_remote()
            if self.remote.exists("timesheets", entry.id):
                payload.pop("id")
                self.remote.update("timesheets", entry.id, payload)
            else:
                self.remote.insert("timesheets", [payload])
            self.store.mark_synced("timesheets", [entry.id])
            uploaded += 1
        return uploaded
