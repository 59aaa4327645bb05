# Overview: Local persistent store for the five terminal collections; every call is one transaction.

"""
Local Store

WHY: The terminal is offline-first. Every edit lands here before anything
talks to the network, so a crash or a dropped connection never loses a
committed change.

GUARANTEES:
- Each public call is atomic (commit on success, rollback on any error).
  Nested calls inside atomic() join the outer transaction.
- put() is an upsert by primary key; a missing id is generated.
- Records written by put() are unsynced unless the caller says otherwise
  (only data downloaded from the remote is written as synced).
- Reads degrade to an empty collection when the backing store fails,
  unless strict=True (used by the save workflow, where failure is fatal).

NOT GUARANTEED: no version check across read-decide-write sequences.
The terminal assumes a single active writer per device.
"""

from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from ..extensions import db
from ..identifiers import new_id
from ..models import EmployeeProfile, InventoryRecord, Ticket, PosSession, TimesheetEntry
from ..signals import record_committed, records_synced
from ..time_utils import utcnow


_TX_STATE = "laundrypos.atomic"

COLLECTIONS = {
    "profiles": EmployeeProfile,
    "inventory": InventoryRecord,
    "tickets": Ticket,
    "sessions": PosSession,
    "timesheets": TimesheetEntry,
}


class StorageUnavailable(Exception):
    """Raised when the local store cannot be opened or queried."""
    pass


class UnknownCollection(ValueError):
    """Raised for a collection name outside COLLECTIONS."""
    pass


class LocalStore:
    """
    Stateless facade over db.session.

    Transaction nesting and queued signals are tracked in the info dict of
    the current scoped session, so each thread (app context) nests and
    commits on its own.
    """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Create missing tables. Raises StorageUnavailable if the database cannot be opened."""
        try:
            db.create_all()
        except OperationalError as exc:
            db.session.rollback()
            raise StorageUnavailable(f"Local store could not be opened: {exc}") from exc

    def ensure_available(self) -> None:
        """Probe every collection table; raises StorageUnavailable on failure."""
        try:
            db.session.execute(text("SELECT 1"))
            for model in COLLECTIONS.values():
                db.session.query(model.id).limit(1).all()
        except OperationalError as exc:
            db.session.rollback()
            raise StorageUnavailable(f"Local store unavailable: {exc}") from exc

    def model_for(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise UnknownCollection(f"Unknown collection '{collection}'") from None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def atomic(self):
        """
        Run a block as one local transaction.

        Signals for records written inside the block are sent only after the
        outermost block commits; a rollback discards them.
        """
        session = db.session()
        state = session.info.setdefault(_TX_STATE, {"depth": 0, "pending": []})
        outermost = state["depth"] == 0
        state["depth"] += 1
        try:
            yield session
            if outermost:
                session.commit()
        except OperationalError as exc:
            if outermost:
                session.rollback()
                state["pending"].clear()
            raise StorageUnavailable(f"Local store unavailable: {exc}") from exc
        except BaseException:
            if outermost:
                session.rollback()
                state["pending"].clear()
            raise
        finally:
            state["depth"] -= 1

        if outermost:
            pending, state["pending"] = state["pending"], []
            for signal, collection, ids in pending:
                signal.send(self, collection=collection, ids=ids)

    def _queue_signal(self, signal, collection: str, ids: list) -> None:
        db.session().info[_TX_STATE]["pending"].append((signal, collection, ids))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, collection: str, record: dict):
        """
        Upsert one record by primary key and return the stored instance.

        Derived fields (totals, left counts) are recomputed on every write.
        """
        model = self.model_for(collection)
        values = dict(record)
        if not values.get("id"):
            values["id"] = new_id()

        columns = {c.key for c in model.__mapper__.columns}
        unknown = sorted(set(values) - columns)
        if unknown:
            raise ValueError(f"Unknown field(s) for {collection}: {', '.join(unknown)}")

        values.setdefault("synced", False)

        with self.atomic() as session:
            obj = session.get(model, values["id"])
            if obj is None:
                obj = model()
                obj.created_at = utcnow()
                session.add(obj)

            for key, value in values.items():
                setattr(obj, key, value)
            if "updated_at" not in values:
                obj.updated_at = utcnow()

            recompute = getattr(obj, "recompute", None)
            if recompute is not None:
                recompute()

            session.flush()
            self._queue_signal(record_committed, collection, [obj.id])

        return obj

    def put_many(self, collection: str, records) -> list:
        """Upsert several records in one transaction."""
        with self.atomic():
            return [self.put(collection, record) for record in records]

    def delete(self, collection: str, record_id: str) -> bool:
        model = self.model_for(collection)
        with self.atomic() as session:
            obj = session.get(model, record_id)
            if obj is None:
                return False
            session.delete(obj)
        return True

    def mark_synced(self, collection: str, ids) -> int:
        """
        Flip the sync flag for the given ids.

        Unknown ids are ignored, and marking an already-synced record is a
        no-op, so the call is idempotent.
        """
        model = self.model_for(collection)
        ids = [i for i in dict.fromkeys(ids or []) if i]
        if not ids:
            return 0

        with self.atomic() as session:
            updated = (
                session.query(model)
                .filter(model.id.in_(ids))
                .update({model.synced: True}, synchronize_session="fetch")
            )
            self._queue_signal(records_synced, collection, ids)
        return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, record_id: str | None, *, strict: bool = False):
        model = self.model_for(collection)
        if not record_id:
            return None
        try:
            return db.session.get(model, record_id)
        except OperationalError as exc:
            return self._read_failed(collection, exc, strict, None)

    def get_all(self, collection: str, *, strict: bool = False, **filters) -> list:
        model = self.model_for(collection)
        try:
            query = db.session.query(model)
            if filters:
                query = query.filter_by(**filters)
            return query.order_by(model.created_at, model.id).all()
        except OperationalError as exc:
            return self._read_failed(collection, exc, strict, [])

    def get_unsynced(self, collection: str, *, strict: bool = False, **filters) -> list:
        return self.get_all(collection, strict=strict, synced=False, **filters)

    def counts(self) -> dict:
        """Total and unsynced record counts per collection (degrades to zeros)."""
        result = {}
        for name in COLLECTIONS:
            records = self.get_all(name)
            result[name] = {
                "total": len(records),
                "unsynced": sum(1 for r in records if not r.synced),
            }
        return result

    def _read_failed(self, collection: str, exc: Exception, strict: bool, fallback):
        db.session.rollback()
        if strict:
            raise StorageUnavailable(f"Local store unavailable: {exc}") from exc
        current_app.logger.warning("Local store read failed for %s, returning empty result: %s", collection, exc)
        return fallback
