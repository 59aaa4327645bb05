from __future__ import annotations

from ..extensions import db
from ..identifiers import money
from ..time_utils import to_utc_z, utcnow


SESSION_ACTIVE = "active"
SESSION_SYNCED = "synced"
SESSION_COMPLETED = "completed"
SESSION_STATUSES = (SESSION_ACTIVE, SESSION_SYNCED, SESSION_COMPLETED)


class PosSession(db.Model):
    """
    One employee's shift on one day.

    LIFECYCLE:
    - active: being edited on the terminal (every edit keeps it active)
    - synced: session, inventory and tickets accepted by the remote;
      any further edit returns it to active
    - completed: closed by an administrator, no more employee edits

    At most one non-completed session exists per (employee_id, session_date).
    """
    __tablename__ = "pos_sessions"
    __table_args__ = (
        db.Index("ix_pos_sessions_employee_date", "employee_id", "session_date", "status"),
    )

    id = db.Column(db.String(36), primary_key=True)
    employee_id = db.Column(db.String(36), nullable=False, index=True)
    session_date = db.Column(db.String(10), nullable=False)

    cash_started = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    cash_added = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    cash_total = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    inventory_total = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    wash_dry_total = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    grand_total = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    notes = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default=SESSION_ACTIVE, index=True)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def recompute(self) -> None:
        self.cash_started = money(self.cash_started)
        self.cash_added = money(self.cash_added)
        self.cash_total = money(self.cash_started + self.cash_added)
        self.inventory_total = money(self.inventory_total)
        self.wash_dry_total = money(self.wash_dry_total)
        self.grand_total = money(self.inventory_total + self.wash_dry_total)
        if self.notes is None:
            self.notes = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "session_date": self.session_date,
            "cash_started": money(self.cash_started),
            "cash_added": money(self.cash_added),
            "cash_total": money(self.cash_total),
            "inventory_total": money(self.inventory_total),
            "wash_dry_total": money(self.wash_dry_total),
            "grand_total": money(self.grand_total),
            "notes": self.notes or "",
            "status": self.status,
            "synced": self.synced,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_remote(self) -> dict:
        # Remote status has no "synced" state: a synced session is still active there
        status = SESSION_COMPLETED if self.status == SESSION_COMPLETED else SESSION_ACTIVE
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "session_date": self.session_date,
            "cash_started": money(self.cash_started),
            "cash_added": money(self.cash_added),
            "cash_total": money(self.cash_total),
            "inventory_total": money(self.inventory_total),
            "wash_dry_total": money(self.wash_dry_total),
            "grand_total": money(self.grand_total),
            "notes": self.notes or "",
            "status": status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
