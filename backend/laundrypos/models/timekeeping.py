from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

CLOCKED_IN = "clocked_in"
CLOCKED_OUT = "clocked_out"


class TimesheetEntry(db.Model):
    """
    Clock-in/clock-out record for an employee.

    LIFECYCLE:
    - clocked_in: clock_out_time is NULL, shift in progress
    - clocked_out: clock_out_time set, work_duration (minutes) calculated
    """
    __tablename__ = "timesheet_entries"
    __table_args__ = (
        db.Index("ix_timesheet_employee_status", "employee_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True)
    employee_id = db.Column(db.String(36), nullable=False, index=True)
    session_date = db.Column(db.String(10), nullable=False)

    clock_in_time = db.Column(db.DateTime, nullable=False)
    clock_out_time = db.Column(db.DateTime, nullable=True)

    # Whole minutes between clock in and clock out
    work_duration = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=CLOCKED_IN)
    notes = db.Column(db.Text, nullable=True)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "session_date": self.session_date,
            "clock_in_time": to_utc_z(self.clock_in_time),
            "clock_out_time": to_utc_z(self.clock_out_time) if self.clock_out_time else None,
            "work_duration": self.work_duration,
            "status": self.status,
            "notes": self.notes,
            "synced": self.synced,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_remote(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "session_date": self.session_date,
            "clock_in_time": to_utc_z(self.clock_in_time),
            "clock_out_time": to_utc_z(self.clock_out_time) if self.clock_out_time else None,
            "work_duration_minutes": self.work_duration,
            "status": self.status,
            "notes": self.notes or "",
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
