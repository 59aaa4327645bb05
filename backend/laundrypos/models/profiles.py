from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow, parse_iso_datetime


class EmployeeProfile(db.Model):
    """
    Cached employee roster entry.

    Remote-authoritative: profiles are created on the remote backend and
    downloaded during bootstrap. The terminal never edits them.
    """
    __tablename__ = "employee_profiles"

    id = db.Column(db.String(36), primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(32), nullable=False, default="employee")

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "synced": self.synced,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    @staticmethod
    def from_remote(row: dict) -> dict:
        return {
            "id": row["id"],
            "full_name": row.get("full_name") or "",
            "email": row.get("email"),
            "role": row.get("role") or "employee",
            "updated_at": parse_iso_datetime(row.get("updated_at")) or utcnow(),
        }
