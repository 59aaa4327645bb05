from __future__ import annotations

from ..extensions import db
from ..identifiers import money
from ..time_utils import to_utc_z, utcnow, parse_iso_datetime


class Ticket(db.Model):
    """
    Wash/dry ticket entered during a session.

    ticket_number is a display sequence ("008"), not a unique key:
    duplicates are only checked (advisory) within the visible session.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        db.Index("ix_tickets_session_number", "session_id", "ticket_number"),
    )

    id = db.Column(db.String(36), primary_key=True)
    ticket_number = db.Column(db.String(16), nullable=False)
    session_id = db.Column(db.String(36), nullable=False, index=True)

    wash_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    dry_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def recompute(self) -> None:
        self.wash_amount = money(self.wash_amount)
        self.dry_amount = money(self.dry_amount)
        self.total_amount = money(self.wash_amount + self.dry_amount)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_number": self.ticket_number,
            "session_id": self.session_id,
            "wash_amount": money(self.wash_amount),
            "dry_amount": money(self.dry_amount),
            "total_amount": money(self.total_amount),
            "synced": self.synced,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_remote(self) -> dict:
        return {
            "id": self.id,
            "pos_session_id": self.session_id,
            "ticket_number": self.ticket_number,
            "wash_amount": money(self.wash_amount),
            "dry_amount": money(self.dry_amount),
            "total_amount": money(self.total_amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    @staticmethod
    def from_remote(row: dict) -> dict:
        return {
            "id": row["id"],
            "ticket_number": str(row.get("ticket_number") or ""),
            "session_id": row.get("pos_session_id"),
            "wash_amount": money(row.get("wash_amount")),
            "dry_amount": money(row.get("dry_amount")),
            "created_at": parse_iso_datetime(row.get("created_at")) or utcnow(),
            "updated_at": parse_iso_datetime(row.get("updated_at")) or utcnow(),
        }
