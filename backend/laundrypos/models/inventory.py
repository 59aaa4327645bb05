from __future__ import annotations

from ..extensions import db
from ..identifiers import money, count
from ..time_utils import to_utc_z, utcnow, parse_iso_datetime


class InventoryRecord(db.Model):
    """
    One snapshot of an inventory line.

    APPEND-ONLY HISTORY: item_name is the cross-time identity key. Every
    session writes its own record per item, so many records exist per item
    over time. Reconciliation (inventory_service.reconcile) collapses them.

    session_id NULL marks a master template (price list entry, zero counts).

    DERIVED FIELDS (recompute):
    - left_count = max(0, start + add - sold)
    - total_amount = round(sold * unit_price, 2)
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.Index("ix_inventory_records_session_item", "session_id", "item_name"),
    )

    id = db.Column(db.String(36), primary_key=True)
    item_name = db.Column(db.String(255), nullable=False, index=True)
    session_id = db.Column(db.String(36), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    start_count = db.Column(db.Integer, nullable=False, default=0)
    add_count = db.Column(db.Integer, nullable=False, default=0)
    sold_count = db.Column(db.Integer, nullable=False, default=0)
    left_count = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    COUNT_FIELDS = ("start_count", "add_count", "sold_count", "left_count")

    def recompute(self) -> None:
        self.start_count = count(self.start_count)
        self.add_count = count(self.add_count)
        self.sold_count = count(self.sold_count)
        self.unit_price = money(self.unit_price)
        self.left_count = max(0, self.start_count + self.add_count - self.sold_count)
        self.total_amount = money(self.sold_count * self.unit_price)

    def has_counts(self) -> bool:
        return any(count(getattr(self, f)) for f in self.COUNT_FIELDS)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_name": self.item_name,
            "session_id": self.session_id,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
            "start_count": count(self.start_count),
            "add_count": count(self.add_count),
            "sold_count": count(self.sold_count),
            "left_count": count(self.left_count),
            "total_amount": money(self.total_amount),
            "synced": self.synced,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_remote(self) -> dict:
        return {
            "id": self.id,
            "pos_session_id": self.session_id,
            "item_name": self.item_name,
            "quantity": self.quantity or 1,
            "price": money(self.unit_price),
            "start_count": count(self.start_count),
            "add_count": count(self.add_count),
            "sold_count": count(self.sold_count),
            "left_count": count(self.left_count),
            "total_amount": money(self.total_amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    @staticmethod
    def from_remote(row: dict) -> dict:
        return {
            "id": row["id"],
            "item_name": row.get("item_name") or "",
            "session_id": row.get("pos_session_id"),
            "quantity": row.get("quantity") or 1,
            "unit_price": money(row.get("price")),
            "start_count": count(row.get("start_count")),
            "add_count": count(row.get("add_count")),
            "sold_count": count(row.get("sold_count")),
            "left_count": count(row.get("left_count")),
            "created_at": parse_iso_datetime(row.get("created_at")) or utcnow(),
            "updated_at": parse_iso_datetime(row.get("updated_at")) or utcnow(),
        }
