# Overview: Inventory reconciliation; collapses append-only inventory history into one current line per item.

"""
Inventory Reconciliation

WHY: Every session writes its own inventory records, so the local store
holds the full history of each item. The terminal needs one current line
per item: to display, and to seed the next shift's starting stock.

RULES:
1. Records are grouped by lower-cased item_name.
2. Per group, the most recent record with any non-zero count wins; if no
   record has counts, the most recent record overall is used.
3. Seeding a new session: start = prior left (start if left is absent),
   add/sold/total reset to zero, left recomputed from the new start.
4. A remote master list defines which items are shown and at what
   price/quantity. Items missing from it are hidden, never deleted.
   When the master list cannot be obtained, the previous view is kept.
5. Displaying an open session writes the master price and quantity onto
   its own records, so saved totals match the displayed ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from flask import current_app

from ..identifiers import money, count
from ..models import SESSION_COMPLETED
from .remote_service import NetworkUnreachable, RemoteRejected


class InventoryError(ValueError):
    """Raised for invalid inventory edits."""
    pass


@dataclass
class InventoryLine:
    """Display/current state of one item."""
    item_name: str
    unit_price: float = 0.0
    quantity: int = 1
    start_count: int = 0
    add_count: int = 0
    sold_count: int = 0
    left_count: int = 0
    total_amount: float = 0.0
    record_id: str | None = None
    session_id: str | None = None
    updated_at: datetime | None = field(default=None, compare=False)

    @property
    def key(self) -> str:
        return item_key(self.item_name)

    def to_dict(self) -> dict:
        return {
            "item_name": self.item_name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "start_count": self.start_count,
            "add_count": self.add_count,
            "sold_count": self.sold_count,
            "left_count": self.left_count,
            "total_amount": self.total_amount,
            "record_id": self.record_id,
            "session_id": self.session_id,
        }


@dataclass(frozen=True)
class MasterItem:
    """Authoritative price list entry."""
    item_name: str
    unit_price: float
    quantity: int = 1
    id: str | None = None

    @classmethod
    def from_remote(cls, row: dict) -> "MasterItem":
        return cls(
            item_name=(row.get("item_name") or "").strip(),
            unit_price=money(row.get("price")),
            quantity=int(row.get("quantity") or 1),
            id=row.get("id"),
        )


# =============================================================================
# Pure reconciliation
# =============================================================================

def item_key(name: str | None) -> str:
    return (name or "").strip().lower()


def compute_left(start, add, sold) -> int:
    return max(0, count(start) + count(add) - count(sold))


def compute_total(sold, unit_price) -> float:
    return money(count(sold) * money(unit_price))


def _has_counts(record) -> bool:
    return any(count(getattr(record, f, 0)) for f in ("start_count", "add_count", "sold_count", "left_count"))


def _recency(record):
    updated = getattr(record, "updated_at", None) or getattr(record, "created_at", None) or datetime.min
    created = getattr(record, "created_at", None) or datetime.min
    return updated, created


def line_from_record(record) -> InventoryLine:
    left = getattr(record, "left_count", None)
    return InventoryLine(
        item_name=record.item_name,
        unit_price=money(record.unit_price),
        quantity=int(record.quantity or 1),
        start_count=count(record.start_count),
        add_count=count(record.add_count),
        sold_count=count(record.sold_count),
        left_count=count(left) if left is not None else compute_left(record.start_count, record.add_count, record.sold_count),
        total_amount=money(record.total_amount),
        record_id=getattr(record, "id", None),
        session_id=getattr(record, "session_id", None),
        updated_at=getattr(record, "updated_at", None),
    )


def reconcile(records) -> dict[str, InventoryLine]:
    """Collapse history into {lower-cased item name: current line}."""
    groups: dict[str, list] = {}
    for record in records:
        key = item_key(record.item_name)
        if not key:
            continue
        groups.setdefault(key, []).append(record)

    current = {}
    for key, group in groups.items():
        candidates = [r for r in group if _has_counts(r)] or group
        current[key] = line_from_record(max(candidates, key=_recency))
    return current


def seed_lines(current: dict[str, InventoryLine]) -> list[InventoryLine]:
    """Starting lines for a new shift: carry the prior left stock over as start."""
    seeded = []
    for line in current.values():
        start = line.left_count if line.left_count is not None else line.start_count
        seeded.append(InventoryLine(
            item_name=line.item_name,
            unit_price=line.unit_price,
            quantity=line.quantity,
            start_count=count(start),
            add_count=0,
            sold_count=0,
            left_count=compute_left(start, 0, 0),
            total_amount=0.0,
        ))
    return seeded


def collapse_session_lines(records) -> list[InventoryLine]:
    """
    Display lines for one session.

    Duplicate item names are summed on the count fields; price and quantity
    come from the first occurrence.
    """
    merged: dict[str, InventoryLine] = {}
    for record in records:
        key = item_key(record.item_name)
        line = merged.get(key)
        if line is None:
            merged[key] = line_from_record(record)
            continue
        line.start_count += count(record.start_count)
        line.add_count += count(record.add_count)
        line.sold_count += count(record.sold_count)
        line.left_count += count(record.left_count)
        line.total_amount = money(line.total_amount + money(record.total_amount))
    return list(merged.values())


def merge_with_master(current: dict[str, InventoryLine], master: list[MasterItem] | None,
                      previous: list[InventoryLine] | None = None) -> list[InventoryLine]:
    """
    Apply the master list to the current lines.

    master None means the list could not be obtained: the previous view is
    returned untouched (or the current lines when nothing was shown yet).
    """
    if master is None:
        if previous is not None:
            return list(previous)
        return sorted(current.values(), key=lambda line: line.key)

    merged = []
    for item in master:
        line = current.get(item_key(item.item_name))
        if line is None:
            merged.append(InventoryLine(item_name=item.item_name, unit_price=item.unit_price, quantity=item.quantity))
            continue
        merged.append(replace(
            line,
            item_name=item.item_name,
            unit_price=item.unit_price,
            quantity=item.quantity,
            total_amount=compute_total(line.sold_count, item.unit_price),
        ))
    return merged


def is_untouched(records) -> bool:
    """True when there is no inventory, or every record is entirely zero-valued."""
    return all(not _has_counts(r) and money(r.total_amount) == 0 for r in records)


# =============================================================================
# Store-backed operations
# =============================================================================

def _require_editable_session(store, session_id: str):
    session = store.get("sessions", session_id)
    if session is None:
        raise InventoryError("Session not found")
    if session.status == SESSION_COMPLETED:
        raise InventoryError("Session is completed and can no longer be edited")
    return session


def session_lines(store, session_id: str) -> list[InventoryLine]:
    return collapse_session_lines(store.get_all("inventory", session_id=session_id))


def update_item_counts(
    store,
    session_id: str,
    item_name: str,
    *,
    start: int | None = None,
    add: int | None = None,
    sold: int | None = None,
    unit_price: float | None = None,
    quantity: int | None = None,
):
    """
    Edit the session's line for an item, creating it (seeded from history) if needed.

    Derived fields are recomputed by the store on write.
    """
    if not item_key(item_name):
        raise InventoryError("item_name is required")
    for label, value in (("start", start), ("add", add), ("sold", sold), ("unit_price", unit_price)):
        if value is not None and value < 0:
            raise InventoryError(f"{label} cannot be negative")

    _require_editable_session(store, session_id)

    key = item_key(item_name)
    existing = next(
        (r for r in store.get_all("inventory", session_id=session_id) if item_key(r.item_name) == key),
        None,
    )

    if existing is not None:
        values = {"id": existing.id}
    else:
        history = [r for r in store.get_all("inventory") if r.session_id != session_id]
        prior = reconcile(history).get(key)
        seeded = seed_lines({key: prior})[0] if prior else InventoryLine(item_name=item_name)
        values = {
            "session_id": session_id,
            "item_name": item_name.strip(),
            "unit_price": seeded.unit_price,
            "quantity": seeded.quantity,
            "start_count": seeded.start_count,
            "add_count": 0,
            "sold_count": 0,
        }

    if start is not None:
        values["start_count"] = start
    if add is not None:
        values["add_count"] = add
    if sold is not None:
        values["sold_count"] = sold
    if unit_price is not None:
        values["unit_price"] = unit_price
    if quantity is not None:
        values["quantity"] = quantity

    return store.put("inventory", values)


def seed_session(store, session_id: str) -> list:
    """
    Create the starting inventory for a session from reconciled history.

    A session that already has inventory is left as it is.
    """
    existing = store.get_all("inventory", session_id=session_id)
    if existing:
        return existing

    history = [r for r in store.get_all("inventory") if r.session_id != session_id]
    lines = seed_lines(reconcile(history))
    if not lines:
        return []

    with store.atomic():
        records = [
            store.put("inventory", {
                "session_id": session_id,
                "item_name": line.item_name,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
                "start_count": line.start_count,
                "add_count": 0,
                "sold_count": 0,
            })
            for line in lines
        ]
    current_app.logger.info("Seeded %d inventory lines for session %s", len(records), session_id)
    return records


def load_master_list(store, remote, connectivity) -> list[MasterItem] | None:
    """
    Fetch the master price list, caching it locally as templates.

    Falls back to cached templates when offline or when the fetch fails;
    returns None if neither source has anything.
    """
    if remote is not None and connectivity is not None and connectivity.is_online():
        try:
            rows = remote.fetch("master_items", order="item_name.asc")
        except (NetworkUnreachable, RemoteRejected) as exc:
            current_app.logger.warning("Master inventory fetch failed, using local templates: %s", exc)
        else:
            items = [MasterItem.from_remote(row) for row in rows if row.get("item_name")]
            if items:
                _cache_templates(store, items)
                return items

    templates = reconcile(store.get_all("inventory", session_id=None))
    if not templates:
        return None
    return [
        MasterItem(item_name=line.item_name, unit_price=line.unit_price, quantity=line.quantity, id=line.record_id)
        for line in sorted(templates.values(), key=lambda line: line.key)
    ]


def _cache_templates(store, items: list[MasterItem]) -> None:
    # Rows without a remote id are matched to their cached template by item name
    cached = {item_key(t.item_name): t for t in store.get_all("inventory", session_id=None)}
    with store.atomic():
        for item in items:
            values = {
                "session_id": None,
                "item_name": item.item_name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "synced": True,
            }
            if item.id:
                values["id"] = str(item.id)
            elif item_key(item.item_name) in cached:
                values["id"] = cached[item_key(item.item_name)].id
            store.put("inventory", values)


def apply_master_prices(store, session_id: str, master: list[MasterItem]) -> int:
    """
    Write master price and quantity onto the session's own records.

    Stored totals then match the displayed ones. Completed sessions keep
    the prices they were closed with. Returns the number of records changed.
    """
    session = store.get("sessions", session_id)
    if session is None or session.status == SESSION_COMPLETED:
        return 0

    prices = {item_key(item.item_name): item for item in master}
    changed = 0
    with store.atomic():
        for record in store.get_all("inventory", session_id=session_id):
            item = prices.get(item_key(record.item_name))
            if item is None:
                continue
            if money(record.unit_price) == item.unit_price and int(record.quantity or 1) == item.quantity:
                continue
            store.put("inventory", {"id": record.id, "unit_price": item.unit_price, "quantity": item.quantity})
            changed += 1
    return changed


def display_inventory(store, remote=None, connectivity=None, *, session_id: str | None = None,
                      previous: list[InventoryLine] | None = None) -> list[InventoryLine]:
    """Current inventory view: the session's own lines when it has any, else reconciled history."""
    master = load_master_list(store, remote, connectivity)
    if session_id and master is not None:
        apply_master_prices(store, session_id, master)
    lines = session_lines(store, session_id) if session_id else []
    if lines:
        current = {line.key: line for line in lines}
    else:
        current = reconcile(store.get_all("inventory"))
    return merge_with_master(current, master, previous)
