import unittest
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from laundrypos.services import inventory_service
from laundrypos.services.inventory_service import InventoryError, InventoryLine, MasterItem


T0 = datetime(2026, 3, 1, 8, 0, 0)


def _record(item_name, *, start=0, add=0, sold=0, left=None, price=2.5, minutes=0, session_id="s1", record_id=None):
    left = max(0, start + add - sold) if left is None else left
    stamp = T0 + timedelta(minutes=minutes)
    return SimpleNamespace(
        id=record_id or f"{item_name}-{minutes}",
        item_name=item_name,
        session_id=session_id,
        unit_price=price,
        quantity=1,
        start_count=start,
        add_count=add,
        sold_count=sold,
        left_count=left,
        total_amount=round(sold * price, 2),
        created_at=stamp,
        updated_at=stamp,
    )


class ReconcileTests(unittest.TestCase):
    def test_most_recent_record_with_counts_wins_over_newer_zero_record(self):
        records = [
            _record("Widget", start=10, sold=2, minutes=0),
            _record("Widget", minutes=30),
        ]

        current = inventory_service.reconcile(records)

        self.assertEqual(list(current), ["widget"])
        self.assertEqual(current["widget"].left_count, 8)
        self.assertEqual(current["widget"].record_id, "Widget-0")

    def test_later_sale_record_is_the_current_state(self):
        records = [
            _record("Widget", start=10, left=10, minutes=0),
            _record("Widget", start=10, sold=6, left=4, minutes=15),
        ]

        current = inventory_service.reconcile(records)

        self.assertEqual(current["widget"].left_count, 4)
        self.assertEqual(current["widget"].start_count, 10)

    def test_latest_counted_record_wins(self):
        records = [
            _record("Widget", start=10, sold=2, minutes=0),
            _record("Widget", start=8, sold=3, minutes=10),
        ]

        current = inventory_service.reconcile(records)

        self.assertEqual(current["widget"].left_count, 5)

    def test_all_zero_group_uses_most_recent_record(self):
        records = [
            _record("Bleach", price=1.0, minutes=0),
            _record("Bleach", price=1.25, minutes=5),
        ]

        current = inventory_service.reconcile(records)

        self.assertEqual(current["bleach"].unit_price, 1.25)

    def test_grouping_ignores_case(self):
        records = [
            _record("Downy", start=4, minutes=0),
            _record("downy", start=6, minutes=1),
        ]

        current = inventory_service.reconcile(records)

        self.assertEqual(len(current), 1)
        self.assertEqual(current["downy"].start_count, 6)

    def test_seed_carries_left_over_as_start(self):
        current = inventory_service.reconcile([_record("Widget", start=10, add=2, sold=4)])

        seeded = inventory_service.seed_lines(current)

        self.assertEqual(len(seeded), 1)
        line = seeded[0]
        self.assertEqual((line.start_count, line.add_count, line.sold_count, line.left_count), (8, 0, 0, 8))
        self.assertEqual(line.total_amount, 0.0)

    def test_collapse_sums_duplicate_items(self):
        records = [
            _record("Tide", start=5, sold=1, price=3.0, minutes=0),
            _record("tide", start=2, sold=2, price=9.0, minutes=1),
        ]

        lines = inventory_service.collapse_session_lines(records)

        self.assertEqual(len(lines), 1)
        self.assertEqual(lines[0].start_count, 7)
        self.assertEqual(lines[0].sold_count, 3)
        self.assertEqual(lines[0].unit_price, 3.0)
        self.assertEqual(lines[0].total_amount, 21.0)


class MasterMergeTests(unittest.TestCase):
    def setUp(self):
        self.current = {
            "downy": InventoryLine(item_name="downy", unit_price=2.5, start_count=10, sold_count=2, left_count=8, total_amount=5.0),
            "bleach": InventoryLine(item_name="Bleach", unit_price=1.0, start_count=3, left_count=3),
        }
        self.master = [MasterItem("Downy", 2.75), MasterItem("Tide", 3.0, quantity=2)]

    def test_master_defines_order_price_and_visibility(self):
        merged = inventory_service.merge_with_master(self.current, self.master)

        self.assertEqual([line.item_name for line in merged], ["Downy", "Tide"])
        downy, tide = merged
        self.assertEqual(downy.unit_price, 2.75)
        self.assertEqual(downy.left_count, 8)
        self.assertEqual(downy.total_amount, 5.5)
        self.assertEqual((tide.quantity, tide.start_count, tide.left_count), (2, 0, 0))

    def test_missing_master_keeps_previous_view(self):
        previous = [InventoryLine(item_name="Downy", unit_price=2.75)]

        self.assertEqual(inventory_service.merge_with_master(self.current, None, previous), previous)

    def test_missing_master_without_previous_shows_current_lines(self):
        merged = inventory_service.merge_with_master(self.current, None)

        self.assertEqual([line.key for line in merged], ["bleach", "downy"])


def test_is_untouched():
    assert inventory_service.is_untouched([])
    assert inventory_service.is_untouched([_record("Widget")])
    assert not inventory_service.is_untouched([_record("Widget"), _record("Tide", start=1)])


def test_downy_carries_over_between_employees(terminal):
    store, sessions = terminal.store, terminal.sessions
    session_a = sessions.switch_employee("employee-a")

    record = inventory_service.update_item_counts(store, session_a.id, "Downy 19 oz", start=20, sold=5, unit_price=5.50)

    assert record.left_count == 15
    assert record.total_amount == 27.50

    session_b = sessions.switch_employee("employee-b")
    lines = inventory_service.session_lines(store, session_b.id)

    assert session_b.id != session_a.id
    assert [(l.item_name, l.start_count, l.add_count, l.sold_count, l.left_count) for l in lines] == [
        ("Downy 19 oz", 15, 0, 0, 15)
    ]
    assert lines[0].unit_price == 5.50


def test_update_item_counts_edits_existing_line(terminal):
    session = terminal.sessions.resolve("employee-a")
    inventory_service.update_item_counts(terminal.store, session.id, "Tide", start=10, unit_price=3)

    record = inventory_service.update_item_counts(terminal.store, session.id, "tide", add=4, sold=6)

    assert len(terminal.store.get_all("inventory", session_id=session.id)) == 1
    assert (record.start_count, record.add_count, record.sold_count, record.left_count) == (10, 4, 6, 8)
    assert record.total_amount == 18.0


def test_update_item_counts_rejects_bad_edits(terminal):
    session = terminal.sessions.resolve("employee-a")

    with pytest.raises(InventoryError):
        inventory_service.update_item_counts(terminal.store, session.id, "Tide", sold=-1)
    with pytest.raises(InventoryError):
        inventory_service.update_item_counts(terminal.store, "missing-session", "Tide", sold=1)

    terminal.sessions.complete(session.id)
    with pytest.raises(InventoryError):
        inventory_service.update_item_counts(terminal.store, session.id, "Tide", sold=1)


def test_seed_session_leaves_existing_inventory_alone(terminal):
    session = terminal.sessions.resolve("employee-a")
    inventory_service.update_item_counts(terminal.store, session.id, "Tide", start=3)

    records = inventory_service.seed_session(terminal.store, session.id)

    assert len(records) == 1
    assert records[0].start_count == 3


def test_master_list_is_cached_for_offline_display(terminal, remote, connectivity):
    remote.seed("master_items", [
        {"id": "m-downy", "item_name": "Downy", "price": 2.75, "quantity": 1},
        {"id": "m-tide", "item_name": "Tide", "price": 3.00, "quantity": 1},
    ])

    online = inventory_service.display_inventory(terminal.store, remote, connectivity)
    assert [line.item_name for line in online] == ["Downy", "Tide"]

    template = terminal.store.get("inventory", "m-downy")
    assert template.session_id is None
    assert template.synced is True

    connectivity.online = False
    calls_before = len(remote.calls)
    offline = inventory_service.display_inventory(terminal.store, remote, connectivity)

    assert [line.item_name for line in offline] == ["Downy", "Tide"]
    assert offline[0].unit_price == 2.75
    assert len(remote.calls) == calls_before


def test_display_without_any_master_source_uses_reconciled_history(terminal, remote, connectivity):
    connectivity.online = False
    session = terminal.sessions.resolve("employee-a")
    inventory_service.update_item_counts(terminal.store, session.id, "Tide", start=3, unit_price=3)

    lines = inventory_service.display_inventory(terminal.store, remote, connectivity)

    assert [(line.item_name, line.left_count) for line in lines] == [("Tide", 3)]


def test_master_rows_without_ids_reuse_their_cached_template(terminal, remote, connectivity):
    # Rows keyed only by position; the remote sent no ids
    remote.rows["master_items"] = {
        "row-1": {"item_name": "Downy", "price": 2.75, "quantity": 1},
        "row-2": {"item_name": "Tide", "price": 3.00, "quantity": 1},
    }

    inventory_service.display_inventory(terminal.store, remote, connectivity)
    remote.rows["master_items"]["row-1"]["price"] = 3.25
    inventory_service.display_inventory(terminal.store, remote, connectivity)

    templates = terminal.store.get_all("inventory", session_id=None)
    assert sorted(t.item_name for t in templates) == ["Downy", "Tide"]
    assert next(t for t in templates if t.item_name == "Downy").unit_price == 3.25


def test_display_writes_master_price_onto_the_open_session(terminal, remote, connectivity):
    session = terminal.sessions.resolve("employee-a")
    inventory_service.update_item_counts(terminal.store, session.id, "Downy", start=10, sold=2, unit_price=5.0)
    remote.seed("master_items", [{"id": "m-downy", "item_name": "Downy", "price": 5.5, "quantity": 1}])

    lines = inventory_service.display_inventory(terminal.store, remote, connectivity, session_id=session.id)

    assert lines[0].total_amount == 11.0
    [record] = terminal.store.get_all("inventory", session_id=session.id)
    assert record.unit_price == 5.5
    assert record.total_amount == 11.0
    assert terminal.sessions.refresh_totals(session.id).inventory_total == 11.0


def test_display_leaves_completed_session_prices_alone(terminal, remote, connectivity):
    session = terminal.sessions.resolve("employee-a")
    inventory_service.update_item_counts(terminal.store, session.id, "Downy", start=10, sold=2, unit_price=5.0)
    terminal.sessions.complete(session.id)
    remote.seed("master_items", [{"id": "m-downy", "item_name": "Downy", "price": 5.5, "quantity": 1}])

    inventory_service.display_inventory(terminal.store, remote, connectivity, session_id=session.id)

    [record] = terminal.store.get_all("inventory", session_id=session.id)
    assert record.unit_price == 5.0
    assert record.total_amount == 10.0
