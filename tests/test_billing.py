from __future__ import annotations

import pytest

from conftest import make_order, rice
from smartsnack.billing import active_tables, outstanding_total, settle_table, table_sort_key
from smartsnack.config import TAKEOUT_TABLE
from smartsnack.errors import PartialSettlement, WriteFailed
from smartsnack.models import OrderItem, OrderStatus


def _completed(service, table_number, items=None):
    order_id = service.create_order(table_number, items or [rice()])
    service.start_preparing(order_id)
    service.complete(order_id)
    return order_id


def test_only_completed_orders_are_billable():
    orders = [
        make_order("a", "1", OrderStatus.PENDING),
        make_order("b", "1", OrderStatus.PREPARING),
        make_order("c", "1", OrderStatus.CANCELLED),
        make_order("d", "1", OrderStatus.PAID),
        make_order("e", "2", OrderStatus.COMPLETED),
    ]

    tables = active_tables(orders)

    assert [(table.table_number, table.total_amount, table.order_ids) for table in tables] == [("2", 90, ("e",))]


def test_orders_of_one_table_are_merged():
    egg = OrderItem(menu_item_id="5", name="Egg", price=15, quantity=2)
    orders = [
        make_order("a", "3", OrderStatus.COMPLETED),
        make_order("b", "3", OrderStatus.COMPLETED, items=[egg]),
    ]

    (table,) = active_tables(orders)

    assert table.total_amount == 120
    assert set(table.order_ids) == {"a", "b"}


def test_tables_sort_numerically_then_by_label():
    orders = [
        make_order(str(idx), table, OrderStatus.COMPLETED)
        for idx, table in enumerate(["10", TAKEOUT_TABLE, "2", "Bar", "bar"])
    ]

    assert [table.table_number for table in active_tables(orders)] == ["2", "10", "Bar", "bar", TAKEOUT_TABLE]


def test_table_sort_key_is_total():
    assert table_sort_key("Bar") < table_sort_key("bar")
    assert table_sort_key("9") < table_sort_key("10")
    assert table_sort_key("10") < table_sort_key("A")


def test_outstanding_total_sums_active_tables():
    orders = [
        make_order("a", "1", OrderStatus.COMPLETED),
        make_order("b", "2", OrderStatus.COMPLETED),
        make_order("c", "2", OrderStatus.PENDING),
    ]

    assert outstanding_total(active_tables(orders)) == 180
    assert outstanding_total([]) == 0


def test_settle_marks_every_open_order_of_the_table_paid(service, projection):
    completed = _completed(service, "5")
    pending = service.create_order("5", [rice(1)])
    other = _completed(service, "6")

    settled = service.settle_table("5")

    assert set(settled) == {completed, pending}
    assert projection.snapshot.get(completed).status is OrderStatus.PAID
    assert projection.snapshot.get(pending).status is OrderStatus.PAID
    assert projection.snapshot.get(other).status is OrderStatus.COMPLETED
    assert [table.table_number for table in active_tables(projection.orders)] == ["6"]


def test_settle_leaves_cancelled_orders_alone(service, projection):
    cancelled = service.create_order("5", [rice()])
    service.cancel(cancelled)

    assert service.settle_table("5") == []
    assert projection.snapshot.get(cancelled).status is OrderStatus.CANCELLED


def test_settling_twice_is_a_noop(service, store):
    _completed(service, "5")
    service.settle_table("5")
    calls = len(store.update_calls)

    assert service.settle_table("5") == []
    assert len(store.update_calls) == calls


def test_partial_settlement_reports_split_and_retry_finishes(service, store, projection):
    first = _completed(service, "5")
    second = _completed(service, "5")
    store.fail_ids.add(second)

    with pytest.raises(PartialSettlement) as excinfo:
        service.settle_table("5")

    assert excinfo.value.settled_ids == (first,)
    assert excinfo.value.failed_ids == (second,)
    assert projection.snapshot.get(first).status is OrderStatus.PAID
    assert projection.snapshot.get(second).status is OrderStatus.COMPLETED

    store.fail_ids.clear()
    assert service.settle_table("5") == [second]


def test_settlement_with_every_write_failing_raises_write_failed(service, store, projection):
    order_id = _completed(service, "5")
    store.fail_ids.add(order_id)

    with pytest.raises(WriteFailed):
        service.settle_table("5")

    assert projection.snapshot.get(order_id).status is OrderStatus.COMPLETED


def test_order_arriving_mid_settlement_stays_open(service, store, projection, monkeypatch):
    captured = _completed(service, "5")
    original_update = store.update_status
    late_ids = []

    def update_and_race(order_id, status):
        if not late_ids:
            late_ids.append(store.create("5", [rice()]))
        original_update(order_id, status)

    monkeypatch.setattr(store, "update_status", update_and_race)

    assert settle_table(store, projection, "5") == [captured]
    assert projection.snapshot.get(late_ids[0]).status is OrderStatus.PENDING


def test_non_ascii_digit_tables_sort_as_labels():
    orders = [
        make_order("a", "²", OrderStatus.COMPLETED),
        make_order("b", "3", OrderStatus.COMPLETED),
        make_order("c", "①", OrderStatus.COMPLETED),
    ]

    tables = [table.table_number for table in active_tables(orders)]

    assert tables[0] == "3"
    assert set(tables[1:]) == {"²", "①"}


def test_overlong_numeric_table_does_not_break_sorting():
    huge = "9" * 5000
    orders = [make_order("a", huge, OrderStatus.COMPLETED), make_order("b", "12", OrderStatus.COMPLETED)]

    assert [table.table_number for table in active_tables(orders)] == ["12", huge]
