from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from conftest import TAIPEI, make_order
from smartsnack.history import (
    CSV_HEADERS,
    history,
    history_csv,
    history_csv_filename,
    period_range,
    write_history_csv,
)
from smartsnack.models import OrderItem, OrderStatus

MARCH_15 = date(2024, 3, 15)


def _paid(order_id, created_at, table_number="5"):
    return make_order(order_id, table_number, OrderStatus.PAID, created_at=created_at)


def test_end_of_day_is_inclusive_and_midnight_after_is_not():
    late = _paid("late", datetime(2024, 3, 15, 23, 59, 59, tzinfo=TAIPEI))
    next_day = _paid("next", datetime(2024, 3, 16, 0, 0, 0, tzinfo=TAIPEI))
    early = _paid("early", datetime(2024, 3, 15, 0, 0, 0, tzinfo=TAIPEI))

    report = history([late, next_day, early], MARCH_15, MARCH_15, TAIPEI)

    assert [order.id for order in report.orders] == ["late", "early"]
    assert history([late], date(2024, 3, 14), date(2024, 3, 14), TAIPEI).orders == ()


def test_only_paid_orders_count():
    at_noon = datetime(2024, 3, 15, 12, 0, tzinfo=TAIPEI)
    orders = [
        _paid("paid", at_noon),
        make_order("done", status=OrderStatus.COMPLETED, created_at=at_noon),
        make_order("void", status=OrderStatus.CANCELLED, created_at=at_noon),
    ]

    report = history(orders, MARCH_15, MARCH_15, TAIPEI)

    assert [order.id for order in report.orders] == ["paid"]
    assert report.total_revenue == 90


def test_results_are_newest_first_with_summed_revenue():
    orders = [
        _paid("monday", datetime(2024, 3, 11, 9, 0, tzinfo=TAIPEI)),
        _paid("friday", datetime(2024, 3, 15, 20, 0, tzinfo=TAIPEI)),
        _paid("wednesday", datetime(2024, 3, 13, 13, 0, tzinfo=TAIPEI)),
    ]

    report = history(orders, date(2024, 3, 11), MARCH_15, TAIPEI)

    assert [order.id for order in report.orders] == ["friday", "wednesday", "monday"]
    assert report.total_revenue == 270
    assert report.order_count == 3


def test_utc_timestamps_are_bucketed_by_venue_day():
    # 17:00 UTC is already 01:00 the next day in Taipei.
    order = _paid("a", datetime(2024, 3, 15, 17, 0, tzinfo=timezone.utc))

    assert history([order], MARCH_15, MARCH_15, TAIPEI).orders == ()
    assert history([order], date(2024, 3, 16), date(2024, 3, 16), TAIPEI).order_count == 1


def test_reversed_range_is_empty():
    order = _paid("a", datetime(2024, 3, 15, 12, 0, tzinfo=TAIPEI))

    report = history([order], date(2024, 3, 16), MARCH_15, TAIPEI)

    assert report.orders == ()
    assert report.total_revenue == 0


@pytest.mark.parametrize(
    "period, expected",
    [
        ("day", (date(2024, 2, 29), date(2024, 2, 29))),
        ("month", (date(2024, 2, 1), date(2024, 2, 29))),
        ("year", (date(2024, 1, 1), date(2024, 12, 31))),
    ],
)
def test_period_range(period, expected):
    assert period_range(period, date(2024, 2, 29)) == expected


def test_period_range_december():
    assert period_range("month", date(2024, 12, 5)) == (date(2024, 12, 1), date(2024, 12, 31))


def test_period_range_rejects_unknown_period():
    with pytest.raises(ValueError):
        period_range("week", MARCH_15)


def test_history_csv_layout():
    egg = OrderItem(menu_item_id="5", name="滷蛋", price=15, quantity=2)
    order = make_order(
        "abc123",
        "7",
        OrderStatus.PAID,
        created_at=datetime(2024, 3, 15, 4, 30, tzinfo=TAIPEI),
        items=[OrderItem(menu_item_id="1", name="滷肉飯", price=45, quantity=1), egg],
    )
    report = history([order], MARCH_15, MARCH_15, TAIPEI)

    text = history_csv(report, TAIPEI)

    assert text.startswith("\ufeff")
    lines = text[1:].splitlines()
    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[1] == "2024-03-15 04:30:00,7,abc123,滷肉飯x1; 滷蛋x2,75"


def test_history_csv_filename():
    assert history_csv_filename(date(2024, 3, 1), date(2024, 3, 31)) == "小吃店營收報表_2024-03-01_至_2024-03-31.csv"


def test_write_history_csv(tmp_path):
    report = history([_paid("a", datetime(2024, 3, 15, 12, 0, tzinfo=TAIPEI))], MARCH_15, MARCH_15, TAIPEI)

    target = write_history_csv(report, tmp_path / "exports", TAIPEI)

    assert target is not None
    assert target.name == history_csv_filename(MARCH_15, MARCH_15)
    assert target.read_text(encoding="utf-8").startswith("\ufeff")


def test_write_history_csv_skips_empty_report(tmp_path):
    report = history([], MARCH_15, MARCH_15, TAIPEI)

    assert write_history_csv(report, tmp_path) is None
    assert list(tmp_path.iterdir()) == []
