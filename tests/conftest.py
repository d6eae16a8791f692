"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

import pytest

from smartsnack.cache import SnapshotCache
from smartsnack.errors import WriteFailed
from smartsnack.models import Order, OrderItem, OrderStatus, order_total
from smartsnack.projection import OrderProjection
from smartsnack.service import OrderService
from smartsnack.store import SqliteOrderStore

TAIPEI = ZoneInfo("Asia/Taipei")


class StepClock:
    """Deterministic clock that advances by `step` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class FlakyStore(SqliteOrderStore):
    """SQLite store whose status updates fail for selected order ids."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_ids: set[str] = set()
        self.update_calls: list[tuple[str, OrderStatus]] = []

    def update_status(self, order_id: str, status: OrderStatus) -> None:
        self.update_calls.append((order_id, status))
        if order_id in self.fail_ids:
            raise WriteFailed("update_status", order_id, "simulated outage")
        super().update_status(order_id, status)


def rice(quantity: int = 2) -> OrderItem:
    return OrderItem(menu_item_id="1", name="Rice", price=45, quantity=quantity)


def make_order(
    order_id: str,
    table_number: str = "5",
    status: OrderStatus = OrderStatus.PENDING,
    created_at: datetime | None = None,
    items: Iterable[OrderItem] | None = None,
) -> Order:
    lines = tuple(items) if items is not None else (rice(),)
    return Order(
        id=order_id,
        table_number=table_number,
        items=lines,
        total_price=order_total(lines),
        status=status,
        created_at=created_at or datetime(2024, 3, 15, 12, 0, tzinfo=TAIPEI),
    )


@pytest.fixture
def clock() -> StepClock:
    return StepClock(datetime(2024, 3, 15, 12, 0, tzinfo=TAIPEI))


@pytest.fixture
def store(tmp_path, clock) -> Iterable[FlakyStore]:
    order_store = FlakyStore(tmp_path / "orders.db", timeout=0.2, clock=clock)
    order_store.bootstrap_schema()
    yield order_store
    order_store.close()


@pytest.fixture
def cache(tmp_path) -> SnapshotCache:
    return SnapshotCache(tmp_path / "cache.db")


@pytest.fixture
def projection(store, cache) -> Iterable[OrderProjection]:
    live = OrderProjection(store, cache)
    live.start()
    yield live
    live.stop()


@pytest.fixture
def service(store, projection) -> OrderService:
    return OrderService(store, projection)
