"""Domain models for the order engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAID = "paid"


@dataclass(frozen=True)
class MenuItem:
    """A read-only menu entry used to snapshot order items."""

    id: str
    name: str
    price: float
    category: str
    available: bool = True


@dataclass(frozen=True)
class OrderItem:
    """One captured order line; name and price never follow later menu edits."""

    menu_item_id: str
    name: str
    price: float
    quantity: int

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class Order:
    """A submitted ticket as seen in the projection."""

    id: str
    table_number: str
    items: tuple[OrderItem, ...]
    total_price: float
    status: OrderStatus
    created_at: datetime
    updated_at: datetime | None = None
    paid_at: datetime | None = None

    @property
    def short_id(self) -> str:
        return self.id[-4:]


def order_total(items: tuple[OrderItem, ...] | list[OrderItem]) -> float:
    """Sum of unit price times quantity over all items."""
    return sum(item.price * item.quantity for item in items)


@dataclass(frozen=True)
class TableTotal:
    """Unsettled balance of one table, derived on every read."""

    table_number: str
    total_amount: float
    order_ids: tuple[str, ...]


@dataclass(frozen=True)
class HistoryReport:
    """Settled orders inside a date range and their summed revenue."""

    start_date: date
    end_date: date
    orders: tuple[Order, ...] = field(default_factory=tuple)
    total_revenue: float = 0

    @property
    def order_count(self) -> int:
        return len(self.orders)
