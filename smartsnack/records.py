"""Mapping between loosely-typed store records and domain orders.

Store records use the document shape of the order collection::

    {
        "id": "...",
        "tableNumber": "5",
        "items": [{"menuItemId": "1", "name": "...", "price": 45, "quantity": 2}],
        "totalPrice": 90,
        "status": "pending",
        "createdAt": "2024-03-15T12:00:00+00:00",
        "updatedAt": "...",
        "paidAt": null,
    }

Parsing runs once at the projection boundary. Everything downstream works on
`Order` values only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from smartsnack.config import UNKNOWN_TABLE
from smartsnack.errors import MalformedRecord
from smartsnack.models import Order, OrderItem, OrderStatus, order_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedRecord:
    """Result of parsing one record.

    `order` is None only when the record cannot be used at all (no id or an
    unknown status). `issues` lists every field that was defaulted.
    """

    order: Order | None
    issues: tuple[MalformedRecord, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.order is not None and not self.issues


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Normalize a store timestamp to an aware datetime, or None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    return None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _parse_items(record_id: str, raw_items: Any, issues: list[MalformedRecord]) -> tuple[OrderItem, ...]:
    if not isinstance(raw_items, (list, tuple)):
        issues.append(MalformedRecord(record_id, "items", "missing or not a list"))
        return ()

    items: list[OrderItem] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, Mapping):
            issues.append(MalformedRecord(record_id, f"items[{idx}]", "not an object; line skipped"))
            continue
        menu_item_id = str(raw.get("menuItemId") or "")
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            issues.append(MalformedRecord(record_id, f"items[{idx}].name", "missing"))
            name = menu_item_id or "?"
        price = _as_number(raw.get("price"))
        if price is None:
            issues.append(MalformedRecord(record_id, f"items[{idx}].price", "missing or not a number"))
            price = 0
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            issues.append(MalformedRecord(record_id, f"items[{idx}].quantity", "missing or below 1"))
            quantity = 1
        items.append(OrderItem(menu_item_id=menu_item_id, name=name, price=price, quantity=quantity))
    return tuple(items)


def parse_order_record(raw: Mapping[str, Any], now: Callable[[], datetime] = _utc_now) -> ParsedRecord:
    """Validate one store record and build an `Order`, defaulting bad fields."""
    issues: list[MalformedRecord] = []

    raw_id = raw.get("id")
    if raw_id is None or str(raw_id) == "":
        return ParsedRecord(None, (MalformedRecord(None, "id", "missing; record skipped"),))
    record_id = str(raw_id)

    try:
        status = OrderStatus(raw.get("status"))
    except ValueError:
        return ParsedRecord(
            None, (MalformedRecord(record_id, "status", f"unknown value {raw.get('status')!r}; record skipped"),)
        )

    table = raw.get("tableNumber")
    if table is None or str(table).strip() == "":
        issues.append(MalformedRecord(record_id, "tableNumber", "missing"))
        table_number = UNKNOWN_TABLE
    else:
        table_number = str(table).strip()

    items = _parse_items(record_id, raw.get("items"), issues)

    total_price = _as_number(raw.get("totalPrice"))
    if total_price is None:
        issues.append(MalformedRecord(record_id, "totalPrice", "missing; recomputed from items"))
        total_price = order_total(items)

    created_at = parse_timestamp(raw.get("createdAt"))
    if created_at is None:
        issues.append(MalformedRecord(record_id, "createdAt", f"unusable value {raw.get('createdAt')!r}; using now"))
        created_at = now()

    order = Order(
        id=record_id,
        table_number=table_number,
        items=items,
        total_price=total_price,
        status=status,
        created_at=created_at,
        updated_at=parse_timestamp(raw.get("updatedAt")),
        paid_at=parse_timestamp(raw.get("paidAt")),
    )
    return ParsedRecord(order, tuple(issues))


def parse_order_records(raws: list[Mapping[str, Any]], now: Callable[[], datetime] = _utc_now) -> list[Order]:
    """Parse a full collection, logging every defaulted field and skipped record."""
    orders: list[Order] = []
    for raw in raws:
        parsed = parse_order_record(raw, now)
        for issue in parsed.issues:
            logger.warning("Malformed order record: %s", issue)
        if parsed.order is not None:
            orders.append(parsed.order)
    return orders


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def to_record(order: Order) -> dict[str, Any]:
    """Serialize an order back into the store record shape."""
    return {
        "id": order.id,
        "tableNumber": order.table_number,
        "items": [
            {"menuItemId": item.menu_item_id, "name": item.name, "price": item.price, "quantity": item.quantity}
            for item in order.items
        ],
        "totalPrice": order.total_price,
        "status": order.status.value,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
        "paidAt": _iso(order.paid_at),
    }
