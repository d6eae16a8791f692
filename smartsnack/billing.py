"""Per-table billing aggregation and table settlement."""

from __future__ import annotations

import logging
import unicodedata
from typing import Iterable

from smartsnack.errors import PartialSettlement, WriteFailed
from smartsnack.models import Order, OrderStatus, TableTotal
from smartsnack.projection import OrderProjection
from smartsnack.status import SETTLEABLE_STATUSES
from smartsnack.store import OrderStore

logger = logging.getLogger(__name__)

BILLABLE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.COMPLETED})


def table_sort_key(table_number: str) -> tuple[int, int, str, str]:
    """
    Total order over table designators.

    Numeric tables come first by value ("2" before "10"), then any other
    designator such as the takeout label, compared case- and width-insensitively.
    The NFKC casefold comparison stands in for locale collation so the order
    does not depend on the host locale.
    """
    text = table_number.strip()
    if text.isdecimal():
        try:
            return (0, int(text), "", table_number)
        except ValueError:
            # Longer than int() accepts; sorted as a label.
            pass
    return (1, 0, unicodedata.normalize("NFKC", text).casefold(), table_number)


def active_tables(orders: Iterable[Order]) -> list[TableTotal]:
    """Tables with at least one completed, unsettled order, with their totals."""
    amounts: dict[str, float] = {}
    order_ids: dict[str, list[str]] = {}
    for order in orders:
        if order.status not in BILLABLE_STATUSES:
            continue
        amounts[order.table_number] = amounts.get(order.table_number, 0) + order.total_price
        order_ids.setdefault(order.table_number, []).append(order.id)

    return [
        TableTotal(table_number=table, total_amount=amounts[table], order_ids=tuple(order_ids[table]))
        for table in sorted(amounts, key=table_sort_key)
    ]


def outstanding_total(tables: Iterable[TableTotal]) -> float:
    """Outstanding revenue across all active tables."""
    return sum(table.total_amount for table in tables)


def settlement_targets(orders: Iterable[Order], table_number: str) -> list[str]:
    """Ids of the table's orders that a settlement would mark paid right now."""
    return [
        order.id for order in orders if order.table_number == table_number and order.status in SETTLEABLE_STATUSES
    ]


def settle_table(store: OrderStore, projection: OrderProjection, table_number: str) -> list[str]:
    """
    Mark every currently unsettled order of a table as paid.

    The target ids are captured from the projection before any write. Only
    those ids are written, so orders arriving mid-settlement stay open.
    Returns the ids that were paid.
    """
    targets = settlement_targets(projection.orders, table_number)
    if not targets:
        logger.info("Table %s has nothing to settle", table_number)
        return []

    settled: list[str] = []
    failures: dict[str, WriteFailed] = {}
    for order_id in targets:
        try:
            store.update_status(order_id, OrderStatus.PAID)
        except WriteFailed as exc:
            logger.error("Settlement write failed for order %s: %s", order_id, exc)
            failures[order_id] = exc
        else:
            settled.append(order_id)

    if failures and settled:
        raise PartialSettlement(table_number, settled, failures)
    if failures:
        first = next(iter(failures.values()))
        raise WriteFailed("settle_table", f"table {table_number}", first.reason) from first

    logger.info("Settled table %s (%d orders)", table_number, len(settled))
    return settled
