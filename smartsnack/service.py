"""Write operations on orders: creation, status transitions, deletion, settlement."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from smartsnack.billing import settle_table
from smartsnack.data import build_order_items
from smartsnack.models import OrderItem, OrderStatus
from smartsnack.projection import OrderProjection
from smartsnack.status import check_transition
from smartsnack.store import OrderStore

logger = logging.getLogger(__name__)


class OrderService:
    """Issues writes against the store after checking them against the projection."""

    def __init__(self, store: OrderStore, projection: OrderProjection) -> None:
        self.store = store
        self.projection = projection

    def create_order(self, table_number: str, items: Sequence[OrderItem]) -> str:
        """Submit a new pending order; raises ValueError for bad input, WriteFailed on store failure."""
        if not items:
            raise ValueError("Cannot submit an empty order")
        return self.store.create(table_number, items)

    def create_order_from_menu(self, table_number: str, selection: Iterable[tuple[str, int]]) -> str:
        """Snapshot (menu item id, quantity) pairs from the menu and submit them."""
        return self.create_order(table_number, build_order_items(selection))

    def transition(self, order_id: str, new_status: OrderStatus) -> None:
        """Move one order along the status machine; illegal moves never reach the store."""
        current = self.projection.snapshot.get(order_id)
        check_transition(order_id, current.status if current else None, new_status)
        self.store.update_status(order_id, new_status)

    def start_preparing(self, order_id: str) -> None:
        self.transition(order_id, OrderStatus.PREPARING)

    def complete(self, order_id: str) -> None:
        self.transition(order_id, OrderStatus.COMPLETED)

    def cancel(self, order_id: str) -> None:
        self.transition(order_id, OrderStatus.CANCELLED)

    def delete_order(self, order_id: str) -> None:
        """Administrative void of a wrongly entered order; bypasses the status machine."""
        logger.warning("Deleting order %s", order_id)
        self.store.delete(order_id)

    def settle_table(self, table_number: str) -> list[str]:
        return settle_table(self.store, self.projection, table_number)
