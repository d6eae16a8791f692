"""At-most-once automatic printing of newly observed pending orders."""

from __future__ import annotations

import logging
from typing import Callable

from smartsnack.config import AUTO_PRINT_BURST_POLICY
from smartsnack.models import Order, OrderStatus
from smartsnack.projection import ProjectionSnapshot

logger = logging.getLogger(__name__)

BURST_POLICIES = ("latest", "queue")

PrintOrder = Callable[[Order], None]
Notify = Callable[[str], None]


class AutoPrintDispatcher:
    """
    Fires the print side effect the first time this process sees an order pending.

    The dispatched-id set lives only in memory and is never persisted, so a
    restart may reprint a still-pending order once.
    """

    def __init__(
        self,
        print_order: PrintOrder,
        notify: Notify | None = None,
        enabled: bool = False,
        burst_policy: str = AUTO_PRINT_BURST_POLICY,
    ) -> None:
        if burst_policy not in BURST_POLICIES:
            raise ValueError(f"burst_policy must be one of {BURST_POLICIES}, got {burst_policy!r}")
        self._print_order = print_order
        self._notify = notify
        self.enabled = enabled
        self.burst_policy = burst_policy
        self._dispatched: set[str] = set()

    @property
    def dispatched(self) -> frozenset[str]:
        return frozenset(self._dispatched)

    def reset(self) -> None:
        self._dispatched.clear()

    def observe(self, snapshot: ProjectionSnapshot) -> list[Order]:
        """Handle one projection update and return the orders that were dispatched."""
        if not self.enabled or not snapshot.live:
            return []

        fresh = [
            order
            for order in snapshot.orders
            if order.status is OrderStatus.PENDING and order.id not in self._dispatched
        ]
        if not fresh:
            return []
        fresh.sort(key=lambda order: order.created_at)

        if self.burst_policy == "queue":
            for order in fresh:
                self._dispatch(order)
            return fresh

        newest = fresh[-1]
        skipped = fresh[:-1]
        self._dispatched.update(order.id for order in skipped)
        if skipped:
            logger.info("Auto-print burst: skipping %d older pending orders", len(skipped))
        self._dispatch(newest)
        return [newest]

    def _dispatch(self, order: Order) -> None:
        # Marked first so a failing printer cannot cause a retry loop.
        self._dispatched.add(order.id)
        logger.info("Auto-printing order %s for table %s", order.id, order.table_number)
        try:
            self._print_order(order)
        except Exception as exc:
            logger.error("Auto-print failed for order %s: %s", order.id, exc)
            if self._notify is not None:
                self._notify(f"Auto-print failed for table {order.table_number} #{order.short_id}: {exc}")
