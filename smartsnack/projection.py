"""Local order projection kept in sync with the store feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from smartsnack.cache import SnapshotCache
from smartsnack.errors import SubscriptionError
from smartsnack.models import Order, OrderStatus
from smartsnack.records import parse_order_records
from smartsnack.store import OrderStore, Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectionSnapshot:
    """
    One complete view of the order collection.

    `live` is False for the empty initial view and for a view bootstrapped
    from the local cache before the first feed delivery.
    """

    orders: tuple[Order, ...] = field(default_factory=tuple)
    live: bool = False
    received_at: datetime | None = None

    def get(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def with_status(self, *statuses: OrderStatus) -> list[Order]:
        return [order for order in self.orders if order.status in statuses]


SnapshotListener = Callable[[ProjectionSnapshot], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderProjection:
    """
    In-memory mirror of the order collection.

    The snapshot is replaced wholesale on every feed delivery and is never
    mutated by consumers. All writes go through the store.
    """

    def __init__(
        self,
        store: OrderStore,
        cache: SnapshotCache | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._cache = cache
        self._clock = clock
        self._snapshot = ProjectionSnapshot()
        self._subscription: Subscription | None = None
        self._listeners: list[SnapshotListener] = []

    @property
    def snapshot(self) -> ProjectionSnapshot:
        return self._snapshot

    @property
    def orders(self) -> tuple[Order, ...]:
        return self._snapshot.orders

    @property
    def is_live(self) -> bool:
        return self._snapshot.live

    @property
    def running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback for every new snapshot; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def bootstrap(self) -> bool:
        """Load the cached snapshot as a stale view if no live data has arrived yet."""
        if self._snapshot.live or self._cache is None:
            return False
        records = self._cache.load_orders()
        if records is None:
            return False
        orders = parse_order_records(records, self._clock)
        logger.info("Bootstrapped %d orders from local cache", len(orders))
        self._replace(ProjectionSnapshot(orders=tuple(orders), live=False, received_at=None))
        return True

    def start(self) -> Subscription:
        """Subscribe to the store feed; the store delivers the current state immediately."""
        if self._subscription is not None and self._subscription.active:
            return self._subscription
        self._subscription = self._store.subscribe(self._on_records, self._on_error)
        return self._subscription

    def stop(self) -> None:
        """Release the feed. Safe to call repeatedly."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()

    def _on_records(self, records: list[dict[str, Any]]) -> None:
        orders = parse_order_records(records, self._clock)
        snapshot = ProjectionSnapshot(orders=tuple(orders), live=True, received_at=self._clock())
        if self._cache is not None:
            # Raw records, so defaults filled in by parsing are not persisted as data.
            self._cache.save_orders(list(records))
        self._replace(snapshot)

    def _on_error(self, error: SubscriptionError) -> None:
        # Keep serving the last good snapshot.
        logger.error("Order subscription error, keeping %d cached orders: %s", len(self._snapshot.orders), error)

    def _replace(self, snapshot: ProjectionSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Projection listener raised")
