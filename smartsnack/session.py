"""Long-lived session context owning the engine's runtime state."""

from __future__ import annotations

import logging
from typing import Callable

from smartsnack.autoprint import AutoPrintDispatcher, Notify, PrintOrder
from smartsnack.cache import SnapshotCache
from smartsnack.config import AUTO_PRINT_BURST_POLICY
from smartsnack.projection import OrderProjection
from smartsnack.service import OrderService
from smartsnack.store import SqliteOrderStore

logger = logging.getLogger(__name__)


class Session:
    """
    Everything one running dashboard needs, created on start and dropped on exit.

    The auto-print flag is persisted in the local cache; the dispatched-id set
    is not and starts empty with every session.
    """

    def __init__(
        self,
        store: SqliteOrderStore,
        cache: SnapshotCache,
        print_order: PrintOrder,
        notify: Notify | None = None,
        burst_policy: str = AUTO_PRINT_BURST_POLICY,
    ) -> None:
        self.store = store
        self.cache = cache
        self.projection = OrderProjection(store, cache)
        self.service = OrderService(store, self.projection)
        self.dispatcher = AutoPrintDispatcher(
            print_order,
            notify=notify,
            enabled=cache.load_auto_print(),
            burst_policy=burst_policy,
        )
        self._remove_listener: Callable[[], None] | None = None

    @property
    def auto_print_enabled(self) -> bool:
        return self.dispatcher.enabled

    def set_auto_print(self, enabled: bool) -> None:
        self.dispatcher.enabled = enabled
        self.cache.save_auto_print(enabled)
        logger.info("Auto-print %s", "enabled" if enabled else "disabled")

    def start(self) -> None:
        """Show the cached view, then go live on the store feed."""
        self.store.bootstrap_schema()
        self.projection.bootstrap()
        if self._remove_listener is None:
            self._remove_listener = self.projection.add_listener(self.dispatcher.observe)
        self.projection.start()

    def poll(self) -> bool:
        return self.store.poll()

    def close(self) -> None:
        self.projection.stop()
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self.dispatcher.reset()
        self.store.close()
