"""SQLite order store with a full-collection subscription feed."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence
from uuid import uuid4

from smartsnack.config import DB_PATH, STORE_WRITE_TIMEOUT_SECONDS
from smartsnack.errors import SubscriptionError, WriteFailed
from smartsnack.models import OrderItem, OrderStatus, order_total

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[dict[str, Any]]], None]
ErrorCallback = Callable[[SubscriptionError], None]


class Subscription:
    """Handle for a live feed. `cancel()` may be called any number of times."""

    def __init__(self, on_cancel: Callable[["Subscription"], None]) -> None:
        self._on_cancel: Callable[[Subscription], None] | None = on_cancel

    @property
    def active(self) -> bool:
        return self._on_cancel is not None

    def cancel(self) -> None:
        on_cancel, self._on_cancel = self._on_cancel, None
        if on_cancel is not None:
            on_cancel(self)


class OrderStore(Protocol):
    """Read/write/subscribe contract of the authoritative order collection."""

    def create(self, table_number: str, items: Sequence[OrderItem]) -> str: ...

    def update_status(self, order_id: str, status: OrderStatus) -> None: ...

    def delete(self, order_id: str) -> None: ...

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None) -> Subscription: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SqliteOrderStore:
    """
    Order collection persisted in SQLite.

    Every write made through this store pushes the full collection to all
    subscribers. Writes made by other processes on the same file are picked
    up by `poll()`.
    """

    def __init__(
        self,
        db_path: str | Path = DB_PATH,
        timeout: float = STORE_WRITE_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._clock = clock
        self._subscribers: dict[Subscription, tuple[SnapshotCallback, ErrorCallback | None]] = {}
        self._watch_conn: sqlite3.Connection | None = None
        self._seen_data_version: int | None = None

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _watch(self) -> sqlite3.Connection:
        if self._watch_conn is None:
            self._watch_conn = self._connect()
        return self._watch_conn

    def bootstrap_schema(self) -> None:
        """Create the schema if it does not already exist."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS orders (
                    id TEXT PRIMARY KEY,
                    table_number TEXT NOT NULL,
                    total_price REAL NOT NULL,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    paid_at TEXT
                );

                CREATE TABLE IF NOT EXISTS order_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id TEXT NOT NULL,
                    line_index INTEGER NOT NULL,
                    menu_item_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    price REAL NOT NULL,
                    quantity INTEGER NOT NULL,
                    FOREIGN KEY(order_id) REFERENCES orders(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_orders_created_at
                    ON orders(created_at);

                CREATE INDEX IF NOT EXISTS idx_order_items_order_id_line
                    ON order_items(order_id, line_index);
                """
            )

    def close(self) -> None:
        if self._watch_conn is not None:
            self._watch_conn.close()
            self._watch_conn = None

    # Writes

    def create(self, table_number: str, items: Sequence[OrderItem]) -> str:
        """Persist a new pending order and return its id."""
        table_number = table_number.strip()
        if not table_number:
            raise ValueError("table_number is required")
        copied_items = list(items)
        if not copied_items:
            raise ValueError("Cannot create an order without items")
        if any(item.quantity < 1 for item in copied_items):
            raise ValueError("item quantity must be at least 1")

        order_id = uuid4().hex
        now = self._clock().isoformat()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO orders (id, table_number, total_price, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (order_id, table_number, order_total(copied_items), OrderStatus.PENDING.value, now, now),
                )
                conn.executemany(
                    """
                    INSERT INTO order_items (order_id, line_index, menu_item_id, name, price, quantity)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (order_id, idx, item.menu_item_id, item.name, item.price, item.quantity)
                        for idx, item in enumerate(copied_items)
                    ],
                )
        except sqlite3.Error as exc:
            raise WriteFailed("create", f"table {table_number}", str(exc)) from exc

        logger.info("Created order %s for table %s", order_id, table_number)
        self._broadcast()
        return order_id

    def update_status(self, order_id: str, status: OrderStatus) -> None:
        """Write a new status unconditionally; legality is checked by callers."""
        now = self._clock().isoformat()
        paid_at = now if status is OrderStatus.PAID else None
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    "UPDATE orders SET status = ?, updated_at = ?, paid_at = COALESCE(?, paid_at) WHERE id = ?",
                    (status.value, now, paid_at, order_id),
                )
        except sqlite3.Error as exc:
            raise WriteFailed("update_status", order_id, str(exc)) from exc
        if cur.rowcount == 0:
            raise WriteFailed("update_status", order_id, "no such order")

        logger.info("Order %s -> %s", order_id, status.value)
        self._broadcast()

    def delete(self, order_id: str) -> None:
        """Remove an order and its items."""
        try:
            with self._connect() as conn:
                cur = conn.execute("DELETE FROM orders WHERE id = ?", (order_id,))
        except sqlite3.Error as exc:
            raise WriteFailed("delete", order_id, str(exc)) from exc
        if cur.rowcount == 0:
            raise WriteFailed("delete", order_id, "no such order")

        logger.info("Deleted order %s", order_id)
        self._broadcast()

    # Reads and feed

    def snapshot(self) -> list[dict[str, Any]]:
        """Read the full collection as store records, newest first."""
        conn = self._watch()
        items_by_order: dict[str, list[dict[str, Any]]] = {}
        for order_id, menu_item_id, name, price, quantity in conn.execute(
            """
            SELECT order_id, menu_item_id, name, price, quantity
            FROM order_items
            ORDER BY order_id, line_index
            """
        ):
            items_by_order.setdefault(order_id, []).append(
                {"menuItemId": menu_item_id, "name": name, "price": price, "quantity": quantity}
            )

        records = []
        for order_id, table_number, total_price, status, created_at, updated_at, paid_at in conn.execute(
            """
            SELECT id, table_number, total_price, status, created_at, updated_at, paid_at
            FROM orders
            ORDER BY created_at DESC
            """
        ):
            records.append(
                {
                    "id": order_id,
                    "tableNumber": table_number,
                    "items": items_by_order.get(order_id, []),
                    "totalPrice": total_price,
                    "status": status,
                    "createdAt": created_at,
                    "updatedAt": updated_at,
                    "paidAt": paid_at,
                }
            )
        return records

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None) -> Subscription:
        """Register a feed callback and deliver the current collection immediately."""
        subscription = Subscription(self._unsubscribe)
        self._subscribers[subscription] = (on_snapshot, on_error)
        self._deliver({subscription: (on_snapshot, on_error)})
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.pop(subscription, None)

    def poll(self) -> bool:
        """Push a fresh snapshot if another connection changed the database."""
        if not self._subscribers:
            return False
        try:
            (version,) = self._watch().execute("PRAGMA data_version").fetchone()
        except sqlite3.Error as exc:
            self._fail(dict(self._subscribers), SubscriptionError(f"poll failed: {exc}"))
            return False
        if version == self._seen_data_version:
            return False
        self._broadcast()
        return True

    def _broadcast(self) -> None:
        if self._subscribers:
            self._deliver(dict(self._subscribers))

    def _deliver(self, targets: dict[Subscription, tuple[SnapshotCallback, ErrorCallback | None]]) -> None:
        try:
            records = self.snapshot()
            (self._seen_data_version,) = self._watch().execute("PRAGMA data_version").fetchone()
        except sqlite3.Error as exc:
            self._fail(targets, SubscriptionError(f"snapshot read failed: {exc}"))
            return

        for subscription, (on_snapshot, _) in targets.items():
            if not subscription.active:
                continue
            try:
                on_snapshot(records)
            except Exception:
                logger.exception("Order feed subscriber raised")

    def _fail(
        self,
        targets: dict[Subscription, tuple[SnapshotCallback, ErrorCallback | None]],
        error: SubscriptionError,
    ) -> None:
        logger.error("Order feed error: %s", error)
        for subscription, (_, on_error) in targets.items():
            if subscription.active and on_error is not None:
                on_error(error)
