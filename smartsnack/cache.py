"""Local durable key/value cache for the last order snapshot and settings."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from smartsnack.config import AUTO_PRINT_SETTING_KEY, CACHE_PATH, ORDERS_CACHE_KEY

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SnapshotCache:
    """SQLite-backed key/value cache; failures are logged, never raised."""

    def __init__(self, path: str | Path = CACHE_PATH) -> None:
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS local_cache (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                saved_at TEXT NOT NULL
            )
            """
        )
        return conn

    def get(self, key: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM local_cache WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            logger.warning("Local cache read failed for %s: %s", key, exc)
            return None
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as exc:
            logger.warning("Local cache entry %s is corrupt: %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value, ensure_ascii=False)
            with self._connect() as conn:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO local_cache (key, value, saved_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value, saved_at = excluded.saved_at
                        """,
                        (key, payload, _utc_now_iso()),
                    )
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.warning("Local cache write failed for %s: %s", key, exc)
            return False
        return True

    def load_orders(self) -> list[dict[str, Any]] | None:
        """Return the last mirrored order records, or None if nothing usable is cached."""
        value = self.get(ORDERS_CACHE_KEY)
        if not isinstance(value, list):
            return None
        return [record for record in value if isinstance(record, dict)]

    def save_orders(self, records: list[dict[str, Any]]) -> bool:
        return self.set(ORDERS_CACHE_KEY, records)

    def load_auto_print(self) -> bool:
        return self.get(AUTO_PRINT_SETTING_KEY) is True

    def save_auto_print(self, enabled: bool) -> bool:
        return self.set(AUTO_PRINT_SETTING_KEY, bool(enabled))
