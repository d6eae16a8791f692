"""Runtime configuration defaults for the store, cache and printing."""

from __future__ import annotations

import os

DB_PATH = os.environ.get("SMARTSNACK_DB_PATH", "data/orders.db")
CACHE_PATH = os.environ.get("SMARTSNACK_CACHE_PATH", "data/local_cache.db")
DEBUG_LOG_PATH = "/tmp/smartsnack-debug.log"

# Fixed keys in the local cache.
ORDERS_CACHE_KEY = "snack_orders"
AUTO_PRINT_SETTING_KEY = "auto_print_enabled"

# All history day boundaries are computed in this zone.
VENUE_TIMEZONE = os.environ.get("SMARTSNACK_TIMEZONE", "Asia/Taipei")

TAKEOUT_TABLE = "外帶"
TABLES = ("1", "2", "3", "5", "6", "7", "8", "9", "10", TAKEOUT_TABLE)
UNKNOWN_TABLE = "未知"

# SQLite busy timeout; a write blocked longer than this fails.
STORE_WRITE_TIMEOUT_SECONDS = 5.0
POLL_INTERVAL_SECONDS = 2.0

# "latest" prints one order per update burst, "queue" prints all of them.
AUTO_PRINT_BURST_POLICY = "latest"

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 32
PRINTER_TITLE_FONT_SIZE = 44
PRINTER_FONT_PATH = "/System/Library/Fonts/PingFang.ttc"
PRINTER_LEFT_INDENT_PX = 16

EXPORT_DIR = os.environ.get("SMARTSNACK_EXPORT_DIR", "exports")
