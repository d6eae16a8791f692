"""Main Textual app class."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from smartsnack.autoprint import PrintOrder
from smartsnack.billing import active_tables, outstanding_total
from smartsnack.cache import SnapshotCache
from smartsnack.config import EXPORT_DIR, POLL_INTERVAL_SECONDS
from smartsnack.data import build_order_items, search_menu
from smartsnack.errors import OrderEngineError, PartialSettlement
from smartsnack.history import history, period_range, venue_tz, write_history_csv
from smartsnack.models import HistoryReport, MenuItem, Order, OrderItem, OrderStatus, TableTotal
from smartsnack.printer import check_printer_dependencies, print_order
from smartsnack.projection import ProjectionSnapshot
from smartsnack.rendering import format_cart, format_history, format_money, format_order_row, format_table_row
from smartsnack.session import Session
from smartsnack.store import SqliteOrderStore
from smartsnack.table_number_modal import TableNumberModal

logger = logging.getLogger(__name__)

HISTORY_PERIODS = ("day", "month", "year")


class DashboardApp(App):
    """Staff dashboard: kitchen progress, table billing, revenue history and manual ordering."""

    TITLE = "SmartSnack"
    SUB_TITLE = "出餐進度 / 桌況結帳 / 營收報表"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #kitchen-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #side-pane {
        width: 2fr;
    }

    #billing-pane, #history-pane {
        height: 1fr;
        border: round $secondary;
        padding: 0 1;
    }

    #order-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #results, #cart {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #kitchen-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    search_query = reactive("")
    selected_index = reactive(0)
    kitchen_index = reactive(None)
    table_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "register_selected", "Add to cart"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+s", "submit_order", "Submit order", priority=True),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, session: Session | None = None, printer: PrintOrder = print_order) -> None:
        super().__init__()
        self._print_order = printer
        self.session = session or Session(
            SqliteOrderStore(),
            SnapshotCache(),
            print_order=printer,
            notify=self._notify_error,
        )
        self.cart: list[OrderItem] = []
        self.system_status = ""
        self.history_period = "day"
        self._confirming_table: str | None = None
        self._confirming_delete: str | None = None
        self._remove_listener: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="kitchen-pane"):
                yield Static("出餐進度", classes="pane-title")
                yield Static("(no open orders)", id="kitchen-list")
            with Vertical(id="side-pane"):
                with Vertical(id="billing-pane"):
                    yield Static("桌況結帳", classes="pane-title")
                    yield Static(id="billing")
                with Vertical(id="history-pane"):
                    yield Static("營收報表", classes="pane-title")
                    yield Static(id="history")
            with Vertical(id="order-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")
                yield Static(id="cart")

    def on_mount(self) -> None:
        self._remove_listener = self.session.projection.add_listener(self._on_snapshot)
        self.session.start()
        _, msg = check_printer_dependencies()
        self.system_status = msg
        logger.debug("on_mount printer_status=%r live=%s", msg, self.session.projection.is_live)
        self.set_interval(POLL_INTERVAL_SECONDS, self._poll_store)
        self._refresh_all()

    def on_unmount(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self.session.close()

    def _poll_store(self) -> None:
        self.session.poll()

    def _on_snapshot(self, snapshot: ProjectionSnapshot) -> None:
        logger.debug("snapshot live=%s orders=%d", snapshot.live, len(snapshot.orders))
        self._refresh_all()

    def _notify_error(self, message: str) -> None:
        self.notify(message, severity="error", timeout=8)

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, TableNumberModal):
            return

        if event.key == "ctrl+s":
            self.action_submit_order()
            event.stop()
            return

        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        if self.input_state == "active":
            self.search_query += event.character
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return

        key = event.character.lower()
        handlers: dict[str, Callable[[], None]] = {
            "j": lambda: self._move_kitchen_selection(1),
            "k": lambda: self._move_kitchen_selection(-1),
            "p": lambda: self._transition_selected(OrderStatus.PREPARING),
            "c": lambda: self._transition_selected(OrderStatus.COMPLETED),
            "x": lambda: self._transition_selected(OrderStatus.CANCELLED),
            "o": self._print_selected,
            "d": self._delete_selected,
            "n": lambda: self._move_table_selection(1),
            "b": lambda: self._move_table_selection(-1),
            "s": self._settle_selected_table,
            "a": self._toggle_auto_print,
            "h": self._cycle_history_period,
            "e": self._export_history,
            "m": self._enter_search,
            "u": self._undo_cart_line,
        }
        handler = handlers.get(key)
        if handler is None:
            return
        if key != "s":
            self._confirming_table = None
        if key != "d":
            self._confirming_delete = None
        handler()
        event.stop()

    # Menu search and cart

    def _enter_search(self) -> None:
        self.input_state = "active"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cancel_active_mode(self) -> None:
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.search_query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_register_selected(self) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            return
        item = results[self.selected_index]
        selection = [(line.menu_item_id, line.quantity) for line in self.cart] + [(item.id, 1)]
        try:
            self.cart = build_order_items(selection)
        except ValueError as exc:
            self.system_status = str(exc)
        self._refresh_search()

    def action_backspace_query(self) -> None:
        if self.input_state != "active" or not self.search_query:
            return
        self.search_query = self.search_query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def _undo_cart_line(self) -> None:
        if not self.cart:
            return
        last = self.cart[-1]
        if last.quantity > 1:
            self.cart[-1] = OrderItem(last.menu_item_id, last.name, last.price, last.quantity - 1)
        else:
            self.cart.pop()
        self._refresh_search()

    def action_submit_order(self) -> None:
        logger.debug("submit_enter state=%r lines=%d", self.input_state, len(self.cart))
        if isinstance(self.screen, TableNumberModal):
            return
        if not self.cart:
            self.system_status = "購物車是空的"
            self._refresh_search()
            return
        self.push_screen(TableNumberModal(), self._submit_for_table)

    def _submit_for_table(self, table_number: str | None) -> None:
        if table_number is None:
            return
        items = list(self.cart)
        created = self._write(
            f"Order for table {table_number}",
            lambda: self.session.service.create_order(table_number, items),
        )
        if not created:
            return
        # Confirmation does not wait for the feed to deliver the new order.
        self.cart.clear()
        self.input_state = "normal"
        self.search_query = ""
        self.system_status = f"下單成功 桌號 {table_number}"
        self._refresh_search()

    def _filtered_results(self) -> list[MenuItem]:
        return search_menu(self.search_query)

    # Kitchen actions

    def _kitchen_orders(self) -> list[Order]:
        snapshot = self.session.projection.snapshot
        pending = sorted(snapshot.with_status(OrderStatus.PENDING), key=lambda order: order.created_at)
        preparing = sorted(snapshot.with_status(OrderStatus.PREPARING), key=lambda order: order.created_at)
        return pending + preparing

    def _selected_order(self) -> Order | None:
        orders = self._kitchen_orders()
        if self.kitchen_index is None or not (0 <= self.kitchen_index < len(orders)):
            return None
        return orders[self.kitchen_index]

    def _move_kitchen_selection(self, delta: int) -> None:
        orders = self._kitchen_orders()
        if not orders:
            self.kitchen_index = None
            return
        if self.kitchen_index is None:
            self.kitchen_index = 0 if delta > 0 else len(orders) - 1
        else:
            self.kitchen_index = (self.kitchen_index + delta) % len(orders)
        self._refresh_kitchen()

    def _transition_selected(self, status: OrderStatus) -> None:
        order = self._selected_order()
        if order is None:
            return
        self._write(f"#{order.short_id} -> {status.value}", lambda: self.session.service.transition(order.id, status))

    def _print_selected(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        try:
            self._print_order(order)
        except Exception as exc:
            logger.error("Manual print failed for order %s: %s", order.id, exc)
            self._notify_error(f"Print failed: {exc}")
            return
        self.system_status = f"Printed #{order.short_id}"
        self._refresh_search_bar()

    def _delete_selected(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        if self._confirming_delete != order.id:
            self._confirming_delete = order.id
            self.system_status = f"再按 d 刪除 #{order.short_id}"
            self._refresh_search_bar()
            return
        self._confirming_delete = None
        self._write(f"Delete #{order.short_id}", lambda: self.session.service.delete_order(order.id))

    # Billing actions

    def _tables(self) -> list[TableTotal]:
        return active_tables(self.session.projection.orders)

    def _move_table_selection(self, delta: int) -> None:
        tables = self._tables()
        if not tables:
            self.table_index = None
            return
        if self.table_index is None:
            self.table_index = 0 if delta > 0 else len(tables) - 1
        else:
            self.table_index = (self.table_index + delta) % len(tables)
        self._refresh_billing()

    def _settle_selected_table(self) -> None:
        tables = self._tables()
        if self.table_index is None or not (0 <= self.table_index < len(tables)):
            return
        table_number = tables[self.table_index].table_number
        if self._confirming_table != table_number:
            self._confirming_table = table_number
            self._refresh_billing()
            return
        self._confirming_table = None
        self._write(f"結帳 桌號 {table_number}", lambda: self.session.service.settle_table(table_number))

    # Settings and history

    def _toggle_auto_print(self) -> None:
        self.session.set_auto_print(not self.session.auto_print_enabled)
        self._refresh_search_bar()

    def _cycle_history_period(self) -> None:
        idx = HISTORY_PERIODS.index(self.history_period)
        self.history_period = HISTORY_PERIODS[(idx + 1) % len(HISTORY_PERIODS)]
        self._refresh_history()

    def _current_history(self) -> HistoryReport:
        tz = venue_tz()
        start, end = period_range(self.history_period, datetime.now(tz).date())
        return history(self.session.projection.orders, start, end, tz)

    def _export_history(self) -> None:
        try:
            target = write_history_csv(self._current_history(), EXPORT_DIR)
        except OSError as exc:
            logger.error("History export failed: %s", exc)
            self._notify_error(f"Export failed: {exc}")
            return
        self.system_status = f"Exported {target}" if target else "所選區間內尚無成交資料可匯出"
        self._refresh_search_bar()

    def _write(self, label: str, operation: Callable[[], object]) -> bool:
        """Run a store write and surface its outcome to the operator."""
        try:
            operation()
        except PartialSettlement as exc:
            logger.error("%s partially failed: %s", label, exc)
            self._notify_error(f"{label}: {len(exc.failed_ids)} orders not paid, settle again to retry")
            return False
        except (OrderEngineError, ValueError) as exc:
            logger.error("%s failed: %s", label, exc)
            self._notify_error(f"{label} failed: {exc}")
            return False
        logger.debug("write ok: %s", label)
        self.system_status = f"{label}: ok"
        self._refresh_all()
        return True

    # Rendering

    def _refresh_all(self) -> None:
        self._refresh_kitchen()
        self._refresh_billing()
        self._refresh_history()
        self._refresh_search()

    def _refresh_kitchen(self) -> None:
        try:
            widget = self.query_one("#kitchen-list", Static)
        except NoMatches:
            return
        orders = self._kitchen_orders()
        if not orders:
            self.kitchen_index = None
            widget.update("(no open orders)")
            return
        if self.kitchen_index is not None and self.kitchen_index >= len(orders):
            self.kitchen_index = len(orders) - 1

        tz = venue_tz()
        lines = Text()
        if not self.session.projection.is_live:
            lines.append("(offline: showing cached orders)\n", style="bold #ffb3b3")
        for idx, order in enumerate(orders):
            if idx > 0:
                lines.append("\n")
            lines.append("➤ " if idx == self.kitchen_index else "  ")
            lines.append_text(format_order_row(order, tz))
        widget.update(lines)

    def _refresh_billing(self) -> None:
        try:
            widget = self.query_one("#billing", Static)
        except NoMatches:
            return
        tables = self._tables()
        if self.table_index is not None and self.table_index >= len(tables):
            self.table_index = len(tables) - 1 if tables else None

        lines = Text()
        lines.append("目前店內待收總額 ")
        lines.append(format_money(outstanding_total(tables)), style="bold")
        for idx, table in enumerate(tables):
            lines.append("\n")
            lines.append("➤ " if idx == self.table_index else "  ")
            lines.append_text(format_table_row(table, self._confirming_table == table.table_number))
        widget.update(lines)

    def _refresh_history(self) -> None:
        try:
            widget = self.query_one("#history", Static)
        except NoMatches:
            return
        widget.update(format_history(self._current_history(), venue_tz()))

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        self._refresh_results(self._filtered_results() if self.input_state == "active" else [])
        try:
            self.query_one("#cart", Static).update(format_cart(self.cart))
        except NoMatches:
            return

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        auto = "ON" if self.session.auto_print_enabled else "OFF"
        if self.input_state == "normal":
            status = self.system_status or "Ready"
            bar.update(f"m menu  p/c/x status  s settle  a auto-print: {auto}\n{status}")
            return
        text = Text()
        text.append(" MENU ", style="bold #ffffff on #2f6db5")
        text.append(f": {self.search_query}")
        text.append("\nEnter add  Ctrl+S submit  Ctrl+C back", style="dim")
        bar.update(text)

    def _refresh_results(self, results: list[MenuItem]) -> None:
        try:
            widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            widget.update("")
            return
        if not results:
            widget.update("No results")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0

        lines = Text()
        for idx, item in enumerate(results):
            if idx > 0:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(f"{pointer}{item.name}  {format_money(item.price)}")
            lines.append(f"  {item.category}", style="dim")
        widget.update(lines)
