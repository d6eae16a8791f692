"""Table number entry modal screen."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from smartsnack.config import TABLES, TAKEOUT_TABLE


class TableNumberModal(ModalScreen[str | None]):
    """Prompt for the table (or takeout) an order belongs to."""

    CSS = """
    TableNumberModal {
        align: center middle;
        background: $background 60%;
    }

    #table-number-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #table-number-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #table-number-prompt {
        color: white;
        margin-bottom: 1;
    }

    #table-number-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #table-number-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #table-number-help {
        color: #dddddd;
    }
    """

    def __init__(self, initial: str = "") -> None:
        super().__init__()
        self.value = initial
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="table-number-dialog"):
            yield Static("Table Number", id="table-number-title")
            yield Static(f"Tables: {', '.join(TABLES)}", id="table-number-prompt")
            yield Static(id="table-number-value")
            yield Static(id="table-number-error")
            yield Static(
                "Digits select a table. t = takeout. Enter confirm. Backspace delete. Esc/Ctrl+C cancel.",
                id="table-number-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = "" if self.value == TAKEOUT_TABLE else self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if not event.is_printable or not event.character:
            return

        if event.character.lower() == "t":
            self.value = TAKEOUT_TABLE
        elif event.character.isdigit():
            if self.value == TAKEOUT_TABLE:
                self.value = ""
            if len(self.value) < 3:
                self.value += event.character
        else:
            return
        self.error = ""
        self._refresh_content()
        event.stop()

    def _confirm(self) -> None:
        if not self.value:
            self.error = "Table number is required."
            self._refresh_content()
            return

        if self.value not in TABLES:
            self.error = f"Unknown table {self.value}."
            self._refresh_content()
            return

        self.dismiss(self.value)

    def _refresh_content(self) -> None:
        value_widget = self.query_one("#table-number-value", Static)
        error_widget = self.query_one("#table-number-error", Static)
        value_widget.update(self.value or "")
        error_widget.update(self.error or "")
