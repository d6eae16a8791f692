"""Entry point for the SmartSnack dashboard."""

from __future__ import annotations

import logging
from pathlib import Path

from smartsnack.config import DEBUG_LOG_PATH
from smartsnack.dashboard_app import DashboardApp


def configure_logging(path: str = DEBUG_LOG_PATH, level: int = logging.DEBUG) -> None:
    """Send logs to a file; the terminal belongs to the Textual UI."""
    log_file = Path(path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_file,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    DashboardApp().run()


if __name__ == "__main__":
    main()
