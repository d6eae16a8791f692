"""Date-ranged revenue history over settled orders."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time, timedelta, tzinfo
from pathlib import Path
from typing import Iterable
from zoneinfo import ZoneInfo

from smartsnack.config import VENUE_TIMEZONE
from smartsnack.models import HistoryReport, Order, OrderStatus

logger = logging.getLogger(__name__)

CSV_HEADERS = ("日期時間", "桌號", "訂單ID", "餐點摘要", "總金額")


def venue_tz() -> tzinfo:
    return ZoneInfo(VENUE_TIMEZONE)


def day_bounds(start_date: date, end_date: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Start of `start_date` and last millisecond of `end_date` in the venue zone."""
    start = datetime.combine(start_date, time.min, tzinfo=tz)
    end = datetime.combine(end_date, time(23, 59, 59, 999000), tzinfo=tz)
    return start, end


def period_range(period: str, today: date) -> tuple[date, date]:
    """Inclusive date range for "day", "month" or "year" containing `today`."""
    if period == "day":
        return today, today
    if period == "month":
        first = today.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return first, next_month - timedelta(days=1)
    if period == "year":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    raise ValueError(f"unknown period {period!r}")


def history(
    orders: Iterable[Order],
    start_date: date,
    end_date: date,
    tz: tzinfo | None = None,
) -> HistoryReport:
    """Paid orders created inside the inclusive day range, newest first."""
    start, end = day_bounds(start_date, end_date, tz or venue_tz())
    matched = sorted(
        (order for order in orders if order.status is OrderStatus.PAID and start <= order.created_at <= end),
        key=lambda order: order.created_at,
        reverse=True,
    )
    return HistoryReport(
        start_date=start_date,
        end_date=end_date,
        orders=tuple(matched),
        total_revenue=sum(order.total_price for order in matched),
    )


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def items_summary(order: Order, separator: str = "; ") -> str:
    return separator.join(f"{item.name}x{item.quantity}" for item in order.items)


def history_csv(report: HistoryReport, tz: tzinfo | None = None) -> str:
    """Render a report as CSV text with a UTF-8 BOM for spreadsheet apps."""
    zone = tz or venue_tz()
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for order in report.orders:
        writer.writerow(
            (
                order.created_at.astimezone(zone).strftime("%Y-%m-%d %H:%M:%S"),
                order.table_number,
                order.id,
                items_summary(order),
                _format_amount(order.total_price),
            )
        )
    return "\ufeff" + buffer.getvalue()


def history_csv_filename(start_date: date, end_date: date) -> str:
    return f"小吃店營收報表_{start_date.isoformat()}_至_{end_date.isoformat()}.csv"


def write_history_csv(report: HistoryReport, directory: str | Path, tz: tzinfo | None = None) -> Path | None:
    """Write the report to `directory`; returns None when there is nothing to export."""
    if not report.orders:
        logger.info("No settled orders between %s and %s; nothing exported", report.start_date, report.end_date)
        return None
    target = Path(directory) / history_csv_filename(report.start_date, report.end_date)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(history_csv(report, tz), encoding="utf-8")
    logger.info("Exported %d settled orders to %s", report.order_count, target)
    return target
