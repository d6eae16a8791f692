"""Rich text helpers for the dashboard panes."""

from __future__ import annotations

from datetime import tzinfo

from rich.text import Text

from smartsnack.models import HistoryReport, Order, OrderItem, OrderStatus, TableTotal

STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "等待中",
    OrderStatus.PREPARING: "製作中",
    OrderStatus.COMPLETED: "已出餐",
    OrderStatus.CANCELLED: "已取消",
    OrderStatus.PAID: "已結帳",
}


def badge_style(status: OrderStatus) -> str:
    """Return a consistent badge style for order statuses."""
    if status is OrderStatus.PENDING:
        return "bold #1f1300 on #f0a030"
    if status is OrderStatus.PREPARING:
        return "bold #ffffff on #2f6db5"
    if status is OrderStatus.COMPLETED:
        return "bold #0b1f0f on #5fbf72"
    return "bold #ffffff on #6b6b6b"


def format_money(value: float) -> str:
    return f"${int(value)}" if float(value).is_integer() else f"${value:.2f}"


def format_order_row(order: Order, tz: tzinfo) -> Text:
    """Render one kitchen row: status badge, table, time and items."""
    text = Text()
    text.append(f" {STATUS_LABELS[order.status]} ", style=badge_style(order.status))
    text.append(f" 桌號 {order.table_number}", style="bold")
    text.append(f"  {order.created_at.astimezone(tz).strftime('%H:%M')}", style="dim")
    text.append(f"  #{order.short_id}", style="dim")
    for item in order.items:
        text.append(f"\n      {item.name} x {item.quantity}")
    return text


def format_table_row(table: TableTotal, confirming: bool) -> Text:
    text = Text()
    text.append(f"桌號 {table.table_number}", style="bold")
    text.append(f"  {format_money(table.total_amount)}", style="bold #f0a030")
    text.append(f"  ({len(table.order_ids)} 張)", style="dim")
    if confirming:
        text.append("  再按 s 確認結帳", style="bold #ffb3b3")
    return text


def format_cart(items: list[OrderItem]) -> Text:
    text = Text()
    if not items:
        text.append("(cart empty)", style="dim")
        return text
    for idx, item in enumerate(items):
        if idx > 0:
            text.append("\n")
        text.append(f"{item.name} x {item.quantity}  {format_money(item.subtotal)}")
    total = sum(item.subtotal for item in items)
    text.append(f"\n合計 {format_money(total)}", style="bold")
    return text


def format_history(report: HistoryReport, tz: tzinfo, limit: int = 8) -> Text:
    """Render range totals plus the most recent settled orders."""
    text = Text()
    text.append(f"{report.start_date.isoformat()} ~ {report.end_date.isoformat()}\n", style="dim")
    text.append("區間總營收 ")
    text.append(format_money(report.total_revenue), style="bold #5fbf72")
    text.append(f"   區間總單數 {report.order_count}\n")
    if not report.orders:
        text.append("此區間內尚無成交紀錄", style="dim")
        return text
    for order in report.orders[:limit]:
        stamp = order.created_at.astimezone(tz).strftime("%m-%d %H:%M")
        summary = ", ".join(f"{item.name}x{item.quantity}" for item in order.items)
        text.append(f"\n{stamp}  桌{order.table_number}  {format_money(order.total_price)}  ")
        text.append(summary, style="dim")
    if report.order_count > limit:
        text.append(f"\n⋮ {report.order_count - limit} more", style="dim")
    return text
