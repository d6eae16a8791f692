"""Thermal receipt printing for orders."""

from __future__ import annotations

import os
from datetime import tzinfo
from pathlib import Path
from typing import Literal

from smartsnack.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TITLE_FONT_SIZE,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from smartsnack.history import venue_tz
from smartsnack.models import Order

KITCHEN_COPY = "廚房備餐聯"
CUSTOMER_COPY = "顧客確認聯"

_SEPARATOR_HEIGHT_PX = 12
_SEPARATOR_THICKNESS_PX = 2
_TEAR_GAP_PX = 60
_LINE_EXTRA_PX = 12
_FONT_OVERRIDE_ENV = "RECEIPT_PRINTER_FONT_PATH"
# Receipts carry CJK dish names, so only fonts with CJK coverage are useful.
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
    "/usr/share/fonts/wenquanyi/wqy-microhei/wqy-microhei.ttc",
)

ReceiptLine = tuple[Literal["title", "text", "separator"], str]


def resolve_printer_font_path() -> str:
    """
    Resolve a printer font path.

    Resolution order:
    1. RECEIPT_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux CJK fallbacks
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(PRINTER_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        if Path(candidate).is_file():
            return candidate

    raise RuntimeError(
        f"No usable printer font found. Set {_FONT_OVERRIDE_ENV} to a valid .ttf/.ttc file. "
        f"Tried: {', '.join(seen)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether printer dependencies are importable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer deps unavailable: {exc}")
    return (True, "Printer ready")


def _money(value: float) -> str:
    return f"${int(value)}" if float(value).is_integer() else f"${value:.2f}"


def receipt_lines(order: Order, copy: str, tz: tzinfo | None = None) -> list[ReceiptLine]:
    """Lines of one receipt copy; the kitchen copy omits prices."""
    show_prices = copy != KITCHEN_COPY
    created = order.created_at.astimezone(tz or venue_tz())
    lines: list[ReceiptLine] = [
        ("title", copy),
        ("title", f"桌號: {order.table_number}  #{order.short_id}"),
        ("text", f"時間: {created.strftime('%Y-%m-%d %H:%M')}"),
        ("separator", ""),
    ]
    for item in order.items:
        text = f"{item.name} x {item.quantity}"
        if show_prices:
            text = f"{text}  {_money(item.subtotal)}"
        lines.append(("text", text))
    lines.append(("separator", ""))
    if show_prices:
        lines.append(("title", f"應收總額 {_money(order.total_price)}"))
    lines.append(("text", "*** 謝謝惠顧 ***"))
    return lines


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    probe = Image.new("1", (1, 1), color=1)
    bbox = ImageDraw.Draw(probe).textbbox((0, 0), text, font=font)
    text_height = bbox[3] - bbox[1]
    canvas_height = max(12, text_height + _LINE_EXTRA_PX)

    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_separator() -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (PRINTER_WIDTH_PX, _SEPARATOR_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    top = (_SEPARATOR_HEIGHT_PX - _SEPARATOR_THICKNESS_PX) // 2
    draw.rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _SEPARATOR_THICKNESS_PX - 1), fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def print_order(order: Order) -> None:
    """Print the kitchen copy and the customer copy of an order, then cut."""
    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font_path = resolve_printer_font_path()
    fonts = {
        "title": ImageFont.truetype(font_path, PRINTER_TITLE_FONT_SIZE),
        "text": ImageFont.truetype(font_path, PRINTER_FONT_SIZE),
    }

    for idx, copy in enumerate((KITCHEN_COPY, CUSTOMER_COPY)):
        if idx > 0:
            printer.image(_render_spacer(_TEAR_GAP_PX))
        for kind, text in receipt_lines(order, copy):
            if kind == "separator":
                printer.image(_render_separator())
            else:
                printer.image(_render_line(text, fonts[kind]))

    printer.cut()
