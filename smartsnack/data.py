"""Static menu data and order item snapshots."""

from __future__ import annotations

from typing import Iterable

from smartsnack.constant import CATEGORIES, MENU_ITEMS_RAW, SEARCH_ALIASES
from smartsnack.models import MenuItem, OrderItem

MENU_BY_ID: dict[str, MenuItem] = {
    item_id: MenuItem(
        id=item_id,
        name=str(raw["name"]),
        price=raw["price"],  # type: ignore[arg-type]
        category=str(raw["category"]),
        available=bool(raw.get("available", True)),
    )
    for item_id, raw in MENU_ITEMS_RAW.items()
}

MENU_BY_CATEGORY: dict[str, list[MenuItem]] = {
    category: [item for item in MENU_BY_ID.values() if item.category == category] for category in CATEGORIES
}


def menu_item(item_id: str) -> MenuItem | None:
    """Get a menu item by id."""
    return MENU_BY_ID.get(item_id)


def search_menu(query: str, category: str | None = None) -> list[MenuItem]:
    """Return available menu items whose name or alias contains the query."""
    source = MENU_BY_CATEGORY.get(category, []) if category else list(MENU_BY_ID.values())
    source = [item for item in source if item.available]
    q = query.strip().lower()
    if not q:
        return source
    results = []
    for item in source:
        haystack = [item.name.lower(), *SEARCH_ALIASES.get(item.id, [])]
        if any(q in text for text in haystack):
            results.append(item)
    return results


def build_order_items(selection: Iterable[tuple[str, int]]) -> list[OrderItem]:
    """
    Snapshot menu name and price for each selected (menu item id, quantity).

    Repeated ids are merged into one line, keeping first-seen order.
    """
    quantities: dict[str, int] = {}
    for item_id, quantity in selection:
        if quantity < 1:
            raise ValueError(f"quantity for menu item {item_id} must be at least 1")
        quantities[item_id] = quantities.get(item_id, 0) + quantity

    items: list[OrderItem] = []
    for item_id, quantity in quantities.items():
        menu = MENU_BY_ID.get(item_id)
        if menu is None:
            raise ValueError(f"unknown menu item {item_id}")
        if not menu.available:
            raise ValueError(f"menu item {menu.name} is sold out")
        items.append(OrderItem(menu_item_id=menu.id, name=menu.name, price=menu.price, quantity=quantity))
    return items
