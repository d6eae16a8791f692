"""Editable static menu configuration."""

from __future__ import annotations

CATEGORIES: tuple[str, ...] = ("主食", "小菜", "湯品", "飲料")

MENU_ITEMS_RAW: dict[str, dict[str, object]] = {
    "1": {"name": "招牌滷肉飯", "price": 45, "category": "主食", "available": True},
    "2": {"name": "古早味乾麵", "price": 50, "category": "主食", "available": True},
    "3": {"name": "雞肉飯", "price": 55, "category": "主食", "available": True},
    "4": {"name": "燙青菜", "price": 40, "category": "小菜", "available": True},
    "5": {"name": "滷蛋", "price": 15, "category": "小菜", "available": True},
    "6": {"name": "豆干海帶拼盤", "price": 40, "category": "小菜", "available": True},
    "7": {"name": "貢丸湯", "price": 35, "category": "湯品", "available": True},
    "8": {"name": "虱目魚肚湯", "price": 120, "category": "湯品", "available": True},
    "9": {"name": "古早味紅茶", "price": 25, "category": "飲料", "available": True},
    "10": {"name": "無糖綠茶", "price": 25, "category": "飲料", "available": True},
}

# Romanized search aliases so the menu can be searched from an ASCII keyboard.
SEARCH_ALIASES: dict[str, list[str]] = {
    "1": ["lu rou fan", "braised pork rice"],
    "2": ["gan mian", "dry noodles"],
    "3": ["ji rou fan", "chicken rice"],
    "4": ["tang qing cai", "greens"],
    "5": ["lu dan", "egg"],
    "6": ["dou gan", "tofu", "kelp"],
    "7": ["gong wan tang", "meatball soup"],
    "8": ["shi mu yu", "milkfish soup"],
    "9": ["hong cha", "black tea"],
    "10": ["lu cha", "green tea"],
}
