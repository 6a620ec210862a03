"""Catalogue items offered through the list-message menu.

Prices are integers in the smallest currency unit (paisa); the chat shows
them as rupees.
"""

from __future__ import annotations

from dataclasses import dataclass

ITEM_ZINGER = "ITEM_ZINGER"
ITEM_PIZZA = "ITEM_PIZZA"
ITEM_FRIES = "ITEM_FRIES"


@dataclass(frozen=True)
class MenuItem:
    """A product row from the menu_items table (or the built-in fallback)."""

    item_id: str
    name: str
    price: int
    description: str | None = None

    @property
    def price_display(self) -> str:
        return format_price(self.price)

    @property
    def display_name(self) -> str:
        """Name and price as stored on the order, e.g. "Fries — Rs 200"."""
        return f"{self.name} — {self.price_display}"


# Used when the store has no available items so the demo always works.
DEMO_CATALOGUE: tuple[MenuItem, ...] = (
    MenuItem(ITEM_ZINGER, "Zinger Burger", 45000),
    MenuItem(ITEM_PIZZA, "Pizza Slice", 35000),
    MenuItem(ITEM_FRIES, "Fries", 20000),
)


def format_price(price: int) -> str:
    """Render a paisa amount as "Rs 450", "Rs 450.5" or, for refunds, "Rs -0.5"."""
    sign = "-" if price < 0 else ""
    rupees, paisa = divmod(abs(price), 100)
    if paisa == 0:
        return f"Rs {sign}{rupees}"
    return f"Rs {sign}{rupees}.{paisa:02d}".rstrip("0")


def effective_catalogue(items: list[MenuItem]) -> list[MenuItem]:
    """Live items, or the demo catalogue when the store has none."""
    return list(items) if items else list(DEMO_CATALOGUE)


def find_item(items: list[MenuItem], item_id: str) -> MenuItem | None:
    """Resolve a list-reply id against the effective catalogue."""
    for item in effective_catalogue(items):
        if item.item_id == item_id:
            return item
    return None
