"""Tests for catalogue items and order records."""

from datetime import datetime, timezone

import pytest

from cpcbot.domain.catalogue import (
    DEMO_CATALOGUE,
    ITEM_PIZZA,
    MenuItem,
    effective_catalogue,
    find_item,
    format_price,
)
from cpcbot.domain.orders import OrderSummary


@pytest.mark.parametrize(
    "paisa,expected",
    [
        (45000, "Rs 450"),
        (0, "Rs 0"),
        (45050, "Rs 450.5"),
        (45005, "Rs 450.05"),
        (199, "Rs 1.99"),
        (-50, "Rs -0.5"),
        (-45000, "Rs -450"),
    ],
)
def test_format_price(paisa, expected):
    assert format_price(paisa) == expected


def test_display_name():
    assert MenuItem("ITEM_X", "Fries", 20000).display_name == "Fries — Rs 200"


def test_empty_store_falls_back_to_demo_items():
    assert effective_catalogue([]) == list(DEMO_CATALOGUE)


def test_live_items_replace_demo_items():
    live = [MenuItem("ITEM_TEA", "Chai", 8000)]
    assert effective_catalogue(live) == live


def test_find_item():
    assert find_item([], ITEM_PIZZA).name == "Pizza Slice"
    assert find_item([], "ITEM_NOPE") is None


class TestOrderSummary:
    def test_history_line(self):
        summary = OrderSummary("ORD-000012", "Fries — Rs 200", "delivered", datetime.now(timezone.utc))
        assert summary.history_line() == "✔️ #ORD-000012 Fries — Rs 200 — delivered"

    def test_unknown_status_and_missing_number(self):
        summary = OrderSummary(None, "Fries — Rs 200", "lost")
        assert summary.history_line() == "❓ #N/A Fries — Rs 200 — lost"
