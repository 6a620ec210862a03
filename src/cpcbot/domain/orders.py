"""Order and lead records created by the bot flows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ORDER_STATUS_PLACED = "placed"

LEAD_SOURCE_WHATSAPP_DEMO = "whatsapp_demo"

STATUS_EMOJI: dict[str, str] = {
    "placed": "🆕",
    "confirmed": "✅",
    "preparing": "👨‍🍳",
    "ready": "📦",
    "delivered": "✔️",
    "cancelled": "❌",
}


@dataclass(frozen=True)
class NewOrder:
    """Order to insert. Append-only; the store assigns order_number."""

    wa_id: str
    customer_phone: str
    item_id: str
    item_name: str
    item_price: int | None
    status: str = ORDER_STATUS_PLACED


@dataclass(frozen=True)
class OrderSummary:
    """Order row as shown in the history flow."""

    order_number: str | None
    item_name: str
    status: str
    created_at: datetime | None = None

    def history_line(self) -> str:
        emoji = STATUS_EMOJI.get(self.status, "❓")
        return f"{emoji} #{self.order_number or 'N/A'} {self.item_name} — {self.status}"
