"""Storage interface consumed by the webhook pipeline and bot flows.

Everything durable (dedupe receipts, rate windows, users, orders, leads,
message logs) goes through a `Store`. Correctness under concurrent webhook
deliveries relies on the store's per-key atomicity: `claim_message` and
`increment_rate_window` must each be a single atomic statement.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from cpcbot.domain.catalogue import MenuItem
from cpcbot.domain.orders import NewOrder, OrderSummary


class Store(Protocol):
    """Narrow persistence contract. See PostgresStore for the reference implementation."""

    def claim_message(self, message_id: str, wa_id: str, message_type: str) -> bool:
        """Insert a processed-message receipt if absent.

        Returns:
            True if this call inserted the receipt, False if it already existed.
        """
        ...

    def message_exists(self, message_id: str) -> bool:
        ...

    def is_user_blocked(self, wa_id: str) -> bool:
        ...

    def upsert_user(self, wa_id: str, phone: str, now: datetime) -> bool:
        """Create the user or bump last_active_at. Returns True if created."""
        ...

    def increment_rate_window(
        self, wa_id: str, window_start: datetime, max_requests: int
    ) -> int | None:
        """Atomically count one request in the sender's window.

        Creates the row at 1, or increments while the count is below
        `max_requests`.

        Returns:
            The new count, or None if the window was already at the limit
            (the row is left unchanged).
        """
        ...

    def list_menu_items(self) -> list[MenuItem]:
        """Available items in display order."""
        ...

    def create_order(self, order: NewOrder) -> str | None:
        """Insert an order. Returns the assigned order number if any."""
        ...

    def list_orders(self, wa_id: str, limit: int) -> list[OrderSummary]:
        """Sender's orders, newest first, at most `limit`."""
        ...

    def upsert_lead(self, wa_id: str, phone: str, source: str, now: datetime) -> bool:
        """Create the lead keyed by wa_id or touch last_interaction. Returns True if created."""
        ...

    def insert_message_log(
        self,
        *,
        wa_id: str,
        direction: str,
        message_type: str,
        content: dict[str, Any],
        status: str,
        error_message: str | None,
    ) -> None:
        ...

    def purge_processed_messages(self, before: datetime) -> int:
        """Delete receipts processed before `before`. Returns rows deleted."""
        ...

    def purge_rate_windows(self, before: datetime) -> int:
        """Delete rate windows that started before `before`. Returns rows deleted."""
        ...
