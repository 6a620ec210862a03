"""Shared test helpers: in-memory store and Meta webhook payload builders.

These are NOT fixtures - they are regular functions/classes importable by
conftest.py and individual test files.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import threading
from datetime import datetime
from typing import Any

from cpcbot.domain.catalogue import MenuItem
from cpcbot.domain.orders import NewOrder, OrderSummary


class FakeStore:
    """In-memory stand-in for PostgresStore.

    Mirrors the unique keys of the real schema: processed_messages.message_id,
    users.wa_id, leads.wa_id and rate_limits(wa_id, window_start).
    """

    def __init__(self, menu_items: list[MenuItem] | None = None):
        self._lock = threading.Lock()
        self.processed: dict[str, dict[str, Any]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.rate_windows: dict[tuple[str, datetime], int] = {}
        self.menu_items: list[MenuItem] = list(menu_items or [])
        self.orders: list[dict[str, Any]] = []
        self.leads: dict[str, dict[str, Any]] = {}
        self.message_logs: list[dict[str, Any]] = []
        self.fail_message_log = False
        self.calls: list[str] = []

    def claim_message(self, message_id, wa_id, message_type):
        self.calls.append("claim_message")
        with self._lock:
            if message_id in self.processed:
                return False
            self.processed[message_id] = {
                "wa_id": wa_id,
                "message_type": message_type,
                "processed_at": datetime.now().astimezone(),
            }
            return True

    def message_exists(self, message_id):
        return message_id in self.processed

    def is_user_blocked(self, wa_id):
        self.calls.append("is_user_blocked")
        user = self.users.get(wa_id)
        return bool(user and user["is_blocked"])

    def upsert_user(self, wa_id, phone, now):
        self.calls.append("upsert_user")
        with self._lock:
            user = self.users.get(wa_id)
            if user is None:
                self.users[wa_id] = {
                    "phone": phone,
                    "first_seen_at": now,
                    "last_active_at": now,
                    "is_blocked": False,
                }
                return True
            user["last_active_at"] = now
            return False

    def block_user(self, wa_id):
        self.users[wa_id] = {
            "phone": wa_id,
            "first_seen_at": None,
            "last_active_at": None,
            "is_blocked": True,
        }

    def increment_rate_window(self, wa_id, window_start, max_requests):
        self.calls.append("increment_rate_window")
        key = (wa_id, window_start)
        with self._lock:
            count = self.rate_windows.get(key)
            if count is None:
                self.rate_windows[key] = 1
                return 1
            if count >= max_requests:
                return None
            self.rate_windows[key] = count + 1
            return count + 1

    def list_menu_items(self):
        return list(self.menu_items)

    def create_order(self, order: NewOrder):
        with self._lock:
            number = f"ORD-{len(self.orders) + 1:06d}"
            self.orders.append({"order_number": number, "order": order})
            return number

    def list_orders(self, wa_id, limit):
        matching = [o for o in self.orders if o["order"].wa_id == wa_id]
        newest_first = list(reversed(matching))[:limit]
        return [
            OrderSummary(
                order_number=o["order_number"],
                item_name=o["order"].item_name,
                status=o["order"].status,
            )
            for o in newest_first
        ]

    def upsert_lead(self, wa_id, phone, source, now):
        with self._lock:
            lead = self.leads.get(wa_id)
            if lead is None:
                self.leads[wa_id] = {
                    "phone": phone,
                    "source": source,
                    "status": "new",
                    "captured_at": now,
                    "last_interaction": now,
                }
                return True
            lead["last_interaction"] = now
            return False

    def insert_message_log(self, *, wa_id, direction, message_type, content, status, error_message):
        if self.fail_message_log:
            raise RuntimeError("message log unavailable")
        self.message_logs.append(
            {
                "wa_id": wa_id,
                "direction": direction,
                "message_type": message_type,
                "content": content,
                "status": status,
                "error_message": error_message,
            }
        )

    def purge_processed_messages(self, before):
        expired = [k for k, v in self.processed.items() if v["processed_at"] < before]
        for key in expired:
            del self.processed[key]
        return len(expired)

    def purge_rate_windows(self, before):
        expired = [k for k in self.rate_windows if k[1] < before]
        for key in expired:
            del self.rate_windows[key]
        return len(expired)


def sign(body: bytes, secret: str) -> str:
    """X-Hub-Signature-256 header value for `body`."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def make_envelope(message: dict[str, Any] | None = None, **value_extra: Any) -> dict[str, Any]:
    """Meta webhook envelope with an optional single message."""
    value: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": "15550001111",
            "phone_number_id": "123456789",
        },
    }
    if message is not None:
        value["messages"] = [message]
    value.update(value_extra)
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_ID", "changes": [{"value": value, "field": "messages"}]}],
    }


def text_payload(text: str, *, sender: str = "923001234561", message_id: str = "wamid.TEXT001") -> dict:
    return make_envelope(
        {
            "from": sender,
            "id": message_id,
            "timestamp": "1704067200",
            "type": "text",
            "text": {"body": text},
        }
    )


def button_payload(
    reply_id: str, title: str = "Button", *, sender: str = "923001234561", message_id: str = "wamid.BTN001"
) -> dict:
    return make_envelope(
        {
            "from": sender,
            "id": message_id,
            "type": "interactive",
            "interactive": {"type": "button_reply", "button_reply": {"id": reply_id, "title": title}},
        }
    )


def list_payload(
    reply_id: str, title: str = "Item", *, sender: str = "923001234561", message_id: str = "wamid.LIST001"
) -> dict:
    return make_envelope(
        {
            "from": sender,
            "id": message_id,
            "type": "interactive",
            "interactive": {"type": "list_reply", "list_reply": {"id": reply_id, "title": title}},
        }
    )


def status_payload() -> dict:
    """Delivery status callback: no messages array."""
    return make_envelope(
        None,
        statuses=[{"id": "wamid.OUT001", "status": "delivered", "recipient_id": "923001234561"}],
    )


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode()


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)
