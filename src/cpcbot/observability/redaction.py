"""Log-safe renderings of webhook data.

Anything that came from WhatsApp (sender ids, message text, raw bodies) must
pass through here before it reaches a log line. Sender ids are hashed rather
than masked so one customer's requests can still be followed across lines.
"""

import hashlib
import re
from typing import Any

_REDACTED = "[REDACTED]"

# Phone numbers with or without country code / separators, then emails
_PII_PATTERNS = (
    re.compile(r"\+?\d[\d\s\-()]{8,}\d"),
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
)

# Context keys whose values are WhatsApp ids: hashed, never shown
_IDENTIFIER_KEYS = frozenset({"wa_id", "sender_id", "to_phone", "customer_phone"})


def hash_identifier(value: str) -> str:
    """First 12 hex chars of sha256(value)."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def message_id_prefix(message_id: str) -> str:
    return message_id[:8]


def redact_string(value: str) -> str:
    for pattern in _PII_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def redact_value(value: Any) -> str:
    """Render `value` for a log line without leaking its contents.

    Containers show their shape only (dict keys, sequence/bytes length),
    strings are pattern-redacted, other objects show their type name.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, (bytes, bytearray)):
        return f"bytes(len={len(value)})"
    if isinstance(value, dict):
        return f"dict(keys={list(value)})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**fields: Any) -> dict[str, str]:
    """Build `extra_fields` for a log call; every value is made log-safe."""
    context = {}
    for key, value in fields.items():
        if key in _IDENTIFIER_KEYS and isinstance(value, str):
            context[key] = f"sha256:{hash_identifier(value)}"
        else:
            context[key] = redact_value(value)
    return context
