"""Append-only audit log of inbound and outbound WhatsApp traffic.

The log is independent of business logic: a failing write is reported on
the application log and never interrupts message handling.
"""

from __future__ import annotations

from typing import Any, Literal

from cpcbot.infra.store import Store
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

Direction = Literal["inbound", "outbound"]

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


def record_message(
    store: Store,
    *,
    wa_id: str,
    direction: Direction,
    message_type: str,
    content: dict[str, Any],
    status: str = STATUS_SUCCESS,
    error: str | None = None,
) -> None:
    """Append one message_logs row.

    Args:
        store: Storage backend.
        wa_id: Counterpart WhatsApp id. Stored, NEVER logged.
        direction: "inbound" or "outbound".
        message_type: e.g. "text", "buttons", "list", "button".
        content: Message content as sent/received. Stored, NEVER logged.
        status: "success" or "failed".
        error: Failure description for failed sends.
    """
    try:
        store.insert_message_log(
            wa_id=wa_id,
            direction=direction,
            message_type=message_type,
            content=content,
            status=status,
            error_message=error,
        )
    except Exception:
        logger.exception(
            "failed to write message log",
            extra={
                "extra_fields": safe_log_context(
                    sender_hash=hash_identifier(wa_id),
                    direction=direction,
                    message_type=message_type,
                )
            },
        )
