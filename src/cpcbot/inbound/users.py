"""Sender bookkeeping: first/last contact and the administrative block flag."""

from datetime import datetime

from cpcbot.infra.store import Store
from cpcbot.infra.time import utc_now
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)


def touch_user(store: Store, wa_id: str, *, now: datetime | None = None) -> bool:
    """Create the user on first contact, otherwise update last_active_at.

    Returns:
        True if the user was created by this call.
    """
    created = store.upsert_user(wa_id, wa_id, now or utc_now())
    if created:
        logger.info(
            "new user created",
            extra={"extra_fields": safe_log_context(sender_hash=hash_identifier(wa_id))},
        )
    return created


def is_blocked(store: Store, wa_id: str) -> bool:
    """Blocked flag set by an administrator. Unknown senders are not blocked."""
    return store.is_user_blocked(wa_id)
