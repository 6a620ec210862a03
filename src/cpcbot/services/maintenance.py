"""Retention cleanup for dedupe receipts and rate limit windows.

Meta stops redelivering a message well within the retention window, so
receipts older than it can be dropped without reopening the dedupe gap.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from cpcbot.infra.settings import Settings
from cpcbot.infra.store import Store
from cpcbot.infra.time import utc_now
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)


@dataclass(frozen=True)
class PurgeResult:
    processed_messages: int
    rate_windows: int


def purge_expired(store: Store, settings: Settings, *, now: datetime | None = None) -> PurgeResult:
    """Delete dedupe receipts and rate windows past their retention."""
    now = now or utc_now()
    processed_cutoff = now - timedelta(hours=settings.processed_retention_hours)
    window_cutoff = now - timedelta(seconds=settings.rate_window_retention_seconds)

    result = PurgeResult(
        processed_messages=store.purge_processed_messages(processed_cutoff),
        rate_windows=store.purge_rate_windows(window_cutoff),
    )

    logger.info(
        "expired records purged",
        extra={
            "extra_fields": safe_log_context(
                processed_messages=result.processed_messages,
                rate_windows=result.rate_windows,
            )
        },
    )
    return result
