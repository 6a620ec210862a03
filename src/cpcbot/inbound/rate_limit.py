"""Fixed-window rate limiting per sender.

Each sender gets one counter row per window (window start = now floored to
the window length). The store increments it in a single statement that also
enforces the cap, so concurrent requests cannot read-modify-write past the
limit and a denied request does not grow the counter.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from cpcbot.infra.store import Store
from cpcbot.infra.time import utc_now, window_start

DEFAULT_MAX_REQUESTS = 30
DEFAULT_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int


def check_rate_limit(
    store: Store,
    sender_id: str,
    *,
    max_requests: int = DEFAULT_MAX_REQUESTS,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
    now: datetime | None = None,
) -> RateLimitResult:
    """Count one request for `sender_id` and decide whether it is allowed.

    Args:
        store: Storage backend.
        sender_id: WhatsApp id of the sender.
        max_requests: Allowed requests per window.
        window_seconds: Window length.
        now: Current time (tests); defaults to utc_now().

    Returns:
        RateLimitResult with allowed=False and remaining=0 once the window
        is full.
    """
    start = window_start(now or utc_now(), window_seconds)
    count = store.increment_rate_window(sender_id, start, max_requests)
    if count is None:
        return RateLimitResult(allowed=False, remaining=0)
    return RateLimitResult(allowed=True, remaining=max(max_requests - count, 0))
