"""Time utilities for consistent timestamp handling."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def window_start(now: datetime, window_seconds: int) -> datetime:
    """Floor `now` to the start of its fixed window of `window_seconds`.

    Windows are aligned to the Unix epoch, so every process computes the
    same bucket for the same instant.
    """
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")
    epoch = int(now.timestamp())
    floored = epoch - (epoch % window_seconds)
    return datetime.fromtimestamp(floored, tz=timezone.utc)
