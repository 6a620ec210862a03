"""In-process event counters.

Counts are per worker process and reset on restart. They back the
degraded-security signal (unsigned webhooks accepted) and per-status webhook
tallies surfaced on the internal health route.
"""

import threading
from collections import Counter

_lock = threading.Lock()
_counts: Counter[str] = Counter()

SIGNATURE_UNVERIFIED = "signature_unverified"


def increment(name: str, amount: int = 1) -> None:
    """Add `amount` to counter `name`."""
    with _lock:
        _counts[name] += amount


def get(name: str) -> int:
    """Current value of counter `name` (0 if never incremented)."""
    with _lock:
        return _counts[name]


def snapshot() -> dict[str, int]:
    """Copy of all counters."""
    with _lock:
        return dict(_counts)


def reset() -> None:
    """Clear all counters (tests)."""
    with _lock:
        _counts.clear()
