"""Correlation ids tying one webhook delivery to all of its log lines."""

import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Caller-supplied ids end up verbatim in every log line of the request
_MAX_INBOUND_LENGTH = 64
_INBOUND_PATTERN = re.compile(r"[A-Za-z0-9._:-]+")

_current: ContextVar[str] = ContextVar("cpcbot_correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def accept_correlation_id(incoming: str | None) -> str:
    """Reuse the caller's id when it is short and log-safe, else mint one."""
    if (
        incoming
        and len(incoming) <= _MAX_INBOUND_LENGTH
        and _INBOUND_PATTERN.fullmatch(incoming)
    ):
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Id of the request being handled, or "" outside a request."""
    return _current.get()


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind `cid` for the duration of the block, restoring the previous id."""
    token = _current.set(cid)
    try:
        yield cid
    finally:
        _current.reset(token)
