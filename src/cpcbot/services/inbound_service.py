"""Inbound message pipeline.

Runs after the webhook route has authenticated the request and extracted an
InboundMessage:

1. Audit the inbound message
2. Claim the message id (dedupe, atomic insert-if-absent)
3. Drop silently if the sender is blocked
4. Fixed-window rate limit (denied senders get a slow-down notice)
5. Create/touch the user
6. Route to a bot flow and send its replies

The claim is committed before anything is sent, so a message id is acted
on at most once even if a later step fails and Meta redelivers.
"""

from __future__ import annotations

from typing import Literal

from cpcbot.bot import flows
from cpcbot.inbound.dedupe import claim_message
from cpcbot.inbound.rate_limit import check_rate_limit
from cpcbot.inbound.users import is_blocked, touch_user
from cpcbot.infra.settings import Settings
from cpcbot.infra.store import Store
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import (
    hash_identifier,
    message_id_prefix,
    safe_log_context,
)
from cpcbot.whatsapp.message_log import record_message
from cpcbot.whatsapp.meta_sender import MetaSender
from cpcbot.whatsapp.models import ConversationReply, InboundMessage

logger = get_logger(__name__)

PipelineStatus = Literal["ok", "duplicate", "blocked", "rate_limited"]


def process_inbound(
    msg: InboundMessage,
    *,
    store: Store,
    sender: MetaSender,
    settings: Settings,
) -> PipelineStatus:
    """Process one inbound message end to end.

    Args:
        msg: Extracted inbound message.
        store: Storage backend.
        sender: Outbound gateway used for all replies.
        settings: Rate limit configuration.

    Returns:
        Pipeline status reported back in the webhook response body.

    Raises:
        TransportError: If a reply could not be sent. Replies already sent
            stay sent; nothing is retried.
    """
    log_ctx = {
        "sender_hash": hash_identifier(msg.sender_id),
        "message_id_prefix": message_id_prefix(msg.message_id),
        "kind": msg.kind.value,
    }

    record_message(
        store,
        wa_id=msg.sender_id,
        direction="inbound",
        message_type=msg.kind.value,
        content=msg.audit_content(),
    )

    if not claim_message(store, msg):
        logger.info(
            "duplicate message ignored",
            extra={"extra_fields": safe_log_context(**log_ctx)},
        )
        return "duplicate"

    if is_blocked(store, msg.sender_id):
        logger.info(
            "blocked sender ignored",
            extra={"extra_fields": safe_log_context(**log_ctx)},
        )
        return "blocked"

    limit = check_rate_limit(
        store,
        msg.sender_id,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    if not limit.allowed:
        logger.warning(
            "rate limit exceeded",
            extra={"extra_fields": safe_log_context(**log_ctx)},
        )
        _send_all(sender, msg.sender_id, flows.rate_limited())
        return "rate_limited"

    touch_user(store, msg.sender_id)

    flow, replies = flows.dispatch(store, msg)
    logger.info(
        "message routed",
        extra={
            "extra_fields": safe_log_context(
                **log_ctx,
                flow=flow.value,
                replies=len(replies),
                remaining=limit.remaining,
            )
        },
    )

    _send_all(sender, msg.sender_id, replies)
    return "ok"


def _send_all(sender: MetaSender, to_phone: str, replies: list[ConversationReply]) -> None:
    for reply in replies:
        sender.send_reply(to_phone, reply)
