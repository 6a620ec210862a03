"""Inbound message deduplication.

Meta delivers webhooks at least once and redelivers on timeouts. A message
is processed only by the request that manages to insert its receipt:
claiming is a single insert-if-absent, so two concurrent deliveries of the
same message id cannot both pass.
"""

from cpcbot.infra.store import Store
from cpcbot.whatsapp.models import InboundMessage


def claim_message(store: Store, msg: InboundMessage) -> bool:
    """Record the message as processed.

    Returns:
        True if this call claimed the message (first delivery).
        False if it was already processed (redelivery).
    """
    return store.claim_message(msg.message_id, msg.sender_id, msg.kind.value)


def already_processed(store: Store, message_id: str) -> bool:
    """Read-only check, for diagnostics. The pipeline uses claim_message()."""
    return store.message_exists(message_id)
