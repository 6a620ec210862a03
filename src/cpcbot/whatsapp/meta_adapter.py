"""Inbound side of the Meta WhatsApp Cloud API.

Authenticates webhook deliveries (X-Hub-Signature-256) and turns the nested
`entry[].changes[].value.messages[]` envelope into a flat InboundMessage.
"""

import hashlib
import hmac
from typing import Any

from cpcbot.observability import counters
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import safe_log_context

from .models import InboundMessage, MessageKind

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="


class SignatureVerificationError(Exception):
    """The webhook body does not carry a valid app-secret signature."""


def verify_signature(payload_bytes: bytes, signature_header: str, app_secret: str) -> None:
    """Check `signature_header` against HMAC-SHA256(app_secret, payload_bytes).

    The digest is computed over the raw body bytes exactly as received and
    compared in constant time. Hex case matters: Meta sends lowercase.
    """
    if not signature_header:
        raise SignatureVerificationError("missing X-Hub-Signature-256")

    scheme, sep, received = signature_header.partition("=")
    if not sep or scheme + sep != SIGNATURE_PREFIX:
        raise SignatureVerificationError("unexpected signature format")

    expected = hmac.new(app_secret.encode("utf-8"), payload_bytes, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected.encode("ascii"), received.encode("utf-8")):
        raise SignatureVerificationError("signature mismatch")


def is_signature_valid(
    payload_bytes: bytes,
    signature_header: str | None,
    app_secret: str,
    *,
    production: bool = False,
) -> bool:
    """Check a webhook signature, handling the no-secret configuration.

    Without an app secret the request cannot be authenticated. Outside
    production it is accepted with a warning and the `signature_unverified`
    counter is bumped; in production it is rejected.

    Returns:
        True if the request may be processed.
    """
    if not app_secret:
        if production:
            logger.error(
                "webhook rejected: app secret not configured in production",
                extra={"extra_fields": safe_log_context(mode="production")},
            )
            return False
        counters.increment(counters.SIGNATURE_UNVERIFIED)
        logger.warning(
            "app secret not configured, accepting unsigned webhook",
            extra={"extra_fields": safe_log_context(mode="degraded")},
        )
        return True

    try:
        verify_signature(payload_bytes, signature_header or "", app_secret)
    except SignatureVerificationError as e:
        logger.warning(
            "webhook signature rejected",
            extra={"extra_fields": safe_log_context(reason=str(e))},
        )
        return False
    return True


def extract_message(payload: Any) -> InboundMessage | None:
    """Extract the first message of a Meta webhook as an InboundMessage.

    Returns None for anything that is not a user message (delivery status
    callbacks, other webhook fields, malformed envelopes). That is the
    normal outcome for a large share of webhooks, not an error.

    Interactive button replies map to MessageKind.BUTTON, list replies to
    MessageKind.LIST, text to MessageKind.TEXT; every other type (media,
    location, other interactive subtypes) maps to MessageKind.OTHER.
    """
    message = _extract_first_message(payload)
    if message is None:
        return None

    message_id = message.get("id")
    sender_id = message.get("from")
    if not message_id or not isinstance(message_id, str):
        return None
    if not sender_id or not isinstance(sender_id, str):
        return None

    message_type = message.get("type")

    if message_type == "text":
        text_obj = message.get("text")
        body = text_obj.get("body") if isinstance(text_obj, dict) else None
        return InboundMessage(
            sender_id=sender_id,
            message_id=message_id,
            kind=MessageKind.TEXT,
            text=body if isinstance(body, str) else "",
        )

    if message_type == "interactive":
        interactive = message.get("interactive")
        if isinstance(interactive, dict):
            itype = interactive.get("type")
            if itype == "button_reply":
                return _reply_message(
                    sender_id, message_id, MessageKind.BUTTON, interactive.get("button_reply")
                )
            if itype == "list_reply":
                return _reply_message(
                    sender_id, message_id, MessageKind.LIST, interactive.get("list_reply")
                )

    return InboundMessage(sender_id=sender_id, message_id=message_id, kind=MessageKind.OTHER)


def get_phone_number_id(payload: Any) -> str | None:
    """Extract the receiving business phone_number_id from a Meta payload."""
    value = _extract_value(payload)
    if value is None:
        return None
    metadata = value.get("metadata")
    if not isinstance(metadata, dict):
        return None
    phone_number_id = metadata.get("phone_number_id")
    return phone_number_id if isinstance(phone_number_id, str) else None


def _reply_message(
    sender_id: str, message_id: str, kind: MessageKind, reply: Any
) -> InboundMessage:
    reply_id = title = None
    if isinstance(reply, dict):
        raw_id = reply.get("id")
        raw_title = reply.get("title")
        reply_id = raw_id if isinstance(raw_id, str) else None
        title = raw_title if isinstance(raw_title, str) else None
    return InboundMessage(
        sender_id=sender_id,
        message_id=message_id,
        kind=kind,
        reply_id=reply_id,
        title=title,
    )


def _extract_value(payload: Any) -> dict[str, Any] | None:
    """Return entry[0].changes[0].value or None."""
    try:
        entry = payload.get("entry") or []
        changes = entry[0].get("changes") or []
        value = changes[0].get("value")
    except (AttributeError, IndexError, KeyError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _extract_first_message(payload: Any) -> dict[str, Any] | None:
    """Extract the first message from a Meta webhook payload.

    Meta payload structure:
    {
      "object": "whatsapp_business_account",
      "entry": [{
        "changes": [{
          "value": {
            "metadata": {"phone_number_id": "..."},
            "messages": [{"from": "PHONE", "id": "MSG_ID", "type": "text", ...}]
          },
          "field": "messages"
        }]
      }]
    }
    """
    value = _extract_value(payload)
    if value is None:
        return None
    messages = value.get("messages")
    if not isinstance(messages, list) or not messages:
        return None
    message = messages[0]
    return message if isinstance(message, dict) else None
