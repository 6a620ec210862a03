"""Outbound WhatsApp messaging via Meta Cloud API.

Security: NEVER log to_phone or message bodies. Only log hashes and lengths.

No retry is attempted here: a failed send raises TransportError and the
webhook route records it. Every attempt, successful or not, is written to
the message log.
"""

import http.client
import json
import urllib.error
import urllib.request
from typing import Any

from cpcbot.infra.settings import Settings
from cpcbot.infra.store import Store
from cpcbot.observability.correlation import get_correlation_id
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import hash_identifier, safe_log_context

from .message_log import STATUS_FAILED, record_message
from .models import (
    ButtonsReply,
    ConversationReply,
    ListReply,
    ListSection,
    ReplyButton,
    TextReply,
)

logger = get_logger(__name__)

GRAPH_API_BASE_URL = "https://graph.facebook.com"

# WhatsApp interactive message limits
MAX_BUTTONS = 3
MAX_BUTTON_TITLE = 20
MAX_LIST_BUTTON_LABEL = 20
MAX_SECTION_TITLE = 24
MAX_ROW_TITLE = 24
MAX_ROW_DESCRIPTION = 72


class TransportError(Exception):
    """Raised when the Graph API send call fails.

    Attributes:
        status_code: HTTP status from the provider, None for network errors
            and missing configuration.
        error_type: Short classification for logs.
    """

    def __init__(
        self, message: str, *, status_code: int | None = None, error_type: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type or type(self).__name__


def _truncate(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[:limit]


def _do_request(
    url: str, data: bytes, headers: dict[str, str], timeout: float
) -> dict[str, Any]:
    """Execute HTTP POST request. Raises on error."""
    req = urllib.request.Request(url, data=data, headers=headers, method="POST")
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read().decode() or "{}")


def build_text_payload(to_phone: str, body: str) -> dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "to": to_phone,
        "type": "text",
        "text": {"body": body},
    }


def build_buttons_payload(
    to_phone: str, body: str, buttons: tuple[ReplyButton, ...]
) -> dict[str, Any]:
    """Reply-button message. Extra buttons are dropped, titles truncated."""
    return {
        "messaging_product": "whatsapp",
        "to": to_phone,
        "type": "interactive",
        "interactive": {
            "type": "button",
            "body": {"text": body},
            "action": {
                "buttons": [
                    {
                        "type": "reply",
                        "reply": {"id": b.id, "title": _truncate(b.title, MAX_BUTTON_TITLE)},
                    }
                    for b in buttons[:MAX_BUTTONS]
                ]
            },
        },
    }


def build_list_payload(
    to_phone: str, body: str, button_label: str, sections: tuple[ListSection, ...]
) -> dict[str, Any]:
    """List message with grouped sections of rows."""
    wire_sections = []
    for section in sections:
        rows = []
        for row in section.rows:
            wire_row = {"id": row.id, "title": _truncate(row.title, MAX_ROW_TITLE)}
            if row.description:
                wire_row["description"] = _truncate(row.description, MAX_ROW_DESCRIPTION)
            rows.append(wire_row)
        wire_sections.append(
            {"title": _truncate(section.title, MAX_SECTION_TITLE), "rows": rows}
        )

    return {
        "messaging_product": "whatsapp",
        "to": to_phone,
        "type": "interactive",
        "interactive": {
            "type": "list",
            "body": {"text": body},
            "action": {
                "button": _truncate(button_label, MAX_LIST_BUTTON_LABEL),
                "sections": wire_sections,
            },
        },
    }


class MetaSender:
    """Sends text, button and list messages through the Graph API.

    Args:
        settings: Access token, phone number id, API version and timeout.
        store: Storage used for the outbound message log.
    """

    def __init__(self, settings: Settings, store: Store) -> None:
        self._settings = settings
        self._store = store

    @property
    def messages_url(self) -> str:
        return (
            f"{GRAPH_API_BASE_URL}/{self._settings.graph_api_version}/"
            f"{self._settings.phone_number_id}/messages"
        )

    def send_text(self, to_phone: str, body: str) -> dict[str, Any]:
        payload = build_text_payload(to_phone, body)
        return self._send(to_phone, "text", payload, {"body": body})

    def send_buttons(
        self, to_phone: str, body: str, buttons: tuple[ReplyButton, ...]
    ) -> dict[str, Any]:
        payload = build_buttons_payload(to_phone, body, buttons)
        return self._send(to_phone, "buttons", payload, payload["interactive"])

    def send_list(
        self,
        to_phone: str,
        body: str,
        button_label: str,
        sections: tuple[ListSection, ...],
    ) -> dict[str, Any]:
        payload = build_list_payload(to_phone, body, button_label, sections)
        return self._send(to_phone, "list", payload, payload["interactive"])

    def send_reply(self, to_phone: str, reply: ConversationReply) -> dict[str, Any]:
        """Send one ConversationReply with the matching message shape."""
        if isinstance(reply, TextReply):
            return self.send_text(to_phone, reply.body)
        if isinstance(reply, ButtonsReply):
            return self.send_buttons(to_phone, reply.body, reply.buttons)
        if isinstance(reply, ListReply):
            return self.send_list(to_phone, reply.body, reply.button_label, reply.sections)
        raise TypeError(f"unsupported reply type: {type(reply).__name__}")

    def _send(
        self,
        to_phone: str,
        message_type: str,
        payload: dict[str, Any],
        log_content: dict[str, Any],
    ) -> dict[str, Any]:
        log_ctx = safe_log_context(
            correlationId=get_correlation_id(),
            to_hash=hash_identifier(to_phone),
            message_type=message_type,
            provider="meta",
        )

        try:
            result = self._post(payload)
        except TransportError as e:
            logger.error(
                "outbound send via meta failed",
                extra={
                    "extra_fields": safe_log_context(
                        **log_ctx, error_type=e.error_type, status_code=e.status_code
                    )
                },
            )
            record_message(
                self._store,
                wa_id=to_phone,
                direction="outbound",
                message_type=message_type,
                content=log_content,
                status=STATUS_FAILED,
                error=str(e),
            )
            raise

        logger.info("outbound message sent via meta", extra={"extra_fields": log_ctx})
        record_message(
            self._store,
            wa_id=to_phone,
            direction="outbound",
            message_type=message_type,
            content=log_content,
        )
        return result

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST to the messages endpoint, mapping every failure to TransportError."""
        if not self._settings.access_token or not self._settings.phone_number_id:
            raise TransportError(
                "Missing WhatsApp config: WHATSAPP_ACCESS_TOKEN and "
                "WHATSAPP_PHONE_NUMBER_ID required",
                error_type="config",
            )

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.access_token}",
        }
        data = json.dumps(payload).encode("utf-8")

        try:
            return _do_request(self.messages_url, data, headers, self._settings.http_timeout)
        except urllib.error.HTTPError as e:
            raise TransportError(
                f"WhatsApp API error: {e.code}", status_code=e.code, error_type="http"
            ) from e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise TransportError(
                f"WhatsApp API unreachable: {type(e).__name__}", error_type="network"
            ) from e
        except ValueError as e:
            raise TransportError("WhatsApp API returned invalid JSON", error_type="decode") from e
