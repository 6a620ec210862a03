"""WhatsApp message models."""

from dataclasses import dataclass, field
from enum import Enum


class MessageKind(str, Enum):
    """Normalized inbound message kind."""

    TEXT = "text"
    BUTTON = "button"
    LIST = "list"
    OTHER = "other"


@dataclass(frozen=True)
class InboundMessage:
    """Normalized inbound message extracted from a Meta webhook.

    sender_id is the WhatsApp id (phone number) and is PII: never log it
    directly, use redaction.hash_identifier().
    """

    sender_id: str
    message_id: str
    kind: MessageKind
    text: str | None = None
    reply_id: str | None = None
    title: str | None = None

    def audit_content(self) -> dict[str, str]:
        """Fields stored in the inbound message log."""
        content = {"id": self.message_id, "kind": self.kind.value}
        if self.text is not None:
            content["text"] = self.text
        if self.reply_id is not None:
            content["reply_id"] = self.reply_id
        if self.title is not None:
            content["title"] = self.title
        return content


@dataclass(frozen=True)
class ReplyButton:
    id: str
    title: str


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str | None = None


@dataclass(frozen=True)
class ListSection:
    title: str
    rows: tuple[ListRow, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TextReply:
    """Plain text message."""

    body: str


@dataclass(frozen=True)
class ButtonsReply:
    """Interactive reply-button message (max 3 buttons)."""

    body: str
    buttons: tuple[ReplyButton, ...]


@dataclass(frozen=True)
class ListReply:
    """Interactive list message."""

    body: str
    button_label: str
    sections: tuple[ListSection, ...]


# What a bot flow emits; the sender turns each one into one API call.
ConversationReply = TextReply | ButtonsReply | ListReply
