"""Content-addressed dispatch: which flow answers an inbound message.

Routing is stateless per message. Nothing about earlier turns is consulted;
every reply ends on a navigable menu.
"""

from __future__ import annotations

from enum import Enum

from cpcbot.whatsapp.models import InboundMessage, MessageKind

# Button ids sent in interactive messages and echoed back in button replies
BTN_MENU = "BTN_MENU"
BTN_ORDER = "BTN_ORDER"
BTN_MORE = "BTN_MORE"
BTN_BACK_HOME = "BTN_BACK_HOME"
BTN_CONTACT = "BTN_CONTACT"
BTN_HISTORY = "BTN_HISTORY"
BTN_FAQ = "BTN_FAQ"
BTN_CATALOGUE = "BTN_CATALOGUE"
BTN_BOOKING = "BTN_BOOKING"
BTN_LEAD = "BTN_LEAD"


class Flow(str, Enum):
    """Closed set of bot flows."""

    HOME = "home"
    FAQ = "faq"
    CATALOGUE = "catalogue"
    BOOKING = "booking"
    LEAD_CAPTURE = "lead_capture"
    MORE = "more"
    HISTORY = "history"
    ORDER = "order"
    UNSUPPORTED = "unsupported"


# Checked in order; first vocabulary containing the text wins
TEXT_VOCABULARY: tuple[tuple[frozenset[str], Flow], ...] = (
    (frozenset({"hi", "hello", "start", "hey", "hola", "menu"}), Flow.HOME),
    (frozenset({"faq", "help"}), Flow.FAQ),
    (frozenset({"catalogue", "catalog", "products", "order"}), Flow.CATALOGUE),
    (frozenset({"book", "booking", "appointment"}), Flow.BOOKING),
    (frozenset({"lead", "contact", "interest", "demo"}), Flow.LEAD_CAPTURE),
    (frozenset({"more"}), Flow.MORE),
    (frozenset({"history", "orders"}), Flow.HISTORY),
)

BUTTON_FLOWS: dict[str, Flow] = {
    BTN_MENU: Flow.HOME,
    BTN_ORDER: Flow.CATALOGUE,
    BTN_MORE: Flow.MORE,
    BTN_HISTORY: Flow.HISTORY,
    BTN_CONTACT: Flow.LEAD_CAPTURE,
    BTN_BACK_HOME: Flow.HOME,
    BTN_FAQ: Flow.FAQ,
    BTN_CATALOGUE: Flow.CATALOGUE,
    BTN_BOOKING: Flow.BOOKING,
    BTN_LEAD: Flow.LEAD_CAPTURE,
}


def route_text(text: str | None) -> Flow:
    """Match free text against the fixed vocabulary. Unmatched text goes home."""
    normalized = (text or "").strip().lower()
    for words, flow in TEXT_VOCABULARY:
        if normalized in words:
            return flow
    return Flow.HOME


def route(msg: InboundMessage) -> Flow:
    """Pick the flow for an inbound message."""
    if msg.kind is MessageKind.TEXT:
        return route_text(msg.text)
    if msg.kind is MessageKind.BUTTON:
        return BUTTON_FLOWS.get(msg.reply_id or "", Flow.HOME)
    if msg.kind is MessageKind.LIST:
        # A list selection is always a catalogue item pick
        return Flow.ORDER
    return Flow.UNSUPPORTED
