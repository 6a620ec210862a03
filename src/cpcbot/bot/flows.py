"""Bot flows: the replies sent for each Flow.

Each flow returns the sequence of ConversationReply to send. Home, FAQ,
Booking and More are static; Catalogue and History read the store;
LeadCapture and Order write to it.
"""

from __future__ import annotations

from cpcbot.domain.catalogue import effective_catalogue, find_item
from cpcbot.domain.orders import LEAD_SOURCE_WHATSAPP_DEMO, NewOrder
from cpcbot.infra.store import Store
from cpcbot.infra.time import utc_now
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import hash_identifier, safe_log_context
from cpcbot.whatsapp.models import (
    ButtonsReply,
    ConversationReply,
    InboundMessage,
    ListReply,
    ListRow,
    ListSection,
    ReplyButton,
    TextReply,
)

from .router import (
    BTN_BACK_HOME,
    BTN_BOOKING,
    BTN_CATALOGUE,
    BTN_FAQ,
    BTN_HISTORY,
    BTN_LEAD,
    BTN_MORE,
    Flow,
    route,
)

logger = get_logger(__name__)

HISTORY_LIMIT = 5

HOME_TEXT = "👋 Welcome to CPC Demo Bot!\n\nExperience our WhatsApp automation features:"

FAQ_TEXT = (
    "❓ *Frequently Asked Questions*\n\n"
    "*Q: What is CPC?*\n"
    "CPC (Chat Product Company) provides WhatsApp automation solutions for businesses.\n\n"
    "*Q: How does it work?*\n"
    "We set up an AI-powered bot on your WhatsApp Business number that handles "
    "customer queries 24/7.\n\n"
    "*Q: What features are available?*\n"
    "• FAQ Automation\n"
    "• Product Catalogues\n"
    "• Appointment Booking\n"
    "• Lead Capture\n"
    "• Order Management\n\n"
    "*Q: How long does setup take?*\n"
    "Most businesses are up and running within 24 hours!"
)

CATALOGUE_TEXT = "📦 *Product Catalogue Demo*\n\nBrowse our sample products:"
CATALOGUE_BUTTON = "View Products"

BOOKING_TEXT = (
    "📅 *Appointment Booking Demo*\n\n"
    "In a live implementation, customers can:\n\n"
    "• View available time slots\n"
    "• Select their preferred date & time\n"
    "• Receive confirmation messages\n"
    "• Get automated reminders\n\n"
    "This feature integrates with your existing calendar system!"
)

LEAD_CAPTURED_TEXT = (
    "📝 *Lead Captured!*\n\n"
    "This demonstrates our lead capture feature.\n\n"
    "In a live implementation:\n"
    "• Customer details are automatically saved\n"
    "• You receive instant notifications\n"
    "• Leads are organized in your dashboard\n"
    "• Follow-up messages are automated\n\n"
    "✅ Your interest has been recorded. Our team will contact you within 24 hours!"
)

MORE_TEXT = "⚙️ *More Options*\n\nExplore additional features:"

NO_ORDERS_TEXT = "📜 *Order History*\n\nNo orders yet! Try ordering from our catalogue demo."

ITEM_NOT_RECOGNIZED_TEXT = "❓ Item not recognized. Please try again."

UNSUPPORTED_TEXT = (
    "I can only process text messages and button selections right now. "
    "Please use the menu options below! 👇"
)

RATE_LIMITED_TEXT = "⏳ You're sending messages too quickly. Please wait a moment and try again."


def home() -> list[ConversationReply]:
    return [
        ButtonsReply(
            HOME_TEXT,
            (
                ReplyButton(BTN_FAQ, "❓ FAQ Demo"),
                ReplyButton(BTN_CATALOGUE, "📦 Catalogue"),
                ReplyButton(BTN_MORE, "⚙️ More Options"),
            ),
        )
    ]


def faq() -> list[ConversationReply]:
    return [
        TextReply(FAQ_TEXT),
        ButtonsReply(
            "Want to see more features?",
            (
                ReplyButton(BTN_CATALOGUE, "📦 View Catalogue"),
                ReplyButton(BTN_LEAD, "📝 Get Started"),
                ReplyButton(BTN_BACK_HOME, "🔙 Back"),
            ),
        ),
    ]


def catalogue(store: Store) -> list[ConversationReply]:
    """List message of the live menu, or the demo items when the menu is empty."""
    live_items = store.list_menu_items()
    section_title = "Available Items" if live_items else "Sample Products"
    rows = tuple(
        ListRow(item.item_id, item.name, item.price_display)
        for item in effective_catalogue(live_items)
    )
    return [
        ListReply(
            CATALOGUE_TEXT,
            CATALOGUE_BUTTON,
            (ListSection(section_title, rows),),
        )
    ]


def booking() -> list[ConversationReply]:
    return [
        TextReply(BOOKING_TEXT),
        ButtonsReply(
            "Would you like to explore other features?",
            (
                ReplyButton(BTN_LEAD, "📝 Get Started"),
                ReplyButton(BTN_FAQ, "❓ FAQ Demo"),
                ReplyButton(BTN_BACK_HOME, "🔙 Back"),
            ),
        ),
    ]


def more() -> list[ConversationReply]:
    return [
        ButtonsReply(
            MORE_TEXT,
            (
                ReplyButton(BTN_BOOKING, "📅 Booking Demo"),
                ReplyButton(BTN_HISTORY, "📜 Order History"),
                ReplyButton(BTN_BACK_HOME, "🔙 Back"),
            ),
        )
    ]


def lead_capture(store: Store, wa_id: str) -> list[ConversationReply]:
    """Upsert the sender as a lead, confirm, and return to the home menu."""
    created = store.upsert_lead(wa_id, wa_id, LEAD_SOURCE_WHATSAPP_DEMO, utc_now())
    logger.info(
        "lead captured" if created else "lead interaction updated",
        extra={"extra_fields": safe_log_context(sender_hash=hash_identifier(wa_id))},
    )
    return [TextReply(LEAD_CAPTURED_TEXT), *home()]


def history(store: Store, wa_id: str) -> list[ConversationReply]:
    """The sender's most recent orders, newest first."""
    orders = store.list_orders(wa_id, HISTORY_LIMIT)
    if not orders:
        return [TextReply(NO_ORDERS_TEXT), *home()]

    lines = ["📜 *Your Recent Orders*\n"]
    lines.extend(order.history_line() for order in orders)
    return [TextReply("\n".join(lines)), *home()]


def order(store: Store, wa_id: str, item_id: str, title: str) -> list[ConversationReply]:
    """Place an order for a picked catalogue item.

    Unknown item ids create no order and re-show the catalogue.
    """
    item = find_item(store.list_menu_items(), item_id)
    if item is None:
        logger.info(
            "order item not recognized",
            extra={
                "extra_fields": safe_log_context(
                    sender_hash=hash_identifier(wa_id),
                    item_id=item_id,
                    title=title,
                )
            },
        )
        return [TextReply(ITEM_NOT_RECOGNIZED_TEXT), *catalogue(store)]

    order_number = store.create_order(
        NewOrder(
            wa_id=wa_id,
            customer_phone=wa_id,
            item_id=item.item_id,
            item_name=item.display_name,
            item_price=item.price,
        )
    )
    logger.info(
        "order created",
        extra={
            "extra_fields": safe_log_context(
                sender_hash=hash_identifier(wa_id),
                item_id=item.item_id,
                order_number=order_number,
            )
        },
    )

    confirmation = (
        "✅ *Order Placed!*\n\n"
        f"Item: *{item.display_name}*\n\n"
        "This is a demo order. In a live implementation:\n"
        "• You'd receive order confirmation\n"
        "• Track order status in real-time\n"
        "• Get delivery updates\n\n"
        "We'll notify you when it's ready! 📦"
    )
    return [TextReply(confirmation), *home()]


def unsupported() -> list[ConversationReply]:
    return [TextReply(UNSUPPORTED_TEXT), *home()]


def rate_limited() -> list[ConversationReply]:
    return [TextReply(RATE_LIMITED_TEXT)]


def run_flow(flow: Flow, store: Store, msg: InboundMessage) -> list[ConversationReply]:
    """Execute `flow` for `msg`. Every Flow member must be handled here."""
    if flow is Flow.HOME:
        return home()
    if flow is Flow.FAQ:
        return faq()
    if flow is Flow.CATALOGUE:
        return catalogue(store)
    if flow is Flow.BOOKING:
        return booking()
    if flow is Flow.LEAD_CAPTURE:
        return lead_capture(store, msg.sender_id)
    if flow is Flow.MORE:
        return more()
    if flow is Flow.HISTORY:
        return history(store, msg.sender_id)
    if flow is Flow.ORDER:
        return order(store, msg.sender_id, msg.reply_id or "", msg.title or "Item")
    if flow is Flow.UNSUPPORTED:
        return unsupported()
    raise ValueError(f"unhandled flow: {flow!r}")


def dispatch(store: Store, msg: InboundMessage) -> tuple[Flow, list[ConversationReply]]:
    """Route `msg` and build its replies."""
    flow = route(msg)
    return flow, run_flow(flow, store, msg)
