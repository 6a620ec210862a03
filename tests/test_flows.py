"""Tests for bot flows: reply content and store side effects."""

import pytest

from cpcbot.bot import flows
from cpcbot.bot.router import BTN_BACK_HOME, BTN_CATALOGUE, BTN_FAQ, BTN_MORE, Flow
from cpcbot.domain.catalogue import ITEM_FRIES, ITEM_ZINGER, MenuItem
from cpcbot.whatsapp.models import (
    ButtonsReply,
    InboundMessage,
    ListReply,
    MessageKind,
    TextReply,
)

from .helpers import FakeStore

WA_ID = "923001234561"


def _ends_with_menu(replies) -> bool:
    """Every flow except rate limiting leaves the user on a navigable menu."""
    return isinstance(replies[-1], (ButtonsReply, ListReply))


def _msg(kind, *, text=None, reply_id=None, title=None):
    return InboundMessage(
        sender_id=WA_ID,
        message_id="wamid.F",
        kind=kind,
        text=text,
        reply_id=reply_id,
        title=title,
    )


class TestStaticFlows:
    def test_home_has_three_buttons(self):
        [reply] = flows.home()

        assert isinstance(reply, ButtonsReply)
        assert reply.body == flows.HOME_TEXT
        assert [b.id for b in reply.buttons] == [BTN_FAQ, BTN_CATALOGUE, BTN_MORE]

    def test_faq(self):
        replies = flows.faq()

        assert isinstance(replies[0], TextReply)
        assert "Frequently Asked Questions" in replies[0].body
        assert _ends_with_menu(replies)
        assert replies[-1].buttons[-1].id == BTN_BACK_HOME

    def test_booking(self):
        replies = flows.booking()
        assert "Appointment Booking" in replies[0].body
        assert _ends_with_menu(replies)

    def test_more(self):
        [reply] = flows.more()
        assert isinstance(reply, ButtonsReply)
        assert len(reply.buttons) == 3

    def test_unsupported(self):
        replies = flows.unsupported()
        assert replies[0] == TextReply(flows.UNSUPPORTED_TEXT)
        assert _ends_with_menu(replies)

    def test_rate_limited_is_single_text(self):
        assert flows.rate_limited() == [TextReply(flows.RATE_LIMITED_TEXT)]

    def test_all_button_titles_fit_whatsapp_limit(self):
        for replies in (flows.home(), flows.faq(), flows.booking(), flows.more()):
            for reply in replies:
                if isinstance(reply, ButtonsReply):
                    assert len(reply.buttons) <= 3
                    assert all(len(b.title) <= 20 for b in reply.buttons)


class TestCatalogue:
    def test_empty_menu_shows_demo_items(self):
        [reply] = flows.catalogue(FakeStore())

        assert isinstance(reply, ListReply)
        assert reply.button_label == flows.CATALOGUE_BUTTON
        [section] = reply.sections
        assert section.title == "Sample Products"
        assert [r.id for r in section.rows] == ["ITEM_ZINGER", "ITEM_PIZZA", "ITEM_FRIES"]
        assert section.rows[0].description == "Rs 450"

    def test_live_menu_items(self):
        store = FakeStore([MenuItem("ITEM_TEA", "Chai", 8000)])

        [reply] = flows.catalogue(store)

        [section] = reply.sections
        assert section.title == "Available Items"
        assert [(r.id, r.title, r.description) for r in section.rows] == [("ITEM_TEA", "Chai", "Rs 80")]


class TestOrder:
    def test_known_item_creates_order(self):
        store = FakeStore()

        replies = flows.order(store, WA_ID, ITEM_ZINGER, "Zinger Burger")

        assert len(store.orders) == 1
        order = store.orders[0]["order"]
        assert order.wa_id == WA_ID
        assert order.customer_phone == WA_ID
        assert order.item_id == ITEM_ZINGER
        assert order.item_name == "Zinger Burger — Rs 450"
        assert order.item_price == 45000
        assert order.status == "placed"
        assert "Order Placed" in replies[0].body
        assert "Zinger Burger — Rs 450" in replies[0].body
        assert replies[1:] == flows.home()

    def test_unknown_item_creates_nothing_and_reshows_catalogue(self):
        store = FakeStore()

        replies = flows.order(store, WA_ID, "ITEM_UNKNOWN", "Mystery")

        assert store.orders == []
        assert replies[0] == TextReply(flows.ITEM_NOT_RECOGNIZED_TEXT)
        assert isinstance(replies[1], ListReply)

    def test_demo_item_not_offered_when_live_menu_exists(self):
        store = FakeStore([MenuItem("ITEM_TEA", "Chai", 8000)])

        flows.order(store, WA_ID, ITEM_FRIES, "Fries")

        assert store.orders == []


class TestHistory:
    def test_no_orders(self):
        replies = flows.history(FakeStore(), WA_ID)

        assert replies[0] == TextReply(flows.NO_ORDERS_TEXT)
        assert _ends_with_menu(replies)

    def test_lists_recent_orders_newest_first(self):
        store = FakeStore()
        for _ in range(7):
            flows.order(store, WA_ID, ITEM_FRIES, "Fries")
        flows.order(store, WA_ID, ITEM_ZINGER, "Zinger")
        flows.order(store, "923009999999", ITEM_ZINGER, "Zinger")

        replies = flows.history(store, WA_ID)

        lines = replies[0].body.splitlines()
        assert lines[0] == "📜 *Your Recent Orders*"
        order_lines = [line for line in lines if line.startswith("🆕")]
        assert len(order_lines) == flows.HISTORY_LIMIT
        assert order_lines[0] == "🆕 #ORD-000008 Zinger Burger — Rs 450 — placed"
        assert _ends_with_menu(replies)


class TestLeadCapture:
    def test_creates_lead_then_home(self):
        store = FakeStore()

        replies = flows.lead_capture(store, WA_ID)

        assert store.leads[WA_ID]["source"] == "whatsapp_demo"
        assert store.leads[WA_ID]["phone"] == WA_ID
        assert replies[0] == TextReply(flows.LEAD_CAPTURED_TEXT)
        assert replies[1:] == flows.home()

    def test_second_capture_updates_interaction_only(self):
        store = FakeStore()
        flows.lead_capture(store, WA_ID)
        captured_at = store.leads[WA_ID]["captured_at"]

        flows.lead_capture(store, WA_ID)

        assert len(store.leads) == 1
        assert store.leads[WA_ID]["captured_at"] == captured_at


class TestDispatch:
    @pytest.mark.parametrize(
        "msg,flow",
        [
            (_msg(MessageKind.TEXT, text="hi"), Flow.HOME),
            (_msg(MessageKind.TEXT, text="asdf123"), Flow.HOME),
            (_msg(MessageKind.TEXT, text="help"), Flow.FAQ),
            (_msg(MessageKind.BUTTON, reply_id="BTN_ORDER"), Flow.CATALOGUE),
            (_msg(MessageKind.BUTTON, reply_id="BTN_HISTORY"), Flow.HISTORY),
            (_msg(MessageKind.LIST, reply_id="ITEM_PIZZA", title="Pizza Slice"), Flow.ORDER),
            (_msg(MessageKind.OTHER), Flow.UNSUPPORTED),
        ],
    )
    def test_every_flow_ends_on_a_menu(self, msg, flow):
        routed, replies = flows.dispatch(FakeStore(), msg)

        assert routed is flow
        assert replies
        assert _ends_with_menu(replies)

    def test_every_flow_is_handled(self):
        store = FakeStore()
        msg = _msg(MessageKind.LIST, reply_id=ITEM_FRIES, title="Fries")
        for flow in Flow:
            assert flows.run_flow(flow, store, msg)
