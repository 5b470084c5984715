"""
Guided client creation.

    ask_name -> ask_contact -> ask_address -> ask_category -> ask_city -> confirm

Contact and address accept `-` to skip. Category and city can be picked from
values already in use, typed, or skipped.
"""
import logging

from bizops.agent import keyboards, views
from bizops.agent.conversation_state import Flow, Menu, Step
from bizops.agent.flows.base import FlowHandler, require
from bizops.agent.replies import Button, Reply
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Turn
from bizops.services import records
from bizops.services.validators import optional_text, required_text

logger = logging.getLogger(__name__)


class NewClientFlow(FlowHandler):
    flow = Flow.NEW_CLIENT

    actions = {
        (Step.ASK_CATEGORY, "opt"): "pick_category",
        (Step.ASK_CATEGORY, "skip"): "skip_category",
        (Step.ASK_CITY, "opt"): "pick_city",
        (Step.ASK_CITY, "skip"): "skip_city",
        (Step.CONFIRM, "save"): "save",
    }
    text_steps = {
        Step.ASK_NAME: "got_name",
        Step.ASK_CONTACT: "got_contact",
        Step.ASK_ADDRESS: "got_address",
        Step.ASK_CATEGORY: "typed_category",
        Step.ASK_CITY: "typed_city",
    }

    def start(self, turn: Turn) -> Reply:
        turn.session.start(Flow.NEW_CLIENT, Step.ASK_NAME)
        return Reply(text="➕ New client\n\nWhat's the client's name?", actions=[keyboards.cancel_row()])

    def _ask_category(self, turn: Turn) -> Reply:
        turn.session.step = Step.ASK_CATEGORY
        return views.page(turn, ListKind.NEW_CLIENT_OPTIONS, "category")

    def _ask_city(self, turn: Turn) -> Reply:
        turn.session.step = Step.ASK_CITY
        return views.page(turn, ListKind.NEW_CLIENT_OPTIONS, "city")

    def _summary(self, turn: Turn) -> Reply:
        turn.session.step = Step.CONFIRM
        data = turn.session.data
        lines = [
            "📝 Check the new client:",
            f"👤 Name: {data['name']}",
            f"📞 Contact: {data.get('contact') or '-'}",
            f"📍 Address: {data.get('address') or '-'}",
            f"🏷️ Category: {data.get('category') or '-'}",
            f"🏙️ City/Route: {data.get('route') or '-'}",
        ]
        return Reply(
            text="\n".join(lines),
            actions=[[Button("✅ Save", "new_client:save")], keyboards.cancel_row()],
        )

    def got_name(self, turn: Turn, text: str) -> Reply:
        turn.session.data["name"] = required_text(text, "Name")
        turn.session.step = Step.ASK_CONTACT
        return Reply(text="📞 Contact (phone or email)? Send - to skip.", actions=[keyboards.cancel_row()])

    def got_contact(self, turn: Turn, text: str) -> Reply:
        turn.session.data["contact"] = optional_text(text, 255)
        turn.session.step = Step.ASK_ADDRESS
        return Reply(text="📍 Address? Send - to skip.", actions=[keyboards.cancel_row()])

    def got_address(self, turn: Turn, text: str) -> Reply:
        turn.session.data["address"] = optional_text(text, 512)
        return self._ask_category(turn)

    def typed_category(self, turn: Turn, text: str) -> Reply:
        turn.session.data["category"] = optional_text(text, 128)
        return self._ask_city(turn)

    def pick_category(self, turn: Turn, arg=None) -> Reply:
        turn.session.data["category"] = require(arg)
        return self._ask_city(turn)

    def skip_category(self, turn: Turn, arg=None) -> Reply:
        turn.session.data["category"] = None
        return self._ask_city(turn)

    def typed_city(self, turn: Turn, text: str) -> Reply:
        turn.session.data["route"] = optional_text(text, 128)
        return self._summary(turn)

    def pick_city(self, turn: Turn, arg=None) -> Reply:
        turn.session.data["route"] = require(arg)
        return self._summary(turn)

    def skip_city(self, turn: Turn, arg=None) -> Reply:
        turn.session.data["route"] = None
        return self._summary(turn)

    def save(self, turn: Turn, arg=None) -> Reply:
        client = records.create_client(turn.db, turn.session.data, owner_id=turn.seller_id())
        logger.info(f"[NewClient] chat_id={turn.chat_id} created client_id={client.id}")
        turn.session.end_flow()
        turn.session.push_menu(Menu.CLIENTS)
        reply = views.menu_reply(turn, Menu.CLIENTS, text=f"✅ Client {client.name} created.")
        reply.actions.insert(0, [Button(f"👤 {client.name}"[:40], f"client:show:{client.id}")])
        return reply
