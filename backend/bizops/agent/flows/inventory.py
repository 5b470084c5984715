"""Inventory: product search (`ask_query`) and product creation (`ask_product_data`)."""
import logging

from bizops.agent import keyboards, views
from bizops.agent.conversation_state import Flow, Menu, Step
from bizops.agent.flows.base import FlowHandler
from bizops.agent.replies import Reply
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Turn
from bizops.core.exceptions import ValidationFailed
from bizops.services import records
from bizops.services.cart import format_money
from bizops.services.validators import clean_text, parse_product_line

logger = logging.getLogger(__name__)

PRODUCT_FORMAT = "Name | Price | Category | SKU | Stock | Description"


class InventoryFlow(FlowHandler):
    flow = Flow.INVENTORY

    actions = {}
    text_steps = {
        Step.ASK_QUERY: "search",
        Step.ASK_PRODUCT_DATA: "create_product",
    }

    def start_search(self, turn: Turn) -> Reply:
        turn.session.start(Flow.INVENTORY, Step.ASK_QUERY)
        return Reply(
            text="🔎 Send a product name, SKU or category.",
            actions=[keyboards.cancel_row()],
        )

    def start_new(self, turn: Turn) -> Reply:
        turn.session.start(Flow.INVENTORY, Step.ASK_PRODUCT_DATA)
        return Reply(
            text=(
                "➕ New product. Send it in one line:\n"
                f"{PRODUCT_FORMAT}\n\n"
                "Example: Chips 40g | 2.50 | Snacks | CH-40 | 120 | Salted"
            ),
            actions=[keyboards.cancel_row()],
        )

    def search(self, turn: Turn, text: str) -> Reply:
        term = clean_text(text)
        if not term:
            raise ValidationFailed("❌ Send something to search for.")
        return views.page(turn, ListKind.INVENTORY, "q", term)

    def create_product(self, turn: Turn, text: str) -> Reply:
        data = parse_product_line(text)
        if records.get_product_by_code(turn.db, data["external_id"]):
            raise ValidationFailed(f"❌ A product with SKU {data['external_id']} already exists.")
        product = records.create_product(turn.db, data)
        logger.info(f"[Inventory] chat_id={turn.chat_id} created product_id={product.id}")
        turn.session.end_flow()
        turn.session.push_menu(Menu.INVENTORY)
        return views.menu_reply(
            turn, Menu.INVENTORY,
            text=(
                f"✅ Product created: {product.name}\n"
                f"SKU: {product.external_id} · {format_money(product.price)} · Stock: {product.stock}"
            ),
        )
