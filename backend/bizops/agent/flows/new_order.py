"""
New sale: pick a client, fill a cart, confirm.

    select_client --pick--> cart
    cart --enter_code--> ask_product_code --code found--> cart (+ qty picker)
    cart --select_product--> cart (+ qty picker)
    cart --ask_qty--> ask_qty --valid number--> cart
    cart --confirm--> order stored, session cleared

A product waiting for its quantity lives in `data["pending_product"]`.
"""
import logging
from datetime import date

from bizops.agent import keyboards, views
from bizops.agent.conversation_state import Flow, Step
from bizops.agent.flows.base import FlowHandler, require
from bizops.agent.replies import Button, Reply
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Turn
from bizops.core.exceptions import RecordNotFound, ValidationFailed
from bizops.services import cart as cart_service
from bizops.services import records
from bizops.services.short_code import short_code_for
from bizops.services.validators import clean_text, parse_positive_int

logger = logging.getLogger(__name__)


class NewOrderFlow(FlowHandler):
    flow = Flow.NEW_ORDER

    actions = {
        (None, "view_cart"): "view_cart",
        (None, "add_product"): "add_product",
        (None, "enter_code"): "enter_code",
        (None, "select_product"): "select_product",
        (None, "set_qty"): "set_qty",
        (None, "ask_qty"): "ask_qty",
        (Step.CART, "item_dec"): "item_dec",
        (Step.CART, "item_del"): "item_del",
        (Step.CART, "confirm"): "confirm",
    }
    text_steps = {
        Step.SELECT_CLIENT: "quick_search",
        Step.ASK_PRODUCT_CODE: "lookup_code",
        Step.ASK_QTY: "manual_qty",
    }

    # ------------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------------

    def start_selection(self, turn: Turn) -> Reply:
        turn.session.start(Flow.NEW_ORDER, Step.SELECT_CLIENT)
        return views.page(turn, ListKind.CLIENTS_SELECT)

    def start_for_client(self, turn: Turn, client_id) -> Reply:
        client = records.get_client(turn.db, client_id)
        if not client:
            raise RecordNotFound("❌ Client not found.")
        turn.session.start(
            Flow.NEW_ORDER, Step.CART,
            {"cliente_id": client.id, "cliente_nombre": client.name, "cart": []},
        )
        logger.info(f"[NewOrder] chat_id={turn.chat_id} started sale for client_id={client.id}")
        return views.cart_view(turn)

    def start_repeat(self, turn: Turn, order_id) -> Reply:
        order = records.get_order(turn.db, order_id)
        if not order:
            raise RecordNotFound("❌ Order not found.")
        if not order.client:
            raise RecordNotFound("❌ That order has no client to repeat it for.")
        cart = cart_service.reconstruct_from_history(records.get_order_items(turn.db, order.id))
        turn.session.start(
            Flow.NEW_ORDER, Step.CART,
            {"cliente_id": order.client.id, "cliente_nombre": order.client.name, "cart": cart},
        )
        logger.info(f"[NewOrder] chat_id={turn.chat_id} repeating order_id={order.id} ({len(cart)} lines)")
        return views.cart_view(turn, header=f"🔁 Repeating order {short_code_for(turn.db, order)}")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_client(turn: Turn) -> None:
        if not turn.session.data.get("cliente_id"):
            raise RecordNotFound("❌ Pick a client first.", fallback_step=Step.SELECT_CLIENT)

    @staticmethod
    def _to_cart(turn: Turn) -> None:
        turn.session.step = Step.CART
        turn.session.data.pop("pending_product", None)

    def _set_pending(self, turn: Turn, product) -> Reply:
        turn.session.data["pending_product"] = {
            "product_id": product.id,
            "name": product.name,
            "price": str(product.price),
        }
        turn.session.step = Step.CART
        return Reply(
            text=f"📦 {product.name} · {cart_service.format_money(product.price)}\nHow many?",
            actions=keyboards.qty_picker(product.id),
        )

    def _add_pending(self, turn: Turn, qty: int) -> Reply:
        pending = turn.session.data.get("pending_product")
        if not pending:
            raise RecordNotFound("❌ Pick a product first.", fallback_step=Step.CART)
        cart = turn.session.data.setdefault("cart", [])
        cart_service.add_or_increment(cart, pending, qty)
        self._to_cart(turn)
        return views.cart_view(turn, header=f"✅ Added {qty} x {pending['name']}")

    # ------------------------------------------------------------------
    # button transitions
    # ------------------------------------------------------------------

    def view_cart(self, turn: Turn, arg=None) -> Reply:
        self._require_client(turn)
        self._to_cart(turn)
        return views.cart_view(turn)

    def add_product(self, turn: Turn, arg=None) -> Reply:
        self._require_client(turn)
        self._to_cart(turn)
        return views.page(turn, ListKind.PRODUCTS)

    def enter_code(self, turn: Turn, arg=None) -> Reply:
        self._require_client(turn)
        turn.session.data.pop("pending_product", None)
        turn.session.step = Step.ASK_PRODUCT_CODE
        return Reply(
            text="🔢 Send the product code (SKU).",
            actions=[[Button("⬅️ Back to cart", "new_order:view_cart")]],
        )

    def select_product(self, turn: Turn, arg=None) -> Reply:
        product_id = require(arg)
        self._require_client(turn)
        product = records.get_product(turn.db, product_id)
        if not product:
            raise RecordNotFound("❌ Product not found.", fallback_step=Step.CART)
        return self._set_pending(turn, product)

    def set_qty(self, turn: Turn, arg=None) -> Reply:
        qty = parse_positive_int(require(arg))
        return self._add_pending(turn, qty)

    def ask_qty(self, turn: Turn, arg=None) -> Reply:
        pending = turn.session.data.get("pending_product")
        if arg and (not pending or str(pending["product_id"]) != str(arg)):
            product = records.get_product(turn.db, arg)
            if not product:
                raise RecordNotFound("❌ Product not found.", fallback_step=Step.CART)
            self._set_pending(turn, product)
            pending = turn.session.data["pending_product"]
        if not pending:
            raise RecordNotFound("❌ Pick a product first.", fallback_step=Step.CART)
        turn.session.step = Step.ASK_QTY
        return Reply(
            text=f"✍️ How many {pending['name']}? Send a whole number.",
            actions=[[Button("⬅️ Back to cart", "new_order:view_cart")]],
        )

    def item_dec(self, turn: Turn, arg=None) -> Reply:
        key = require(arg)
        cart_service.decrement(turn.session.data.setdefault("cart", []), key)
        return views.cart_view(turn)

    def item_del(self, turn: Turn, arg=None) -> Reply:
        key = require(arg)
        cart_service.remove(turn.session.data.setdefault("cart", []), key)
        return views.cart_view(turn)

    def confirm(self, turn: Turn, arg=None) -> Reply:
        self._require_client(turn)
        data = turn.session.data
        cart = data.get("cart") or []
        if not cart:
            raise ValidationFailed("🛒 The cart is empty. Add a product before confirming.")

        order = records.create_order(
            turn.db,
            client_id=data["cliente_id"],
            cart=cart,
            created_by_id=turn.seller_id(),
            order_date=date.today(),
        )
        code = short_code_for(turn.db, order)
        logger.info(f"[NewOrder] chat_id={turn.chat_id} confirmed order_id={order.id} code={code}")
        turn.session.end_flow()
        return Reply(
            text=(
                f"✅ Order {code} saved.\n"
                f"👤 {data.get('cliente_nombre') or ''}\n"
                f"💰 Total: {cart_service.format_money(order.total)}"
            ),
            actions=[
                [Button("📄 View order", f"order:view:{order.id}")],
                [Button("🛒 New sale", "sales:new"), Button("🏠 Menu", "menu:main")],
            ],
        )

    # ------------------------------------------------------------------
    # free-text transitions
    # ------------------------------------------------------------------

    def quick_search(self, turn: Turn, text: str) -> Reply:
        term = clean_text(text)
        if not term:
            raise ValidationFailed("❌ Type part of the client's name.")
        return views.page(turn, ListKind.CLIENTS_QUICK, "q", term)

    def lookup_code(self, turn: Turn, text: str) -> Reply:
        code = clean_text(text)
        product = records.get_product_by_code(turn.db, code)
        if not product:
            raise RecordNotFound(f"❌ No product with code “{code}”. Try again or go back to the cart.")
        return self._set_pending(turn, product)

    def manual_qty(self, turn: Turn, text: str) -> Reply:
        if not turn.session.data.get("pending_product"):
            raise RecordNotFound("❌ Pick a product first.", fallback_step=Step.CART)
        qty = parse_positive_int(text)
        return self._add_pending(turn, qty)
