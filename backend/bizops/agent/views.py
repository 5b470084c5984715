"""
Rendering: menus, paged lists, detail cards and the cart.

Every function reads what it needs through `services.records` and returns a
Reply. Lists clamp the requested page (count first, then fetch) so a stale
or hand-made token can't point past the end.
"""
import logging
from datetime import date

from bizops.agent import keyboards
from bizops.agent.conversation_state import Menu
from bizops.agent.replies import Button, Reply
from bizops.agent.tokens import ListKind, PageRequest
from bizops.agent.turn import Turn
from bizops.core.exceptions import RecordNotFound
from bizops.services import cart as cart_service
from bizops.services import records
from bizops.services.records import Page
from bizops.services.short_code import short_code_for

logger = logging.getLogger(__name__)

MENU_TITLES = {
    Menu.MAIN: "🏠 Main menu. What do you want to do?",
    Menu.CLIENTS: "👥 Clients",
    Menu.CLIENTS_SEARCH: "🔎 Search clients by:",
    Menu.SALES: "📈 Sales",
    Menu.SALES_CONSULT: "🔍 Consult sales:",
    Menu.INVENTORY: "📦 Inventory",
}

OPTION_LABELS = {"category": "category", "route": "route", "city": "city"}
EXPIRED = "⌛ This list has expired. Please search again."


def menu_reply(turn: Turn, menu: Menu, text: str | None = None) -> Reply:
    return Reply(
        text=text or MENU_TITLES[menu],
        actions=keyboards.menu_rows(menu, turn.config.WEB_BASE_URL),
    )


def _fmt_date(value) -> str:
    if value is None:
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


def _or_dash(value) -> str:
    return value if value else "-"


def _client_label(client) -> str:
    label = client.name
    if client.route:
        label += f" · {client.route}"
    return label[:60]


def _order_label(turn: Turn, order) -> str:
    client_name = order.client.name if order.client else "No client"
    return f"{short_code_for(turn.db, order)} · {client_name} · {cart_service.format_money(order.total)}"[:60]


def _list_reply(
    turn: Turn,
    request: PageRequest,
    page: Page,
    title: str,
    buttons: list[Button],
    footer: list[list[Button]],
    empty_text: str,
) -> Reply:
    if not page.total:
        return Reply(text=empty_text, actions=footer)
    rows = [[button] for button in buttons]
    pager = keyboards.pager_row(turn.codec, request, page.page, page.last_page)
    if pager:
        rows.append(pager)
    rows.extend(footer)
    return Reply(text=f"{title} ({page.total})", actions=rows)


def _require_value(request: PageRequest) -> str:
    if request.value is None:
        raise RecordNotFound(EXPIRED)
    return request.value


# ==============================================================================
# CLIENT LISTS
# ==============================================================================

def _clients_for_seller(turn: Turn, request: PageRequest) -> Page:
    return records.list_clients(
        turn.db, request.page, turn.config.CLIENTS_PAGE_SIZE, owner_id=turn.seller_id()
    )


def clients_view(turn: Turn, request: PageRequest) -> Reply:
    page = _clients_for_seller(turn, request)
    title = "👥 All clients" if page.extra.get("is_all") else "👥 Your clients"
    return _list_reply(
        turn, request, page, title,
        [Button(_client_label(c), f"client:show:{c.id}") for c in page.rows],
        [[Button("⬅️ Clients", "menu:clients")]],
        "No clients yet. Add one with ➕ New client.",
    )


def clients_edit(turn: Turn, request: PageRequest) -> Reply:
    page = _clients_for_seller(turn, request)
    return _list_reply(
        turn, request, page, "✏️ Pick a client to edit",
        [Button(_client_label(c), f"client:edit:{c.id}") for c in page.rows],
        [[Button("⬅️ Clients", "menu:clients")]],
        "No clients to edit.",
    )


def clients_select(turn: Turn, request: PageRequest) -> Reply:
    page = _clients_for_seller(turn, request)
    return _list_reply(
        turn, request, page, "🛒 Pick the client for this sale, or type part of the name",
        [Button(_client_label(c), f"client:new_order:{c.id}") for c in page.rows],
        [keyboards.cancel_row()],
        "No clients yet. Create one first from 👥 Clients.",
    )


def clients_quick(turn: Turn, request: PageRequest) -> Reply:
    term = _require_value(request)
    page = records.search_clients_text(turn.db, term, request.page, turn.config.CLIENTS_PAGE_SIZE)
    return _list_reply(
        turn, request, page, f"🔎 Clients matching “{term}”",
        [Button(_client_label(c), f"client:new_order:{c.id}") for c in page.rows],
        [[Button("📋 All clients", turn.codec.encode(ListKind.CLIENTS_SELECT))], keyboards.cancel_row()],
        f"No clients match “{term}”. Type another name.",
    )


def sales_clients(turn: Turn, request: PageRequest) -> Reply:
    page = records.list_clients(turn.db, request.page, turn.config.CLIENTS_PAGE_SIZE)
    return _list_reply(
        turn, request, page, "👤 Pick a client to see their orders",
        [Button(_client_label(c), f"client:orders:{c.id}") for c in page.rows],
        [[Button("⬅️ Back", "nav:back")]],
        "No clients yet.",
    )


def search_by_filter(turn: Turn, request: PageRequest) -> Reply:
    option_type = request.key if request.key in OPTION_LABELS else "city"
    value = _require_value(request)
    page = records.clients_by_filter(turn.db, option_type, value, request.page, turn.config.CLIENTS_PAGE_SIZE)
    return _list_reply(
        turn, request, page, f"🔎 Clients with {OPTION_LABELS[option_type]} “{value}”",
        [Button(_client_label(c), f"client:show:{c.id}") for c in page.rows],
        [[Button("⬅️ Search", "clients:search")]],
        f"No clients with {OPTION_LABELS[option_type]} “{value}”.",
    )


def search_by_text(turn: Turn, request: PageRequest) -> Reply:
    term = _require_value(request)
    page = records.search_clients_text(turn.db, term, request.page, turn.config.CLIENTS_PAGE_SIZE)
    return _list_reply(
        turn, request, page, f"🔎 Results for “{term}”",
        [Button(_client_label(c), f"client:show:{c.id}") for c in page.rows],
        [[Button("⬅️ Search", "clients:search")]],
        f"No clients match “{term}”. Send another search or /cancel.",
    )


# ==============================================================================
# OPTION LISTS
# ==============================================================================

def _options(
    turn: Turn, request: PageRequest, action_prefix: str, title: str, footer, empty_hint: str = ""
) -> Reply:
    option_type = request.key if request.key in OPTION_LABELS else "category"
    values = records.distinct_client_values(turn.db, option_type)
    page = records.paginate_list(values, request.page, turn.config.OPTIONS_PAGE_SIZE)
    return _list_reply(
        turn, request, page, title.format(label=OPTION_LABELS[option_type]),
        [Button(value[:40], turn.codec.with_value(action_prefix, value)) for value in page.rows],
        footer,
        f"No {OPTION_LABELS[option_type]} values recorded yet.{empty_hint}",
    )


def search_options(turn: Turn, request: PageRequest) -> Reply:
    option_type = request.key if request.key in OPTION_LABELS else "category"
    return _options(
        turn, request, f"sel:{option_type}", "🔎 Pick a {label}",
        [[Button("⬅️ Search", "clients:search")]],
    )


def new_client_options(turn: Turn, request: PageRequest) -> Reply:
    return _options(
        turn, request, "new_client:opt", "🏷️ Pick a {label}, type a new one, or skip",
        [[Button("⏭️ Skip", "new_client:skip")], keyboards.cancel_row()],
        empty_hint=" Type one, or skip.",
    )


def edit_client_options(turn: Turn, request: PageRequest) -> Reply:
    return _options(
        turn, request, "edit_client:opt", "🏷️ Pick the new {label}",
        [[Button("🧹 Clear", "edit_client:clear"), Button("⬅️ Back", "edit_client:menu")]],
    )


# ==============================================================================
# PRODUCTS
# ==============================================================================

def products(turn: Turn, request: PageRequest) -> Reply:
    term = request.value if request.key else None
    page = records.list_products(turn.db, term, request.page, turn.config.PRODUCTS_PAGE_SIZE)
    title = f"📦 Products matching “{term}”" if term else "📦 Pick a product"
    return _list_reply(
        turn, request, page, title,
        [
            Button(f"{p.name} · {cart_service.format_money(p.price)}"[:60], f"new_order:select_product:{p.id}")
            for p in page.rows
        ],
        [[Button("🔢 By code", "new_order:enter_code"), Button("⬅️ Cart", "new_order:view_cart")]],
        "No products found.",
    )


def inventory_results(turn: Turn, request: PageRequest) -> Reply:
    term = _require_value(request)
    page = records.list_products(turn.db, term, request.page, turn.config.PRODUCTS_PAGE_SIZE)
    footer = [[Button("⬅️ Inventory", "menu:inventory")]]
    if not page.total:
        return Reply(text=f"No products match “{term}”. Send another search or /cancel.", actions=footer)
    lines = [f"📦 Products matching “{term}” ({page.total})", ""]
    for p in page.rows:
        lines.append(f"• {p.name}")
        lines.append(
            f"   SKU: {_or_dash(p.external_id)} · {cart_service.format_money(p.price)}"
            f" · Stock: {p.stock} · {_or_dash(p.category)}"
        )
    rows = []
    pager = keyboards.pager_row(turn.codec, request, page.page, page.last_page)
    if pager:
        rows.append(pager)
    rows.extend(footer)
    return Reply(text="\n".join(lines), actions=rows)


# ==============================================================================
# ORDERS
# ==============================================================================

def orders_by_date(turn: Turn, request: PageRequest) -> Reply:
    raw = _require_value(request)
    try:
        day = date.fromisoformat(raw)
    except ValueError:
        raise RecordNotFound(EXPIRED)
    page = records.list_orders(turn.db, request.page, turn.config.ORDERS_PAGE_SIZE, order_date=day)
    return _list_reply(
        turn, request, page, f"📅 Orders on {day.isoformat()}",
        [Button(_order_label(turn, o), f"order:view:{o.id}") for o in page.rows],
        [[Button("📅 Other date", "sales:by_date"), Button("⬅️ Sales", "menu:sales")]],
        f"No orders on {day.isoformat()}.",
    )


def orders_by_client(turn: Turn, request: PageRequest) -> Reply:
    client = records.get_client(turn.db, request.value)
    if not client:
        raise RecordNotFound("❌ Client not found.")
    page = records.list_orders(turn.db, request.page, turn.config.ORDERS_PAGE_SIZE, client_id=client.id)
    return _list_reply(
        turn, request, page, f"📜 Orders of {client.name}",
        [Button(_order_label(turn, o), f"order:view:{o.id}") for o in page.rows],
        [[Button("👤 Client", f"client:show:{client.id}"), Button("⬅️ Sales", "menu:sales")]],
        f"{client.name} has no orders yet.",
    )


def orders_recent(turn: Turn, request: PageRequest) -> Reply:
    page = records.list_orders(turn.db, request.page, turn.config.ORDERS_PAGE_SIZE)
    return _list_reply(
        turn, request, page, "🕒 Recent orders",
        [Button(_order_label(turn, o), f"order:view:{o.id}") for o in page.rows],
        [[Button("⬅️ Sales", "menu:sales")]],
        "No orders yet.",
    )


PAGE_RENDERERS = {
    ListKind.CLIENTS_VIEW: clients_view,
    ListKind.CLIENTS_EDIT: clients_edit,
    ListKind.CLIENTS_SELECT: clients_select,
    ListKind.CLIENTS_QUICK: clients_quick,
    ListKind.SALES_CLIENTS: sales_clients,
    ListKind.PRODUCTS: products,
    ListKind.ORDERS_BY_DATE: orders_by_date,
    ListKind.ORDERS_BY_CLIENT: orders_by_client,
    ListKind.ORDERS_RECENT: orders_recent,
    ListKind.SEARCH_OPTIONS: search_options,
    ListKind.SEARCH_BY_FILTER: search_by_filter,
    ListKind.SEARCH_BY_TEXT: search_by_text,
    ListKind.NEW_CLIENT_OPTIONS: new_client_options,
    ListKind.EDIT_CLIENT_OPTIONS: edit_client_options,
    ListKind.INVENTORY: inventory_results,
}


def render_page(turn: Turn, request: PageRequest) -> Reply:
    return PAGE_RENDERERS[request.kind](turn, request)


def page(turn: Turn, kind: ListKind, key: str | None = None, value: str | None = None, number: int = 0) -> Reply:
    return render_page(turn, PageRequest(kind, number, key, value))


# ==============================================================================
# DETAIL CARDS
# ==============================================================================

def client_card(turn: Turn, client_id) -> Reply:
    client = records.get_client(turn.db, client_id)
    if not client:
        raise RecordNotFound("❌ Client not found.")
    order_count = records.count_client_orders(turn.db, client.id)
    lines = [
        f"👤 {client.name}",
        f"📞 Contact: {_or_dash(client.contact)}",
        f"📍 Address: {_or_dash(client.address)}",
        f"🏷️ Category: {_or_dash(client.category)}",
        f"🛣️ Route/City: {_or_dash(client.route)}",
        f"🧾 Orders: {order_count}",
        f"📅 Since: {_fmt_date(client.created_at)}",
    ]
    actions = [
        [Button("🛒 New sale", f"client:new_order:{client.id}"), Button("📜 Orders", f"client:orders:{client.id}")],
        [Button("✏️ Edit", f"client:edit:{client.id}")],
        [Button("⬅️ Clients", "menu:clients")],
    ]
    return Reply(text="\n".join(lines), actions=actions)


def order_detail(turn: Turn, order_id) -> Reply:
    order = records.get_order(turn.db, order_id)
    if not order:
        raise RecordNotFound("❌ Order not found.")
    items = records.get_order_items(turn.db, order.id)
    lines = [f"📄 Order {short_code_for(turn.db, order)}"]
    if order.client:
        lines.append(f"• Client: {order.client.name}")
    lines.append(f"• Date: {_fmt_date(order.order_date or order.created_at)}")
    lines.append(f"• Status: {order.status}")
    if items:
        lines.append("• Items:")
        for item in items:
            subtotal = item.line_total if item.line_total is not None else item.unit_price * item.quantity
            lines.append(f"   - {item.product_name} x{item.quantity} = {cart_service.format_money(subtotal)}")
    lines.append(f"💰 Total: {cart_service.format_money(order.total)}")
    lines.append(f"🕒 Created: {order.created_at.strftime('%Y-%m-%d %H:%M') if order.created_at else '-'}")

    actions = []
    if order.client_id:
        actions.append([
            Button("👤 Client", f"client:show:{order.client_id}"),
            Button("📜 Client orders", f"client:orders:{order.client_id}"),
        ])
        actions.append([
            Button("🔁 Repeat order", f"order:repeat:{order.id}"),
            Button("🛒 New sale", f"client:new_order:{order.client_id}"),
        ])
    actions.append([Button("⬅️ Sales", "menu:sales")])
    return Reply(text="\n".join(lines), actions=actions)


def cart_view(turn: Turn, header: str | None = None) -> Reply:
    data = turn.session.data
    cart = data.get("cart", [])
    lines = []
    if header:
        lines += [header, ""]
    lines.append(f"🛒 Cart for {data.get('cliente_nombre') or 'client'}")
    if cart:
        item_lines, total = cart_service.render(cart)
        lines += item_lines
        lines.append(f"💰 Total: {cart_service.format_money(total)}")
    else:
        lines.append("The cart is empty. Add a product to start.")
    return Reply(text="\n".join(lines), actions=keyboards.cart_actions(cart))
