"""Inline keyboard layouts as rows of Buttons."""
from bizops.agent.conversation_state import Menu
from bizops.agent.replies import Button
from bizops.agent.tokens import PageRequest, PageTokenCodec
from bizops.services.cart import item_key

Rows = list[list[Button]]

QTY_CHOICES = (1, 2, 3, 5, 10)


def main_menu(web_url: str) -> Rows:
    rows = [
        [Button("👥 Clients", "menu:clients"), Button("🛒 New sale", "sales:new")],
        [Button("📈 Sales", "menu:sales"), Button("📦 Inventory", "menu:inventory")],
    ]
    if web_url:
        rows.append([Button("🌐 Open dashboard", url=web_url)])
    return rows


def clients_menu() -> Rows:
    return [
        [Button("📋 View clients", "clients:view"), Button("➕ New client", "clients:new")],
        [Button("✏️ Edit client", "clients:edit"), Button("🔎 Search", "clients:search")],
        [Button("⬅️ Main menu", "back:main")],
    ]


def clients_search_menu() -> Rows:
    return [
        [Button("🏷️ By category", "clients:search:category"), Button("🛣️ By route", "clients:search:route")],
        [Button("🏙️ By city", "clients:search:city"), Button("🔤 By text", "clients:search:text")],
        [Button("⬅️ Back", "nav:back")],
    ]


def sales_menu() -> Rows:
    return [
        [Button("🛒 New sale", "sales:new"), Button("🔍 Consult sales", "sales:consult")],
        [Button("⬅️ Main menu", "back:main")],
    ]


def sales_consult_menu() -> Rows:
    return [
        [Button("📅 By date", "sales:by_date"), Button("👤 By client", "sales:by_client")],
        [Button("🕒 Recent orders", "sales:recent")],
        [Button("⬅️ Back", "nav:back")],
    ]


def inventory_menu() -> Rows:
    return [
        [Button("🔎 Search product", "inventory:search"), Button("➕ New product", "inventory:new")],
        [Button("⬅️ Main menu", "back:main")],
    ]


MENU_LAYOUTS = {
    Menu.CLIENTS: clients_menu,
    Menu.CLIENTS_SEARCH: clients_search_menu,
    Menu.SALES: sales_menu,
    Menu.SALES_CONSULT: sales_consult_menu,
    Menu.INVENTORY: inventory_menu,
}


def menu_rows(menu: Menu, web_url: str) -> Rows:
    if menu == Menu.MAIN:
        return main_menu(web_url)
    return MENU_LAYOUTS[menu]()


def cancel_row() -> list[Button]:
    return [Button("❌ Cancel", "cancel")]


def pager_row(codec: PageTokenCodec, request: PageRequest, page: int, last_page: int) -> list[Button]:
    """Prev/next around a position label; the arrows vanish at either end."""
    if last_page <= 0:
        return []
    row = []
    if page > 0:
        row.append(Button("◀️", codec.encode_request(request.at(page - 1))))
    row.append(Button(f"{page + 1}/{last_page + 1}", "noop"))
    if page < last_page:
        row.append(Button("▶️", codec.encode_request(request.at(page + 1))))
    return row


def qty_picker(product_id) -> Rows:
    return [
        [Button(str(n), f"new_order:set_qty:{n}") for n in QTY_CHOICES[:3]],
        [Button(str(n), f"new_order:set_qty:{n}") for n in QTY_CHOICES[3:]],
        [Button("✍️ Other amount", f"new_order:ask_qty:{product_id}")],
        [Button("⬅️ Back to cart", "new_order:view_cart")],
    ]


def cart_actions(cart: list[dict]) -> Rows:
    rows = []
    for item in cart:
        key = item_key(item)
        rows.append([
            Button(f"➖ {item['name'][:24]}", f"new_order:item_dec:{key}"),
            Button("🗑️", f"new_order:item_del:{key}"),
        ])
    rows.append([Button("➕ Add product", "new_order:add_product"), Button("🔢 By code", "new_order:enter_code")])
    if cart:
        rows.append([Button("✅ Confirm order", "new_order:confirm")])
    rows.append(cancel_row())
    return rows
