"""Client, search, sales-by-date and inventory conversations plus slash commands."""
from datetime import date
from decimal import Decimal

import pytest

from bizops.agent.conversation_state import Flow, Menu, Step
from bizops.agent.replies import ACTION_UNAVAILABLE
from bizops.agent.router import HELP_TEXT, UNKNOWN_COMMAND, FlowRouter
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Sender
from bizops.agent.views import EXPIRED
from bizops.core.config import Settings
from bizops.models import Client, Product, User
from bizops.services import records


def _tokens(reply):
    return [button.token for row in reply.actions for button in row]


def _labels(reply):
    return [button.label for row in reply.actions for button in row]


# ==============================================================================
# NEW CLIENT
# ==============================================================================

def test_new_client_guided_flow(router, store, chat_id, sender, catalog, codec, db):
    reply = router.handle_action(chat_id, "clients:new", sender)
    assert store.get(chat_id).step == Step.ASK_NAME
    assert "name" in reply.text

    router.handle_text(chat_id, "Nova Store", sender)
    assert store.get(chat_id).step == Step.ASK_CONTACT
    router.handle_text(chat_id, "-", sender)
    assert store.get(chat_id).data["contact"] is None
    reply = router.handle_text(chat_id, "5 Elm St", sender)

    assert store.get(chat_id).step == Step.ASK_CATEGORY
    retail = codec.with_value("new_client:opt", "Retail")
    assert retail in _tokens(reply)
    assert codec.with_value("new_client:opt", "Kiosk") in _tokens(reply)

    reply = router.handle_action(chat_id, retail, sender)
    assert store.get(chat_id).step == Step.ASK_CITY
    assert codec.with_value("new_client:opt", "South City") in _tokens(reply)

    reply = router.handle_text(chat_id, "Lakeside", sender)
    assert store.get(chat_id).step == Step.CONFIRM
    assert "Category: Retail" in reply.text
    assert "City/Route: Lakeside" in reply.text

    reply = router.handle_action(chat_id, "new_client:save", sender)
    assert "Client Nova Store created" in reply.text
    session = store.get(chat_id)
    assert session.flow is None
    assert session.nav_stack == [Menu.CLIENTS]

    db.expire_all()
    client = db.query(Client).filter(Client.name == "Nova Store").one()
    assert (client.contact, client.address, client.category, client.route) == (None, "5 Elm St", "Retail", "Lakeside")
    assert client.owner_id == catalog.seller
    assert f"client:show:{client.id}" in _tokens(reply)


def test_new_client_skip_buttons(router, store, chat_id, sender, catalog, db):
    router.handle_action(chat_id, "clients:new", sender)
    router.handle_text(chat_id, "Bare Client", sender)
    router.handle_text(chat_id, "skip", sender)
    router.handle_text(chat_id, "omitir", sender)
    router.handle_action(chat_id, "new_client:skip", sender)
    reply = router.handle_action(chat_id, "new_client:skip", sender)
    assert store.get(chat_id).step == Step.CONFIRM
    assert "Category: -" in reply.text

    router.handle_action(chat_id, "new_client:save", sender)
    db.expire_all()
    client = db.query(Client).filter(Client.name == "Bare Client").one()
    assert (client.contact, client.address, client.category, client.route) == (None, None, None, None)


def test_save_is_only_valid_on_the_summary_step(router, store, chat_id, sender, catalog):
    router.handle_action(chat_id, "clients:new", sender)
    reply = router.handle_action(chat_id, "new_client:save", sender)
    assert reply.notice == ACTION_UNAVAILABLE
    assert store.get(chat_id).step == Step.ASK_NAME


def test_quick_client_command(router, store, chat_id, sender, catalog, db):
    reply = router.handle_text(chat_id, "/new_client Ana Pérez | 555-1234 | Main St 12", sender)
    assert "Client Ana Pérez created" in reply.text
    assert reply.replace is False

    db.expire_all()
    client = db.query(Client).filter(Client.name == "Ana Pérez").one()
    assert (client.contact, client.address, client.owner_id) == ("555-1234", "Main St 12", catalog.seller)
    assert f"client:new_order:{client.id}" in _tokens(reply)


def test_quick_client_without_arguments_starts_guided_flow(router, store, chat_id, sender, catalog):
    router.handle_text(chat_id, "/new_client", sender)
    session = store.get(chat_id)
    assert session.flow == Flow.NEW_CLIENT
    assert session.step == Step.ASK_NAME


# ==============================================================================
# EDIT CLIENT
# ==============================================================================

def test_edit_client_keep_clear_and_pick(router, store, chat_id, sender, catalog, codec, db):
    reply = router.handle_action(chat_id, f"client:edit:{catalog.corner}", sender)
    assert store.get(chat_id).step == Step.EDIT_MENU
    assert "Contact: 555-0101" in reply.text

    router.handle_action(chat_id, "edit_client:field:contact", sender)
    assert store.get(chat_id).step == Step.EDIT_TEXT
    reply = router.handle_text(chat_id, "-", sender)
    assert store.get(chat_id).step == Step.EDIT_MENU
    assert "Contact: - ✳️" in reply.text

    router.handle_action(chat_id, "edit_client:field:name", sender)
    reply = router.handle_text(chat_id, "-", sender)
    assert "name can't be empty" in reply.text
    assert store.get(chat_id).step == Step.EDIT_TEXT
    reply = router.handle_text(chat_id, "!", sender)
    assert "Name: Corner Market\n" in reply.text

    reply = router.handle_action(chat_id, "edit_client:options:city", sender)
    assert store.get(chat_id).step == Step.EDIT_OPTION
    south = codec.with_value("edit_client:opt", "South City")
    assert south in _tokens(reply)
    router.handle_action(chat_id, south, sender)

    reply = router.handle_action(chat_id, "edit_client:save", sender)
    assert "Changes saved" in reply.text
    assert chat_id not in store

    db.expire_all()
    client = db.get(Client, catalog.corner)
    assert (client.name, client.contact, client.route) == ("Corner Market", None, "South City")
    assert client.address == "12 Main St"


def test_edit_client_save_without_changes_just_shows_card(router, store, chat_id, sender, catalog):
    router.handle_action(chat_id, f"client:edit:{catalog.sunrise}", sender)
    router.handle_action(chat_id, "edit_client:field:address", sender)
    router.handle_text(chat_id, "!", sender)
    reply = router.handle_action(chat_id, "edit_client:save", sender)
    assert "Changes saved" not in reply.text
    assert "👤 Sunrise Kiosk" in reply.text


def test_edit_unknown_client(router, store, chat_id, sender, catalog):
    reply = router.handle_action(chat_id, "client:edit:424242", sender)
    assert "Client not found" in reply.text
    assert chat_id not in store


# ==============================================================================
# SEARCH
# ==============================================================================

def test_text_search_stays_open_for_another_query(router, store, chat_id, sender, catalog):
    router.handle_action(chat_id, "clients:search:text", sender)
    reply = router.handle_text(chat_id, "beach", sender)
    assert f"client:show:{catalog.sunrise}" in _tokens(reply)
    assert f"client:show:{catalog.corner}" not in _tokens(reply)

    reply = router.handle_text(chat_id, "nothing-like-this", sender)
    assert "No clients match" in reply.text
    assert store.get(chat_id).step == Step.ASK_TEXT


def test_option_search_lists_values_and_filters(router, store, chat_id, sender, catalog, codec):
    reply = router.handle_action(chat_id, "clients:search:category", sender)
    assert store.get(chat_id).step == Step.BROWSE
    kiosk = codec.with_value("sel:category", "Kiosk")
    assert kiosk in _tokens(reply)

    reply = router.handle_action(chat_id, kiosk, sender)
    assert _tokens(reply)[0] == f"client:show:{catalog.sunrise}"
    assert f"client:show:{catalog.corner}" not in _tokens(reply)


def test_city_filter_is_a_substring_match(router, chat_id, sender, catalog, codec):
    reply = router.handle_action(chat_id, codec.with_value("sel:city", "south"), sender)
    assert f"client:show:{catalog.sunrise}" in _tokens(reply)

    reply = router.handle_action(chat_id, "sel:route:South", sender)
    assert "No clients with route" in reply.text


def test_expired_filter_reference(router, chat_id, sender, catalog):
    reply = router.handle_action(chat_id, "sel:city:*0123456789ab", sender)
    assert reply.text == EXPIRED


# ==============================================================================
# SALES BY DATE
# ==============================================================================

def test_sales_by_date(router, store, chat_id, sender, catalog, db):
    cart = [{"product_id": catalog.apple, "name": "Apple juice", "price": Decimal("2.00"), "qty": 1}]
    order = records.create_order(db, client_id=catalog.corner, cart=cart, order_date=date(2025, 3, 7))

    router.handle_action(chat_id, "sales:by_date", sender)
    assert store.get(chat_id).step == Step.ASK_DATE

    reply = router.handle_text(chat_id, "07/03/2025", sender)
    assert "Invalid date" in reply.text
    assert store.get(chat_id).step == Step.ASK_DATE

    reply = router.handle_text(chat_id, "2025-02-30", sender)
    assert "not a real date" in reply.text

    reply = router.handle_text(chat_id, "2025-03-07", sender)
    assert "Orders on 2025-03-07 (1)" in reply.text
    assert f"order:view:{order.id}" in _tokens(reply)
    assert any(label.startswith("7/3.2025-1") for label in _labels(reply))
    assert chat_id not in store


def test_order_detail_and_client_orders(router, chat_id, sender, catalog, db):
    cart = [
        {"product_id": catalog.biscuits, "name": "Biscuits", "price": Decimal("5.00"), "qty": 2},
    ]
    order = records.create_order(db, client_id=catalog.sunrise, cart=cart, order_date=date(2025, 3, 7))

    reply = router.handle_action(chat_id, f"order:view:{order.id}", sender)
    assert "Order 7/3.2025-1" in reply.text
    assert "Biscuits x2 = $10.00" in reply.text
    assert f"order:repeat:{order.id}" in _tokens(reply)

    reply = router.handle_action(chat_id, f"client:orders:{catalog.sunrise}", sender)
    assert "Orders of Sunrise Kiosk (1)" in reply.text

    reply = router.handle_action(chat_id, f"client:show:{catalog.sunrise}", sender)
    assert "Orders: 1" in reply.text
    assert "Contact: -" in reply.text

    reply = router.handle_action(chat_id, "order:view:999", sender)
    assert "Order not found" in reply.text


# ==============================================================================
# INVENTORY
# ==============================================================================

def test_create_product_and_reject_duplicate_sku(router, store, chat_id, sender, catalog, db):
    router.handle_action(chat_id, "inventory:new", sender)
    reply = router.handle_text(chat_id, "Chips 40g | 2.50 | Snacks | CH-40 | 120 | Salted", sender)
    assert "Product created: Chips 40g" in reply.text
    assert store.get(chat_id).flow is None

    db.expire_all()
    product = db.query(Product).filter(Product.external_id == "CH-40").one()
    assert (product.price, product.stock, product.description) == (Decimal("2.50"), 120, "Salted")

    router.handle_action(chat_id, "inventory:new", sender)
    reply = router.handle_text(chat_id, "Other chips | 3 | Snacks | CH-40 | 5", sender)
    assert "already exists" in reply.text
    assert store.get(chat_id).step == Step.ASK_PRODUCT_DATA

    reply = router.handle_text(chat_id, "Only | three | parts", sender)
    assert "Wrong format" in reply.text


def test_inventory_search(router, store, chat_id, sender, catalog):
    router.handle_action(chat_id, "inventory:search", sender)
    reply = router.handle_text(chat_id, "snacks", sender)
    assert "Biscuits" in reply.text
    assert "SKU: BI-1" in reply.text
    assert "Apple juice" not in reply.text
    assert store.get(chat_id).step == Step.ASK_QUERY


# ==============================================================================
# COMMANDS AND NAVIGATION
# ==============================================================================

def test_start_registers_new_seller(router, store, db, catalog):
    newcomer = Sender(telegram_id="2002", name="Ana", username="ana")
    reply = router.handle_text("2002", "/start", newcomer)
    assert "Hi Ana" in reply.text
    assert store.get("2002").nav_stack == [Menu.MAIN]

    db.expire_all()
    assert db.query(User).filter(User.telegram_id == "2002").one().username == "ana"

    reply = router.handle_action("2002", "clients:view", newcomer)
    assert reply.text.startswith("👥 All clients (2)")


def test_help_menu_and_unknown_commands(router, chat_id, sender, catalog):
    assert router.handle_text(chat_id, "/help", sender).text == HELP_TEXT
    assert router.handle_text(chat_id, "/launch_rockets", sender).text == UNKNOWN_COMMAND
    reply = router.handle_text(chat_id, "/menu@bizops_bot", sender)
    assert "menu:clients" in _tokens(reply)


def test_orders_command_with_no_orders(router, chat_id, sender, catalog):
    assert router.handle_command(chat_id, "orders", "/orders", sender).text == "No orders yet."


def test_back_returns_to_previous_menu(router, store, chat_id, sender, catalog):
    router.handle_action(chat_id, "menu:clients", sender)
    router.handle_action(chat_id, "clients:search", sender)
    assert store.get(chat_id).nav_stack == [Menu.CLIENTS, Menu.CLIENTS_SEARCH]

    reply = router.handle_action(chat_id, "nav:back", sender)
    assert "clients:view" in _tokens(reply)
    assert store.get(chat_id).nav_stack == [Menu.CLIENTS]


def test_open_web_links_the_dashboard(store, session_factory, codec, chat_id, sender):
    config = Settings()
    config.WEB_BASE_URL = "https://dash.example.com"
    router = FlowRouter(store=store, session_factory=session_factory, codec=codec, config=config)
    reply = router.handle_action(chat_id, "open:web", sender)
    assert "https://dash.example.com" in reply.text
    assert reply.actions[0][0].url == "https://dash.example.com"

    config.WEB_BASE_URL = ""
    assert router.handle_action(chat_id, "open:web", sender).notice == ACTION_UNAVAILABLE


def test_back_with_no_history_lands_on_clients(router, store, chat_id, sender, catalog):
    reply = router.handle_action(chat_id, "nav:back", sender)
    assert "clients:view" in _tokens(reply)
    assert store.get(chat_id).nav_stack == [Menu.CLIENTS]


# ==============================================================================
# PAGINATION
# ==============================================================================

@pytest.fixture
def small_pages():
    config = Settings()
    config.CLIENTS_PAGE_SIZE = 1
    return config


def test_pager_boundaries_and_clamping(store, session_factory, codec, small_pages, chat_id, sender, catalog):
    router = FlowRouter(store=store, session_factory=session_factory, codec=codec, config=small_pages)

    reply = router.handle_action(chat_id, "clients:view", sender)
    assert reply.text == "👥 Your clients (2)"
    assert f"client:show:{catalog.corner}" in _tokens(reply)
    assert "1/2" in _labels(reply)
    assert "◀️" not in _labels(reply)
    assert codec.encode(ListKind.CLIENTS_VIEW, 1) in _tokens(reply)

    reply = router.handle_action(chat_id, codec.encode(ListKind.CLIENTS_VIEW, 99), sender)
    assert f"client:show:{catalog.sunrise}" in _tokens(reply)
    assert "2/2" in _labels(reply)
    assert "▶️" not in _labels(reply)
    assert codec.encode(ListKind.CLIENTS_VIEW, 0) in _tokens(reply)
