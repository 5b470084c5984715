"""
Conversation state for the seller bot.

A chat has at most one Session. `flow` names the multi-step procedure in
progress and `step` the position inside it; both are None while the chat is
idle. `nav_stack` remembers the menus opened so "back" has somewhere to go.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Flow(str, Enum):
    NEW_CLIENT = "new_client"
    NEW_ORDER = "new_order"
    EDIT_CLIENT = "edit_client"
    SEARCH_CLIENTS = "search_clients"
    INVENTORY = "inventory"
    SALES_BY_DATE = "sales_by_date"


class Step(str, Enum):
    # new_order
    SELECT_CLIENT = "select_client"
    CART = "cart"
    ASK_PRODUCT_CODE = "ask_product_code"
    ASK_QTY = "ask_qty"

    # new_client
    ASK_NAME = "ask_name"
    ASK_CONTACT = "ask_contact"
    ASK_ADDRESS = "ask_address"
    ASK_CATEGORY = "ask_category"
    ASK_CITY = "ask_city"
    CONFIRM = "confirm"

    # edit_client
    EDIT_MENU = "edit_menu"
    EDIT_TEXT = "edit_text"
    EDIT_OPTION = "edit_option"

    # search_clients
    ASK_TEXT = "ask_text"
    BROWSE = "browse"

    # inventory
    ASK_QUERY = "ask_query"
    ASK_PRODUCT_DATA = "ask_product_data"

    # sales_by_date
    ASK_DATE = "ask_date"


class Menu(str, Enum):
    MAIN = "main"
    CLIENTS = "clients"
    CLIENTS_SEARCH = "clients_search"
    SALES = "sales"
    SALES_CONSULT = "sales_consult"
    INVENTORY = "inventory"


@dataclass
class Session:
    flow: Optional[Flow] = None
    step: Optional[Step] = None
    data: dict = field(default_factory=dict)
    nav_stack: list = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.flow is not None and self.step is not None

    @property
    def empty(self) -> bool:
        return self.flow is None and not self.data and not self.nav_stack

    def start(self, flow: Flow, step: Step, data: dict | None = None) -> None:
        """Replace whatever was in progress with a fresh flow."""
        self.flow = flow
        self.step = step
        self.data = dict(data or {})

    def end_flow(self) -> None:
        self.flow = None
        self.step = None
        self.data = {}

    def push_menu(self, menu: Menu) -> None:
        if menu == Menu.MAIN:
            self.nav_stack = [Menu.MAIN]
        elif not self.nav_stack or self.nav_stack[-1] != menu:
            self.nav_stack.append(menu)
