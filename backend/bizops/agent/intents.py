"""
Button tokens decoded into intents.

`decode_action` runs once per callback and always returns one of the intent
types below; the router matches on the type. Anything it can't place becomes
`UnknownAction`, a recognised namespace without its required id becomes
`Incomplete`.

Token vocabulary::

    menu:main | menu:clients | menu:sales | menu:inventory    global menus
    back:main | back:clients | nav:back | cancel | open:web | noop
    clients:view ... sales:recent ... inventory:new          static actions
    pg:{kind}:{page}[:{key}:{value}]                         list pages
    client:{show|orders|new_order|edit}:{id}
    order:{view|repeat}:{id}
    sel:{category|route|city}:{value}                        search option picked
    {flow}:{verb}[:{arg}]                                    step actions
"""
from dataclasses import dataclass
from typing import Optional, Union

from bizops.agent.conversation_state import Flow, Menu
from bizops.agent.tokens import PAGE_PREFIX, PageRequest, PageTokenCodec

GLOBAL_MENUS = {
    "menu:main": Menu.MAIN,
    "back:main": Menu.MAIN,
    "menu:clients": Menu.CLIENTS,
    "back:clients": Menu.CLIENTS,
    "menu:sales": Menu.SALES,
    "menu:inventory": Menu.INVENTORY,
}

STATIC_ACTIONS = {
    "clients:view",
    "clients:new",
    "clients:edit",
    "clients:search",
    "clients:search:category",
    "clients:search:route",
    "clients:search:city",
    "clients:search:text",
    "sales:new",
    "sales:consult",
    "sales:by_date",
    "sales:by_client",
    "sales:recent",
    "inventory:search",
    "inventory:new",
}
STATIC_ALIASES = {"menu:new_order": "sales:new", "sales:view_orders": "sales:recent"}

CLIENT_VERBS = {"show", "orders", "new_order", "edit"}
ORDER_VERBS = {"view", "repeat"}
OPTION_TYPES = {"category", "route", "city"}


@dataclass(frozen=True)
class Navigate:
    menu: Menu


@dataclass(frozen=True)
class NavBack:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class OpenWeb:
    pass


@dataclass(frozen=True)
class Noop:
    pass


@dataclass(frozen=True)
class StaticAction:
    name: str


@dataclass(frozen=True)
class PageIntent:
    request: PageRequest


@dataclass(frozen=True)
class ClientAction:
    verb: str
    client_id: str


@dataclass(frozen=True)
class OrderAction:
    verb: str
    order_id: str


@dataclass(frozen=True)
class SearchSelect:
    option_type: str
    value: Optional[str]


@dataclass(frozen=True)
class FlowAction:
    flow: Flow
    verb: str
    arg: Optional[str] = None


@dataclass(frozen=True)
class Incomplete:
    token: str


@dataclass(frozen=True)
class UnknownAction:
    token: str


Intent = Union[
    Navigate, NavBack, Cancel, OpenWeb, Noop, StaticAction, PageIntent,
    ClientAction, OrderAction, SearchSelect, FlowAction, Incomplete, UnknownAction,
]

_FLOW_NAMESPACES = {flow.value: flow for flow in Flow}


def decode_action(token: str, codec: PageTokenCodec) -> Intent:
    token = (token or "").strip()

    if token in GLOBAL_MENUS:
        return Navigate(GLOBAL_MENUS[token])
    if token == "nav:back":
        return NavBack()
    if token == "cancel":
        return Cancel()
    if token == "open:web":
        return OpenWeb()
    if token == "noop":
        return Noop()
    if token in STATIC_ACTIONS:
        return StaticAction(token)
    if token in STATIC_ALIASES:
        return StaticAction(STATIC_ALIASES[token])

    namespace, _, rest = token.partition(":")

    if namespace == PAGE_PREFIX:
        if not rest:
            return Incomplete(token)
        request = codec.decode(token)
        return PageIntent(request) if request else UnknownAction(token)

    if namespace in ("client", "order"):
        verb, _, entity_id = rest.partition(":")
        verbs = CLIENT_VERBS if namespace == "client" else ORDER_VERBS
        if verb not in verbs:
            return UnknownAction(token)
        if not entity_id.strip():
            return Incomplete(token)
        if namespace == "client":
            return ClientAction(verb, entity_id.strip())
        return OrderAction(verb, entity_id.strip())

    if namespace == "sel":
        option_type, sep, packed = rest.partition(":")
        if option_type not in OPTION_TYPES:
            return UnknownAction(token)
        if not sep or not packed:
            return Incomplete(token)
        return SearchSelect(option_type, codec.unpack(packed))

    if namespace in _FLOW_NAMESPACES:
        verb, sep, packed = rest.partition(":")
        if not verb:
            return Incomplete(token)
        return FlowAction(_FLOW_NAMESPACES[namespace], verb, codec.unpack(packed) if sep else None)

    return UnknownAction(token)
