"""
Flow router: the single entry point for chat events.

Three event kinds come in: button tokens (`handle_action`), free text
(`handle_text`) and slash commands (`handle_command`). Each event runs as
one transition:

1. take the per-chat lock,
2. copy the stored session,
3. decode the event and run the matching transition on the copy,
4. store the copy only if the transition finished.

A transition that fails leaves the stored session exactly as it was, apart
from a not-found error that names a safe step to fall back to. Nothing
raised inside a transition escapes these three methods.

Token priority: global menus, then static actions, then tokens with an
id/page argument, then the active flow's own transitions. Whatever is left
gets an "action unavailable" notice.
"""
import copy
import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from bizops.agent import views
from bizops.agent.conversation_state import Menu, Session, Step
from bizops.agent.flows.edit_client import EditClientFlow
from bizops.agent.flows.inventory import InventoryFlow
from bizops.agent.flows.new_client import NewClientFlow
from bizops.agent.flows.new_order import NewOrderFlow
from bizops.agent.flows.sales import SalesByDateFlow
from bizops.agent.flows.search_clients import SearchClientsFlow
from bizops.agent.intents import (
    Cancel,
    ClientAction,
    FlowAction,
    Incomplete,
    Intent,
    Navigate,
    NavBack,
    Noop,
    OpenWeb,
    OrderAction,
    PageIntent,
    SearchSelect,
    StaticAction,
    UnknownAction,
    decode_action,
)
from bizops.agent.keyboards import cancel_row
from bizops.agent.replies import GENERIC_FAILURE, Button, Reply, failure, unavailable
from bizops.agent.session_store import SessionStore
from bizops.agent.tokens import ListKind, PageTokenCodec
from bizops.agent.turn import Sender, Turn
from bizops.core.config import settings
from bizops.core.exceptions import MissingArgument, RecordNotFound, RecordStoreError, ValidationFailed
from bizops.db.session import SessionLocal
from bizops.services import records
from bizops.services.validators import parse_args, required_text

logger = logging.getLogger(__name__)

CANCEL_PHRASES = {"cancel", "cancelar"}

HELP_TEXT = (
    "🤖 What I can do\n\n"
    "/start - register and open the main menu\n"
    "/menu - main menu\n"
    "/orders - recent orders\n"
    "/new_client Name | Contact | Address - quick client\n"
    "/cancel - stop whatever is in progress\n"
    "/help - this message\n\n"
    "You can also type “cancel” at any time."
)
USE_BUTTONS = "ℹ️ Use the buttons above, or /cancel to stop."
UNKNOWN_COMMAND = "🤷 Unknown command. Send /help to see what I can do."


def is_cancel_phrase(text: str) -> bool:
    return (text or "").strip().casefold() in CANCEL_PHRASES


class FlowRouter:
    def __init__(
        self,
        store: SessionStore | None = None,
        session_factory: Callable | None = None,
        codec: PageTokenCodec | None = None,
        config=None,
    ):
        self.config = config if config is not None else settings
        self.store = store if store is not None else SessionStore(idle_minutes=self.config.SESSION_IDLE_MINUTES)
        self.session_factory = session_factory if session_factory is not None else SessionLocal
        self.codec = codec if codec is not None else PageTokenCodec(limit=self.config.CALLBACK_DATA_LIMIT)

        self.new_order = NewOrderFlow()
        self.new_client = NewClientFlow()
        self.edit_client = EditClientFlow()
        self.search_clients = SearchClientsFlow()
        self.inventory = InventoryFlow()
        self.sales_by_date = SalesByDateFlow()
        self.flows = {
            handler.flow: handler
            for handler in (
                self.new_order, self.new_client, self.edit_client,
                self.search_clients, self.inventory, self.sales_by_date,
            )
        }

        self.static_actions = {
            "clients:view": lambda turn: views.page(turn, ListKind.CLIENTS_VIEW),
            "clients:edit": lambda turn: views.page(turn, ListKind.CLIENTS_EDIT),
            "clients:new": self.new_client.start,
            "clients:search": lambda turn: self._submenu(turn, Menu.CLIENTS_SEARCH),
            "clients:search:category": lambda turn: self.search_clients.start_options(turn, "category"),
            "clients:search:route": lambda turn: self.search_clients.start_options(turn, "route"),
            "clients:search:city": lambda turn: self.search_clients.start_options(turn, "city"),
            "clients:search:text": self.search_clients.start_text,
            "sales:new": self.new_order.start_selection,
            "sales:consult": lambda turn: self._submenu(turn, Menu.SALES_CONSULT),
            "sales:by_date": self.sales_by_date.start,
            "sales:by_client": lambda turn: views.page(turn, ListKind.SALES_CLIENTS),
            "sales:recent": lambda turn: views.page(turn, ListKind.ORDERS_RECENT),
            "inventory:search": self.inventory.start_search,
            "inventory:new": self.inventory.start_new,
        }

        self.commands = {
            "start": self._start,
            "menu": lambda turn, text: self._navigate(turn, Menu.MAIN),
            "help": lambda turn, text: Reply(text=HELP_TEXT),
            "cancel": lambda turn, text: self._cancel(turn),
            "orders": lambda turn, text: views.page(turn, ListKind.ORDERS_RECENT),
            "new_client": self._quick_client,
        }

    # ==========================================================================
    # ENTRY POINTS
    # ==========================================================================

    def handle_action(self, chat_id, token: str, sender: Sender | None = None) -> Optional[Reply]:
        """Button press. None means acknowledge and do nothing else."""
        intent = decode_action(token, self.codec)
        logger.debug(f"[Router] chat_id={chat_id} token={token!r} intent={intent}")
        return self._run(chat_id, sender, lambda turn: self._dispatch_action(turn, intent), origin="action")

    def handle_text(self, chat_id, text: str, sender: Sender | None = None) -> Optional[Reply]:
        """Free text. Ignored unless a flow is waiting for it."""
        text = (text or "").strip()
        if not text:
            return None
        if text.startswith("/"):
            command = text[1:].split(maxsplit=1)[0] if len(text) > 1 else ""
            return self.handle_command(chat_id, command, text, sender)
        if is_cancel_phrase(text):
            return self._run(chat_id, sender, self._cancel, origin="text")

        with self.store.lock(chat_id):
            session = self.store.get(chat_id)
            if session is None or not session.active:
                logger.debug(f"[Router] chat_id={chat_id} text outside any flow ignored")
                return None
            return self._run(chat_id, sender, lambda turn: self._dispatch_text(turn, text), origin="text")

    def handle_command(
        self, chat_id, command: str, text: str = "", sender: Sender | None = None
    ) -> Optional[Reply]:
        name = (command or "").lstrip("/").split("@")[0].lower()
        handler = self.commands.get(name)
        if handler is None:
            logger.info(f"[Router] chat_id={chat_id} unknown command /{name}")
            return Reply(text=UNKNOWN_COMMAND, replace=False)
        logger.info(f"[Router] chat_id={chat_id} command /{name}")
        return self._run(chat_id, sender, lambda turn: handler(turn, text), origin="command")

    # ==========================================================================
    # TRANSITION BOUNDARY
    # ==========================================================================

    def _run(self, chat_id, sender, transition, origin: str) -> Optional[Reply]:
        chat_id = str(chat_id)
        with self.store.lock(chat_id):
            stored = self.store.get(chat_id)
            working = copy.deepcopy(stored) if stored else Session()
            db = self.session_factory()
            turn = Turn(chat_id=chat_id, session=working, db=db, codec=self.codec, config=self.config, sender=sender)
            try:
                reply = transition(turn)
            except ValidationFailed as e:
                logger.info(f"[Router] chat_id={chat_id} validation: {e.message}")
                return failure(e.message, self._retry_actions(stored))
            except RecordNotFound as e:
                logger.info(f"[Router] chat_id={chat_id} not found: {e.message}")
                if e.fallback_step and stored is not None and stored.active:
                    fallback = copy.deepcopy(stored)
                    fallback.step = Step(e.fallback_step)
                    self._commit(chat_id, fallback)
                return failure(e.message, self._retry_actions(stored))
            except MissingArgument:
                logger.info(f"[Router] chat_id={chat_id} token without its argument, ignored")
                return None
            except (RecordStoreError, SQLAlchemyError) as e:
                logger.error(f"[Router] chat_id={chat_id} record store failure: {e}", exc_info=True)
                self._rollback(db)
                return failure(GENERIC_FAILURE, self._retry_actions(stored))
            except Exception as e:
                logger.error(f"[Router] chat_id={chat_id} unhandled {type(e).__name__}: {e}", exc_info=True)
                self._rollback(db)
                return failure(GENERIC_FAILURE, self._retry_actions(stored))
            finally:
                db.close()

            self._commit(chat_id, working)
            if reply is not None and origin != "action":
                reply.replace = False
            return reply

    def _commit(self, chat_id: str, session: Session) -> None:
        if session.empty:
            self.store.clear(chat_id)
        else:
            self.store.set(chat_id, session)

    @staticmethod
    def _rollback(db) -> None:
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.error("[Router] rollback failed", exc_info=True)

    @staticmethod
    def _retry_actions(stored: Optional[Session]) -> list:
        return [cancel_row()] if stored is not None and stored.active else []

    # ==========================================================================
    # DISPATCH
    # ==========================================================================

    def _dispatch_action(self, turn: Turn, intent: Intent) -> Optional[Reply]:
        if isinstance(intent, Navigate):
            return self._navigate(turn, intent.menu)
        if isinstance(intent, NavBack):
            return self._back(turn)
        if isinstance(intent, Cancel):
            return self._cancel(turn)
        if isinstance(intent, OpenWeb):
            return self._open_web(turn)
        if isinstance(intent, Noop):
            return None
        if isinstance(intent, StaticAction):
            return self.static_actions[intent.name](turn)
        if isinstance(intent, PageIntent):
            return views.render_page(turn, intent.request)
        if isinstance(intent, ClientAction):
            return self._client_action(turn, intent)
        if isinstance(intent, OrderAction):
            return self._order_action(turn, intent)
        if isinstance(intent, SearchSelect):
            if intent.value is None:
                raise RecordNotFound(views.EXPIRED)
            return views.page(turn, ListKind.SEARCH_BY_FILTER, intent.option_type, intent.value)
        if isinstance(intent, Incomplete):
            raise MissingArgument()
        if isinstance(intent, FlowAction):
            return self._flow_action(turn, intent)
        if isinstance(intent, UnknownAction):
            logger.warning(f"[Router] chat_id={turn.chat_id} unhandled token {intent.token!r}")
            return unavailable()
        raise TypeError(f"unexpected intent {intent!r}")

    def _flow_action(self, turn: Turn, intent: FlowAction) -> Reply:
        session = turn.session
        if not session.active:
            logger.warning(f"[Router] chat_id={turn.chat_id} flow token {intent} with no active flow")
            return unavailable()
        handler = self.flows.get(session.flow)
        if handler is None:
            logger.warning(f"[Router] chat_id={turn.chat_id} session in unknown flow {session.flow!r}, cleared")
            session.end_flow()
            return unavailable()
        if intent.flow != session.flow:
            logger.warning(
                f"[Router] chat_id={turn.chat_id} token for {intent.flow.value} while in {session.flow.value}"
            )
            return unavailable()
        reply = handler.on_action(turn, intent)
        if reply is None:
            logger.warning(
                f"[Router] chat_id={turn.chat_id} {intent.flow.value}:{intent.verb} not valid in step {session.step}"
            )
            return unavailable()
        return reply

    def _dispatch_text(self, turn: Turn, text: str) -> Optional[Reply]:
        session = turn.session
        if not session.active:
            return None
        handler = self.flows.get(session.flow)
        if handler is None:
            logger.warning(f"[Router] chat_id={turn.chat_id} session in unknown flow {session.flow!r}, cleared")
            session.end_flow()
            return None
        reply = handler.on_text(turn, text)
        if reply is None:
            return Reply(text=USE_BUTTONS, actions=[cancel_row()])
        return reply

    # ==========================================================================
    # NAVIGATION
    # ==========================================================================

    def _navigate(self, turn: Turn, menu: Menu) -> Reply:
        turn.session.end_flow()
        turn.session.push_menu(menu)
        return views.menu_reply(turn, menu)

    def _submenu(self, turn: Turn, menu: Menu) -> Reply:
        turn.session.push_menu(menu)
        return views.menu_reply(turn, menu)

    def _back(self, turn: Turn) -> Reply:
        session = turn.session
        session.end_flow()
        if session.nav_stack:
            session.nav_stack.pop()
        if not session.nav_stack:
            session.nav_stack.append(Menu.CLIENTS)
        return views.menu_reply(turn, Menu(session.nav_stack[-1]))

    def _cancel(self, turn: Turn) -> Reply:
        had_flow = turn.session.flow
        turn.session.end_flow()
        turn.session.nav_stack = []
        logger.info(f"[Router] chat_id={turn.chat_id} cancelled (flow={had_flow.value if had_flow else None})")
        return views.menu_reply(turn, Menu.MAIN, text="❌ Cancelled. Back to the main menu.")

    def _open_web(self, turn: Turn) -> Reply:
        url = turn.config.WEB_BASE_URL
        if not url:
            return unavailable()
        return Reply(text=f"🌐 Dashboard: {url}", actions=[[Button("🌐 Open dashboard", url=url)]], replace=False)

    # ==========================================================================
    # ENTITY ACTIONS
    # ==========================================================================

    def _client_action(self, turn: Turn, intent: ClientAction) -> Reply:
        if intent.verb == "show":
            return views.client_card(turn, intent.client_id)
        if intent.verb == "orders":
            return views.page(turn, ListKind.ORDERS_BY_CLIENT, "c", intent.client_id)
        if intent.verb == "new_order":
            return self.new_order.start_for_client(turn, intent.client_id)
        return self.edit_client.start(turn, intent.client_id)

    def _order_action(self, turn: Turn, intent: OrderAction) -> Reply:
        if intent.verb == "view":
            return views.order_detail(turn, intent.order_id)
        return self.new_order.start_repeat(turn, intent.order_id)

    # ==========================================================================
    # COMMANDS
    # ==========================================================================

    def _start(self, turn: Turn, text: str = "") -> Reply:
        turn.seller_id()
        name = turn.sender.name if turn.sender and turn.sender.name else "there"
        turn.session.end_flow()
        turn.session.push_menu(Menu.MAIN)
        return views.menu_reply(turn, Menu.MAIN, text=f"👋 Hi {name}! What do you want to do?")

    def _quick_client(self, turn: Turn, text: str = "") -> Reply:
        args = parse_args(text)
        if not args:
            return self.new_client.start(turn)
        data = {
            "name": required_text(args[0], "Name"),
            "contact": args[1] if len(args) > 1 else None,
            "address": args[2] if len(args) > 2 else None,
        }
        client = records.create_client(turn.db, data, owner_id=turn.seller_id())
        logger.info(f"[Router] chat_id={turn.chat_id} quick client_id={client.id}")
        return Reply(
            text=f"✅ Client {client.name} created.",
            actions=[
                [Button("👤 View", f"client:show:{client.id}"), Button("🛒 New sale", f"client:new_order:{client.id}")],
            ],
        )
