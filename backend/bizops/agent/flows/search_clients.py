"""Client search: free text (`ask_text`) or by category/route/city (`browse`)."""
from bizops.agent import keyboards, views
from bizops.agent.conversation_state import Flow, Step
from bizops.agent.flows.base import FlowHandler
from bizops.agent.replies import Button, Reply
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Turn
from bizops.core.exceptions import ValidationFailed
from bizops.services.validators import clean_text


class SearchClientsFlow(FlowHandler):
    flow = Flow.SEARCH_CLIENTS

    actions = {}
    text_steps = {Step.ASK_TEXT: "search_text"}

    def start_text(self, turn: Turn) -> Reply:
        turn.session.start(Flow.SEARCH_CLIENTS, Step.ASK_TEXT)
        return Reply(
            text="🔤 Send a name, contact or address to search for.",
            actions=[[Button("⬅️ Search", "clients:search")], keyboards.cancel_row()],
        )

    def start_options(self, turn: Turn, option_type: str) -> Reply:
        turn.session.start(Flow.SEARCH_CLIENTS, Step.BROWSE, {"option_type": option_type})
        return views.page(turn, ListKind.SEARCH_OPTIONS, option_type)

    def search_text(self, turn: Turn, text: str) -> Reply:
        term = clean_text(text)
        if not term:
            raise ValidationFailed("❌ Send at least one character to search for.")
        # stays in ask_text so the next message is a new search
        return views.page(turn, ListKind.SEARCH_BY_TEXT, "q", term)
