"""Sales by date: ask for a YYYY-MM-DD date, list that day's orders, done."""
from datetime import date

from bizops.agent import keyboards, views
from bizops.agent.conversation_state import Flow, Step
from bizops.agent.flows.base import FlowHandler
from bizops.agent.replies import Reply
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Turn
from bizops.services.validators import parse_iso_date


class SalesByDateFlow(FlowHandler):
    flow = Flow.SALES_BY_DATE

    actions = {}
    text_steps = {Step.ASK_DATE: "got_date"}

    def start(self, turn: Turn) -> Reply:
        turn.session.start(Flow.SALES_BY_DATE, Step.ASK_DATE)
        return Reply(
            text=f"📅 Which date? Use YYYY-MM-DD (today is {date.today().isoformat()}).",
            actions=[keyboards.cancel_row()],
        )

    def got_date(self, turn: Turn, text: str) -> Reply:
        day = parse_iso_date(text)
        turn.session.end_flow()
        return views.page(turn, ListKind.ORDERS_BY_DATE, "d", day.isoformat())
