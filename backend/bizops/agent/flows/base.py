"""
Shared machinery for flow sub-routers.

A flow declares two transition tables:

* `actions`: `(step, verb) -> method name` for button presses. A `None`
  step matches in every step of the flow.
* `text_steps`: `step -> method name` for free-text replies.

Methods mutate `turn.session` and return a Reply. Returning None from
`on_action`/`on_text` means the flow has no transition for the event.
"""
import logging
from typing import Optional

from bizops.agent.conversation_state import Flow, Step
from bizops.agent.intents import FlowAction
from bizops.agent.replies import Reply
from bizops.agent.turn import Turn
from bizops.core.exceptions import MissingArgument

logger = logging.getLogger(__name__)


def require(arg: Optional[str]) -> str:
    """Tokens whose id/value segment is empty are acknowledged and dropped."""
    if arg is None or not str(arg).strip():
        raise MissingArgument()
    return str(arg).strip()


class FlowHandler:
    flow: Flow
    actions: dict[tuple[Optional[Step], str], str] = {}
    text_steps: dict[Step, str] = {}

    def on_action(self, turn: Turn, intent: FlowAction) -> Optional[Reply]:
        step = turn.session.step
        name = self.actions.get((step, intent.verb)) or self.actions.get((None, intent.verb))
        if name is None:
            logger.info(f"[Flow] {self.flow.value}: no transition for step={step} verb={intent.verb}")
            return None
        return getattr(self, name)(turn, intent.arg)

    def on_text(self, turn: Turn, text: str) -> Optional[Reply]:
        name = self.text_steps.get(turn.session.step)
        if name is None:
            return None
        return getattr(self, name)(turn, text)
