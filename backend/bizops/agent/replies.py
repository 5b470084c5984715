"""Transport-neutral reply produced for every handled event."""
from dataclasses import dataclass, field
from typing import NamedTuple, Optional


class Button(NamedTuple):
    label: str
    token: Optional[str] = None
    url: Optional[str] = None


@dataclass
class Reply:
    """
    At most one outbound message.

    `notice` is the short toast shown when a button press is acknowledged.
    `replace` asks the transport to edit the message that carried the
    button instead of sending a new one.
    """
    text: Optional[str] = None
    actions: list[list[Button]] = field(default_factory=list)
    notice: Optional[str] = None
    replace: bool = True


ACTION_UNAVAILABLE = "⚠️ Action unavailable"
GENERIC_FAILURE = "⚠️ Something went wrong talking to the database. Please try again."


def unavailable() -> Reply:
    return Reply(notice=ACTION_UNAVAILABLE)


def failure(message: str, actions: list[list[Button]] | None = None) -> Reply:
    return Reply(text=message, actions=actions or [], notice=message[:190], replace=False)
