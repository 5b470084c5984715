"""Everything one transition needs, bundled per event."""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session as DbSession

from bizops.agent.conversation_state import Session
from bizops.agent.tokens import PageTokenCodec
from bizops.core.config import Settings
from bizops.services import records


@dataclass(frozen=True)
class Sender:
    telegram_id: str
    name: Optional[str] = None
    username: Optional[str] = None


@dataclass
class Turn:
    chat_id: str
    session: Session
    db: DbSession
    codec: PageTokenCodec
    config: Settings
    sender: Optional[Sender] = None
    _seller_id: Optional[int] = field(default=None, repr=False)

    def seller_id(self) -> int:
        """Seller row for whoever sent the event, created on first use."""
        if self._seller_id is None:
            sender = self.sender or Sender(telegram_id=str(self.chat_id))
            user = records.ensure_user(self.db, sender.telegram_id, sender.name, sender.username)
            self._seller_id = user.id
        return self._seller_id
