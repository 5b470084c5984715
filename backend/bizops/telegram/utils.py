"""
Telegram helpers: Reply rows to inline keyboards, Update to Sender.
"""
import logging
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update

from bizops.agent.replies import Reply
from bizops.agent.turn import Sender

logger = logging.getLogger(__name__)


def to_markup(reply: Reply) -> Optional[InlineKeyboardMarkup]:
    rows = []
    for row in reply.actions:
        buttons = []
        for button in row:
            if button.url:
                buttons.append(InlineKeyboardButton(button.label, url=button.url))
            elif button.token:
                buttons.append(InlineKeyboardButton(button.label, callback_data=button.token))
        if buttons:
            rows.append(buttons)
    return InlineKeyboardMarkup(rows) if rows else None


def sender_from(update: Update) -> Optional[Sender]:
    user = update.effective_user
    if user is None:
        return None
    return Sender(
        telegram_id=str(user.id),
        name=user.full_name or None,
        username=user.username or None,
    )
