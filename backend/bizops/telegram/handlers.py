"""
Telegram handlers: turn Updates into router calls and send the Reply back.

Callback queries are always answered, even when the router has nothing to
say, so the client never keeps a button spinning. Replies to a button press
edit the message that carried it when possible and fall back to a new
message when Telegram refuses the edit.
"""
import logging
from typing import Optional

from telegram import Message, Update
from telegram.error import BadRequest, TelegramError
from telegram.ext import ContextTypes

from bizops.agent.replies import Reply
from bizops.agent.router import FlowRouter
from bizops.telegram.utils import sender_from, to_markup

logger = logging.getLogger(__name__)

_router: Optional[FlowRouter] = None


def get_router() -> FlowRouter:
    global _router
    if _router is None:
        _router = FlowRouter()
    return _router


def set_router(router: Optional[FlowRouter]) -> None:
    global _router
    _router = router


async def send_reply(message: Optional[Message], reply: Optional[Reply], edit: bool = False) -> None:
    if message is None or reply is None or not reply.text:
        return
    markup = to_markup(reply)
    if edit and reply.replace:
        try:
            await message.edit_text(reply.text, reply_markup=markup)
            return
        except BadRequest as e:
            if "not modified" in str(e).lower():
                return
            logger.info(f"[Telegram] Edit failed, sending new message: {e}")
    await message.reply_text(reply.text, reply_markup=markup)


# ==============================================================================
# COMMANDS
# ==============================================================================

async def handle_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Every slash command goes through the router, known or not."""
    message = update.effective_message
    if message is None or update.effective_chat is None:
        return
    text = message.text or ""
    command = text[1:].split(maxsplit=1)[0] if text.startswith("/") and len(text) > 1 else ""
    reply = get_router().handle_command(update.effective_chat.id, command, text, sender_from(update))
    try:
        await send_reply(message, reply)
    except TelegramError as e:
        logger.error(f"[Telegram] Failed to answer /{command}: {e}", exc_info=True)


# ==============================================================================
# FREE TEXT
# ==============================================================================

async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None or update.effective_chat is None:
        return
    reply = get_router().handle_text(update.effective_chat.id, message.text or "", sender_from(update))
    try:
        await send_reply(message, reply)
    except TelegramError as e:
        logger.error(f"[Telegram] Failed to reply in chat {update.effective_chat.id}: {e}", exc_info=True)


# ==============================================================================
# BUTTONS
# ==============================================================================

async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if query is None:
        return
    chat_id = update.effective_chat.id if update.effective_chat else query.from_user.id
    reply: Optional[Reply] = None
    try:
        reply = get_router().handle_action(chat_id, query.data or "", sender_from(update))
    finally:
        try:
            await query.answer(text=reply.notice if reply and reply.notice else None)
        except TelegramError as e:
            logger.warning(f"[Telegram] Could not answer callback {query.id}: {e}")
    message = query.message if isinstance(query.message, Message) else None
    try:
        if message is None and reply is not None and reply.text:
            await context.bot.send_message(chat_id, reply.text, reply_markup=to_markup(reply))
        else:
            await send_reply(message, reply, edit=True)
    except TelegramError as e:
        logger.error(f"[Telegram] Failed to render reply for {query.data!r}: {e}", exc_info=True)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error(f"[Telegram] Update {update!r} caused error: {context.error}", exc_info=context.error)
