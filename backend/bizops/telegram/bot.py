"""
Telegram bot runner.

The bot polls in a daemon thread with its own event loop so it can live
next to the FastAPI server in one process. Started and stopped from the
FastAPI lifespan.
"""
import asyncio
import logging
import threading
from typing import Optional

from telegram import error
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from bizops.core.config import settings
from bizops.telegram.handlers import handle_callback, handle_command, handle_error, handle_text

logger = logging.getLogger(__name__)

COMMANDS = ("start", "menu", "help", "cancel", "orders", "new_client")

_bot_app: Optional[Application] = None
_loop: Optional[asyncio.AbstractEventLoop] = None


def build_application(token: str) -> Application:
    app = Application.builder().token(token).build()
    app.add_handler(CommandHandler(list(COMMANDS), handle_command))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    # Unknown slash commands still get an answer
    app.add_handler(MessageHandler(filters.COMMAND, handle_command))
    app.add_error_handler(handle_error)
    return app


async def _start_polling_with_retry(app: Application, max_retries: int = 3, initial_backoff: int = 2) -> bool:
    for attempt in range(max_retries):
        try:
            logger.info(f"[Telegram] Starting polling (attempt {attempt + 1}/{max_retries})...")
            await app.updater.start_polling(drop_pending_updates=True)
            logger.info("[Telegram] Polling started")
            return True
        except error.Conflict as e:
            if attempt < max_retries - 1:
                backoff = initial_backoff * (2 ** attempt)
                logger.warning(f"[Telegram] Conflict detected: {e}. Retrying in {backoff}s")
                await asyncio.sleep(backoff)
            else:
                logger.error(f"[Telegram] Failed after {max_retries} retries, bot disabled: {e}")
                return False
        except error.TelegramError as e:
            logger.error(f"[Telegram] Could not start polling: {e}", exc_info=True)
            return False
    return False


def _run_bot() -> None:
    global _bot_app, _loop
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _loop = loop

    try:
        _bot_app = build_application(settings.TELEGRAM_BOT_TOKEN)
        loop.run_until_complete(_bot_app.initialize())
        loop.run_until_complete(_bot_app.start())
        if loop.run_until_complete(_start_polling_with_retry(_bot_app)):
            loop.run_forever()
    except error.TelegramError as e:
        logger.error(f"[Telegram] Bot error: {e}", exc_info=True)
    finally:
        if _bot_app:
            try:
                if _bot_app.updater and _bot_app.updater.running:
                    loop.run_until_complete(_bot_app.updater.stop())
                if _bot_app.running:
                    loop.run_until_complete(_bot_app.stop())
                loop.run_until_complete(_bot_app.shutdown())
            except (error.TelegramError, RuntimeError) as e:
                logger.warning(f"[Telegram] Shutdown error: {e}")
        loop.close()
        _loop = None
        logger.info("[Telegram] Bot stopped")


def start_bot_background() -> None:
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("[Telegram] TELEGRAM_BOT_TOKEN not set, bot disabled")
        return
    t = threading.Thread(target=_run_bot, name="telegram-bot", daemon=True)
    t.start()


def stop_bot_background() -> None:
    """Stop polling. Called on FastAPI shutdown."""
    if _loop is not None and _loop.is_running():
        _loop.call_soon_threadsafe(_loop.stop)
