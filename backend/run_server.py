"""Run the records API (and the bot, when a token is configured) under uvicorn."""
import logging
import signal
import sys

import uvicorn

from bizops.core.config import settings

logger = logging.getLogger(__name__)


def handle_signal(sig, frame):
    logger.info(f"[Server] Received signal {sig}, shutting down")
    sys.exit(0)


def main():
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    bot = "with Telegram bot" if settings.TELEGRAM_BOT_TOKEN else "records API only"
    logger.info(f"[Server] Starting BizOps on {settings.API_HOST}:{settings.API_PORT} ({bot})")
    uvicorn.run(
        "bizops.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
