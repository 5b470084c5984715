"""
BizOps backend: Telegram sales assistant plus a small records API.

- Telegram bot: sellers register clients, take orders and look up sales
  through menus and short guided flows.
- FastAPI: health check and read-only JSON records for the dashboard.
- SQLAlchemy: clients, products, orders and their line items.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bizops import __version__
from bizops.api.routes import records
from bizops.core.config import settings
from bizops.db.init_db import init_db
from bizops.telegram.bot import start_bot_background, stop_bot_background

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables, then start Telegram polling if a token is set.
    Shutdown: stop polling.
    """
    logger.info("[Startup] Initializing database...")
    init_db()
    if settings.TELEGRAM_BOT_TOKEN:
        logger.info("[Startup] Starting Telegram bot...")
        start_bot_background()
    else:
        logger.warning("[Startup] Telegram bot disabled (no token)")

    yield

    if settings.TELEGRAM_BOT_TOKEN:
        stop_bot_background()


app = FastAPI(
    title="BizOps API",
    description="Records API for the BizOps Telegram sales assistant.",
    version=__version__,
    lifespan=lifespan,
)

# Restrict CORS to configured origins and read-only methods
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin"],
    max_age=600,
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(records.router, prefix="/records", tags=["records"])


@app.get("/health")
def health():
    return {"status": "ok", "bot": "enabled" if settings.TELEGRAM_BOT_TOKEN else "disabled"}
