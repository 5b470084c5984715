"""Application configuration.

Environment variables override all defaults. Values are read once at import
time; `backend/.env` is loaded first for local development.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"⛔ {name} must be an integer, got {raw!r}")


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./bizops.db")

    # Where run_server.py binds uvicorn
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = _int_env("API_PORT", 8000)

    # Telegram Bot (Must be set via .env, never in code)
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # Telegram rejects callback_data longer than 64 bytes
    CALLBACK_DATA_LIMIT: int = _int_env("CALLBACK_DATA_LIMIT", 64)

    # Companion dashboard, linked from the main menu
    WEB_BASE_URL: str = os.getenv("WEB_BASE_URL", "http://localhost:3000")

    # List sizes
    PRODUCTS_PAGE_SIZE: int = _int_env("PRODUCTS_PAGE_SIZE", 5)
    CLIENTS_PAGE_SIZE: int = _int_env("CLIENTS_PAGE_SIZE", 10)
    OPTIONS_PAGE_SIZE: int = _int_env("OPTIONS_PAGE_SIZE", 10)
    ORDERS_PAGE_SIZE: int = _int_env("ORDERS_PAGE_SIZE", 10)

    # 0 keeps abandoned sessions forever
    SESSION_IDLE_MINUTES: int = _int_env("SESSION_IDLE_MINUTES", 0)

    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "$")

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")


settings = Settings()
