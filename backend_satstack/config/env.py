"""
Environment variable loading for SatStack.

- SATSTACK_DB_URL / DATABASE_URL: SQLAlchemy URL (PostgreSQL in production)
- SATSTACK_DB_PATH: SQLite file used when no URL is set (default: satstack.db)
- CMC_API_KEY: CoinMarketCap key; spot price skips CoinMarketCap when unset
- FALLBACK_BTC_PRICE_USD: price used when no market data is available
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)

# Project root: config is backend_satstack/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_SQLITE_PATH = "satstack.db"


def load_satstack_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides the process env."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    """Return the stripped env value, or default when unset or blank."""
    return (os.getenv(name) or "").strip() or default


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_int", name=name, value=raw, default=default)
        return default


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_float", name=name, value=raw, default=default)
        return default


def get_database_url() -> str:
    """
    Resolve the database URL.
    Order: SATSTACK_DB_URL > DATABASE_URL > sqlite:///SATSTACK_DB_PATH (default satstack.db).
    """
    load_satstack_env()
    url = env_str("SATSTACK_DB_URL") or env_str("DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{env_str('SATSTACK_DB_PATH', DEFAULT_SQLITE_PATH)}"
