"""
Application settings.

Typed, immutable view of the environment used by providers, the sync engine,
the store and the API server. Build with get_settings(); tests construct
Settings(...) directly with overrides.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_satstack.config.env import (
    env_float,
    env_int,
    env_str,
    get_database_url,
    load_satstack_env,
)

DEFAULT_FALLBACK_PRICE_USD = 95_000.0
DEFAULT_HTTP_TIMEOUT_SEC = 15.0


@dataclass(frozen=True)
class Settings:
    """Runtime configuration; every field has a production default."""

    database_url: str = "sqlite:///satstack.db"

    mempool_api_url: str = "https://mempool.space/api"
    blockchain_info_api_url: str = "https://blockchain.info"
    blockchain_info_tx_limit: int = 100

    binance_api_url: str = "https://api.binance.com/api/v3"
    price_symbol: str = "BTCUSDT"
    price_history_interval: str = "1d"
    price_history_limit: int = 1000
    fallback_price_usd: float = DEFAULT_FALLBACK_PRICE_USD

    cmc_api_key: str | None = None
    cmc_api_url: str = "https://pro-api.coinmarketcap.com/v1"
    coinbase_api_url: str = "https://api.coinbase.com/v2"
    coingecko_api_url: str = "https://api.coingecko.com/api/v3"
    coincap_api_url: str = "https://api.coincap.io/v2"

    http_timeout_sec: float = DEFAULT_HTTP_TIMEOUT_SEC


def get_settings() -> Settings:
    """Return settings resolved from the environment (and .env)."""
    load_satstack_env()
    defaults = Settings()
    return Settings(
        database_url=get_database_url(),
        mempool_api_url=env_str("MEMPOOL_API_URL", defaults.mempool_api_url),
        blockchain_info_api_url=env_str("BLOCKCHAIN_INFO_API_URL", defaults.blockchain_info_api_url),
        blockchain_info_tx_limit=env_int("BLOCKCHAIN_INFO_TX_LIMIT", defaults.blockchain_info_tx_limit),
        binance_api_url=env_str("BINANCE_API_URL", defaults.binance_api_url),
        price_symbol=env_str("PRICE_SYMBOL", defaults.price_symbol),
        price_history_interval=env_str("PRICE_HISTORY_INTERVAL", defaults.price_history_interval),
        price_history_limit=env_int("PRICE_HISTORY_LIMIT", defaults.price_history_limit),
        fallback_price_usd=env_float("FALLBACK_BTC_PRICE_USD", defaults.fallback_price_usd),
        cmc_api_key=env_str("CMC_API_KEY") or None,
        cmc_api_url=env_str("CMC_API_URL", defaults.cmc_api_url),
        coinbase_api_url=env_str("COINBASE_API_URL", defaults.coinbase_api_url),
        coingecko_api_url=env_str("COINGECKO_API_URL", defaults.coingecko_api_url),
        coincap_api_url=env_str("COINCAP_API_URL", defaults.coincap_api_url),
        http_timeout_sec=env_float("HTTP_TIMEOUT_SEC", defaults.http_timeout_sec),
    )
