"""
Price History Fetcher: Binance klines → ascending PriceSample series.

Kline rows are arrays [open_time_ms, open, high, low, close, ...] with prices
as decimal strings. Empty list on any failure; the reconciliation engine owns
the fallback price.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_satstack.core.exceptions import ProviderError
from backend_satstack.providers.http import fetch_json
from backend_satstack.providers.models import PriceSample
from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)

PROVIDER_NAME = "binance"


def parse_klines(payload: Any) -> list[PriceSample]:
    """Kline rows → PriceSample sorted ascending by open time."""
    if not isinstance(payload, list):
        raise ProviderError(PROVIDER_NAME, "expected a list of klines")
    try:
        samples = [PriceSample(int(row[0]), float(row[4])) for row in payload]
    except (IndexError, KeyError, TypeError, ValueError) as e:
        raise ProviderError(PROVIDER_NAME, f"malformed kline: {e}") from e
    samples.sort(key=lambda s: s.timestamp_ms)
    return samples


class PriceHistoryClient:
    """Daily closes for a symbol from the Binance klines endpoint."""

    def __init__(
        self,
        base_url: str = "https://api.binance.com/api/v3",
        *,
        symbol: str = "BTCUSDT",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._symbol = symbol
        self._timeout = timeout
        self._client = client

    async def fetch_klines(self, interval: str, limit: int) -> Any:
        """Raw kline rows; raises on failure (used by the chart fallback chain)."""
        return await fetch_json(
            PROVIDER_NAME,
            f"{self._base_url}/klines",
            client=self._client,
            timeout=self._timeout,
            params={"symbol": self._symbol, "interval": interval, "limit": limit},
        )

    async def fetch_daily_closes(self, interval: str = "1d", limit: int = 1000) -> list[PriceSample]:
        """Up to limit most recent closes at interval, ascending; [] on any failure."""
        try:
            samples = parse_klines(await self.fetch_klines(interval, limit))
        except (httpx.HTTPError, ProviderError) as e:
            logger.warning("price_history_fetch_failed", interval=interval, limit=limit, error=str(e))
            return []
        logger.debug("price_history_fetched", interval=interval, samples=len(samples))
        return samples
