"""
Chart data source selection: BTC/USD candles for a dashboard timeframe.

Fallback chain (first success wins):
  1. CoinCap daily history aggregated to monthly candles (ALL only)
  2. Binance klines at the timeframe's interval
  3. CoinGecko OHLC
  4. Binance monthly klines (last resort)
Raises PriceSourceUnavailable when every source fails.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from backend_satstack.core.exceptions import PriceSourceUnavailable, ProviderError
from backend_satstack.providers.http import fetch_json
from backend_satstack.providers.models import Candle, ChartHistory
from backend_satstack.providers.price_history import PriceHistoryClient
from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)

TIMEFRAMES = ("1D", "1W", "1M", "3M", "1Y", "ALL")

# Binance (interval, limit) per timeframe; anything else uses the default
BINANCE_INTERVALS: dict[str, tuple[str, int]] = {
    "1D": ("15m", 96),
    "1W": ("1h", 168),
    "1M": ("4h", 180),
    "3M": ("1d", 90),
    "1Y": ("1d", 365),
}
BINANCE_DEFAULT_INTERVAL = ("1d", 365)
BINANCE_LAST_RESORT = ("1M", 60)

COINGECKO_DAYS: dict[str, str] = {
    "1D": "1",
    "1W": "7",
    "1M": "30",
    "3M": "90",
    "ALL": "max",
}
COINGECKO_DEFAULT_DAYS = "365"


def _ohlc_rows_to_candles(provider: str, rows: Any) -> list[Candle]:
    """[[time_ms, open, high, low, close, ...], ...] → candles ascending."""
    if not isinstance(rows, list):
        raise ProviderError(provider, "expected a list of rows")
    try:
        candles = [
            Candle(int(r[0]), float(r[1]), float(r[2]), float(r[3]), float(r[4]))
            for r in rows
        ]
    except (IndexError, KeyError, TypeError, ValueError) as e:
        raise ProviderError(provider, f"malformed row: {e}") from e
    candles.sort(key=lambda c: c.time_ms)
    return candles


def aggregate_monthly(points: list[tuple[int, float]]) -> list[Candle]:
    """
    Daily (time_ms, price) points → one candle per UTC month.

    open is the first price seen in the month, close the last, high/low the
    extrema; candle time is midnight UTC on the 1st.
    """
    months: dict[tuple[int, int], Candle] = {}
    for time_ms, price in sorted(points):
        dt = datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc)
        key = (dt.year, dt.month)
        candle = months.get(key)
        if candle is None:
            start = datetime(dt.year, dt.month, 1, tzinfo=timezone.utc)
            months[key] = Candle(int(start.timestamp() * 1000), price, price, price, price)
        else:
            candle.high = max(candle.high, price)
            candle.low = min(candle.low, price)
            candle.close = price
    return sorted(months.values(), key=lambda c: c.time_ms)


def parse_coincap_history(payload: Any) -> list[Candle]:
    try:
        points = [(int(item["time"]), float(item["priceUsd"])) for item in payload["data"]]
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderError("coincap", f"malformed history: {e}") from e
    return aggregate_monthly(points)


class ChartHistoryClient:
    """Resolve chart candles for a timeframe across several public sources."""

    def __init__(
        self,
        *,
        binance: PriceHistoryClient,
        coincap_api_url: str = "https://api.coincap.io/v2",
        coingecko_api_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._binance = binance
        self._coincap_url = coincap_api_url.rstrip("/")
        self._coingecko_url = coingecko_api_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _from_coincap(self) -> ChartHistory:
        payload = await fetch_json(
            "coincap",
            f"{self._coincap_url}/assets/bitcoin/history",
            client=self._client,
            timeout=self._timeout,
            params={"interval": "d1"},
        )
        return ChartHistory("CoinCap", parse_coincap_history(payload))

    async def _from_binance(self, interval: str, limit: int) -> ChartHistory:
        rows = await self._binance.fetch_klines(interval, limit)
        return ChartHistory("Binance", _ohlc_rows_to_candles("binance", rows))

    async def _from_coingecko(self, days: str) -> ChartHistory:
        rows = await fetch_json(
            "coingecko",
            f"{self._coingecko_url}/coins/bitcoin/ohlc",
            client=self._client,
            timeout=self._timeout,
            params={"vs_currency": "usd", "days": days},
        )
        return ChartHistory("CoinGecko", _ohlc_rows_to_candles("coingecko", rows))

    async def fetch_bitcoin_history(self, timeframe: str) -> ChartHistory:
        timeframe = (timeframe or "").strip().upper()
        attempts: list[tuple[str, Any]] = []
        if timeframe == "ALL":
            attempts.append(("coincap", self._from_coincap))
        interval, limit = BINANCE_INTERVALS.get(timeframe, BINANCE_DEFAULT_INTERVAL)
        attempts.append(("binance", lambda: self._from_binance(interval, limit)))
        days = COINGECKO_DAYS.get(timeframe, COINGECKO_DEFAULT_DAYS)
        attempts.append(("coingecko", lambda: self._from_coingecko(days)))
        attempts.append(("binance_monthly", lambda: self._from_binance(*BINANCE_LAST_RESORT)))

        for name, attempt in attempts:
            try:
                history = await attempt()
            except (httpx.HTTPError, ProviderError) as e:
                logger.warning("chart_source_failed", source=name, timeframe=timeframe, error=str(e))
                continue
            logger.info(
                "chart_history_resolved",
                source=history.source,
                timeframe=timeframe,
                candles=len(history.candles),
            )
            return history
        raise PriceSourceUnavailable(f"no chart source available for timeframe {timeframe!r}")
