"""
Current Price Resolver: ordered fallback chain for the live BTC/USD spot price.

1. CoinMarketCap quotes/latest (authenticated; skipped when no key is configured)
2. Coinbase spot price (unauthenticated)
3. Configured fallback constant (cannot fail)

A step fails on transport errors, non-2xx, or a missing, non-finite or
non-positive price.
Used for dashboard valuation; not part of the sync pass.
"""

from __future__ import annotations

import math
from typing import Any

import httpx

from backend_satstack.core.exceptions import ProviderError
from backend_satstack.providers.http import fetch_json
from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)


def _positive_price(provider: str, value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise ProviderError(provider, f"price not numeric: {value!r}") from e
    if not math.isfinite(price) or price <= 0:
        raise ProviderError(provider, f"price not a positive number: {price}")
    return price


def parse_cmc_quote(payload: Any) -> float:
    try:
        value = payload["data"]["BTC"]["quote"]["USD"]["price"]
    except (KeyError, TypeError) as e:
        raise ProviderError("coinmarketcap", f"missing price: {e}") from e
    return _positive_price("coinmarketcap", value)


def parse_coinbase_spot(payload: Any) -> float:
    try:
        value = payload["data"]["amount"]
    except (KeyError, TypeError) as e:
        raise ProviderError("coinbase", f"missing amount: {e}") from e
    return _positive_price("coinbase", value)


class SpotPriceResolver:
    """Resolve the current BTC/USD price; never raises."""

    def __init__(
        self,
        *,
        fallback_price_usd: float,
        cmc_api_key: str | None = None,
        cmc_api_url: str = "https://pro-api.coinmarketcap.com/v1",
        coinbase_api_url: str = "https://api.coinbase.com/v2",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._fallback = fallback_price_usd
        self._cmc_key = (cmc_api_key or "").strip() or None
        self._cmc_url = cmc_api_url.rstrip("/")
        self._coinbase_url = coinbase_api_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _from_cmc(self) -> float:
        payload = await fetch_json(
            "coinmarketcap",
            f"{self._cmc_url}/cryptocurrency/quotes/latest",
            client=self._client,
            timeout=self._timeout,
            params={"symbol": "BTC"},
            headers={"X-CMC_PRO_API_KEY": self._cmc_key or ""},
        )
        return parse_cmc_quote(payload)

    async def _from_coinbase(self) -> float:
        payload = await fetch_json(
            "coinbase",
            f"{self._coinbase_url}/prices/BTC-USD/spot",
            client=self._client,
            timeout=self._timeout,
        )
        return parse_coinbase_spot(payload)

    async def resolve_current_price(self) -> float:
        if self._cmc_key:
            try:
                price = await self._from_cmc()
                logger.debug("spot_price_resolved", source="coinmarketcap", price=price)
                return price
            except (httpx.HTTPError, ProviderError) as e:
                logger.warning("spot_price_source_failed", source="coinmarketcap", error=str(e))
        else:
            logger.debug("spot_price_source_skipped", source="coinmarketcap", reason="no_api_key")

        try:
            price = await self._from_coinbase()
            logger.debug("spot_price_resolved", source="coinbase", price=price)
            return price
        except (httpx.HTTPError, ProviderError) as e:
            logger.warning("spot_price_source_failed", source="coinbase", error=str(e))

        logger.warning("spot_price_fallback", price=self._fallback)
        return self._fallback
