"""
Normalized records emitted by provider clients.

Provider-specific response shapes stop at the client boundary; everything
downstream (reconciliation, pricing, charts) sees only these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RawTransaction:
    """Net-positive transfer into a queried address, as seen by one provider."""

    txid: str
    """Provider transaction id (hash); identical across providers for the same tx."""
    amount_btc: float
    """Net amount received by the address, in BTC (always > 0)."""
    timestamp_ms: int
    """Block time in ms; ingestion time when the tx is unconfirmed."""


@dataclass(frozen=True)
class PriceSample:
    """One point of a daily close series."""

    timestamp_ms: int
    close_usd: float


@dataclass
class Candle:
    """OHLC bar for chart data; time is the bar open in ms."""

    time_ms: int
    open: float
    high: float
    low: float
    close: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time_ms,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }


@dataclass
class ChartHistory:
    """Candles plus the name of the source that produced them."""

    source: str
    candles: list[Candle] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "data": [c.to_dict() for c in self.candles]}
