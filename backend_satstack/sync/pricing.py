"""
Historical price attribution for newly observed transactions.

Rule: the first sample whose timestamp is >= the transaction timestamp (the
close at or just after the transaction). Newer than every sample → the most
recent sample. Empty series → the configured fallback price.
"""

from __future__ import annotations

from bisect import bisect_left
from typing import Sequence

from backend_satstack.providers.models import PriceSample


class PriceLookup:
    """Price lookup over an ascending sample series."""

    def __init__(self, samples: Sequence[PriceSample], fallback_price_usd: float) -> None:
        self._samples = list(samples)
        self._times = [s.timestamp_ms for s in self._samples]
        self._fallback = fallback_price_usd

    def __len__(self) -> int:
        return len(self._samples)

    def price_at(self, timestamp_ms: int) -> float:
        if not self._samples:
            return self._fallback
        idx = bisect_left(self._times, timestamp_ms)
        if idx < len(self._samples):
            return self._samples[idx].close_usd
        return self._samples[-1].close_usd


def price_at(samples: Sequence[PriceSample], timestamp_ms: int, fallback_price_usd: float) -> float:
    """One-off lookup; samples must be ascending by timestamp."""
    return PriceLookup(samples, fallback_price_usd).price_at(timestamp_ms)
