"""
Cost basis and ROI over persisted transactions.

Cost basis of a transaction is amount × price at time; current value uses the
live spot price. Buckets are by UTC month (YYYY-MM) and year (YYYY), newest
period first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from backend_satstack.database.models import TransactionRecord


@dataclass(frozen=True)
class RoiRow:
    period: str
    invested_usd: float
    total_btc: float
    current_value_usd: float
    roi_usd: float
    roi_percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "invested_usd": self.invested_usd,
            "total_btc": self.total_btc,
            "current_value_usd": self.current_value_usd,
            "roi_usd": self.roi_usd,
            "roi_percentage": self.roi_percentage,
        }


@dataclass(frozen=True)
class RoiReport:
    current_price_usd: float
    overall: RoiRow
    monthly: list[RoiRow] = field(default_factory=list)
    yearly: list[RoiRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_price_usd": self.current_price_usd,
            "overall": self.overall.to_dict(),
            "monthly": [r.to_dict() for r in self.monthly],
            "yearly": [r.to_dict() for r in self.yearly],
        }


def _row(period: str, invested: float, btc: float, price: float) -> RoiRow:
    value = btc * price
    roi = value - invested
    pct = (roi / invested) * 100 if invested > 0 else 0.0
    return RoiRow(
        period=period,
        invested_usd=invested,
        total_btc=btc,
        current_value_usd=value,
        roi_usd=roi,
        roi_percentage=pct,
    )


def _rows(buckets: dict[str, list[float]], price: float) -> list[RoiRow]:
    return [
        _row(period, invested, btc, price)
        for period, (invested, btc) in sorted(buckets.items(), reverse=True)
    ]


def build_roi_report(transactions: Iterable[TransactionRecord], current_price_usd: float) -> RoiReport:
    monthly: dict[str, list[float]] = {}
    yearly: dict[str, list[float]] = {}
    total_invested = 0.0
    total_btc = 0.0
    for tx in transactions:
        invested = tx.invested_usd
        total_invested += invested
        total_btc += tx.amount_btc
        dt = datetime.fromtimestamp(tx.timestamp_ms / 1000, tz=timezone.utc)
        for buckets, key in ((monthly, f"{dt.year:04d}-{dt.month:02d}"), (yearly, f"{dt.year:04d}")):
            entry = buckets.setdefault(key, [0.0, 0.0])
            entry[0] += invested
            entry[1] += tx.amount_btc
    return RoiReport(
        current_price_usd=current_price_usd,
        overall=_row("all", total_invested, total_btc, current_price_usd),
        monthly=_rows(monthly, current_price_usd),
        yearly=_rows(yearly, current_price_usd),
    )
