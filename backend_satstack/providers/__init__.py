"""
Remote data providers: block explorers, price history, spot price, chart data.

Every client normalizes its provider's response into the shared records in
providers.models; provider-specific shapes never leave this package.
"""

from backend_satstack.providers.blockchain_info import BlockchainInfoClient
from backend_satstack.providers.chart_history import ChartHistoryClient
from backend_satstack.providers.mempool import MempoolClient
from backend_satstack.providers.models import Candle, ChartHistory, PriceSample, RawTransaction
from backend_satstack.providers.price_history import PriceHistoryClient
from backend_satstack.providers.spot_price import SpotPriceResolver

__all__ = [
    "BlockchainInfoClient",
    "Candle",
    "ChartHistory",
    "ChartHistoryClient",
    "MempoolClient",
    "PriceHistoryClient",
    "PriceSample",
    "RawTransaction",
    "SpotPriceResolver",
]
