"""
Market data module for ClawTrader.

Provides the MarketSnapshot observation consumed by the decision engine. The
CoinGecko client lives in ``clawtrader.data.coingecko`` since it depends on
the analysis package for indicator computation.
"""

from .market import MACDValues, MarketDataProvider, MarketSnapshot, MovingAverages

__all__ = [
    "MarketSnapshot",
    "MACDValues",
    "MovingAverages",
    "MarketDataProvider",
]
