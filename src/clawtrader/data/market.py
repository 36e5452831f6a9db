"""
Market snapshot data structures.

A MarketSnapshot is the immutable point-in-time observation handed to the
decision engine. Technical indicator fields are optional; their presence
decides whether the engine runs the full multi-signal blend or the basic
price-range heuristics.
"""

from dataclasses import asdict, dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class MACDValues:
    """MACD line, signal line and histogram."""

    value: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class MovingAverages:
    """Simple moving averages over 20, 50 and 200 periods."""

    ma20: float
    ma50: float
    ma200: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.ma20, self.ma50, self.ma200)


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Point-in-time market observation for one symbol.

    Attributes:
        symbol: Market identifier (e.g. "bitcoin" or "BTC")
        current_price: Last traded price in USD
        price_change_24h: Signed 24h change in percent
        price_change_7d: Signed 7d change in percent (optional)
        high_24h: 24h high (optional, missing means zero-width range)
        low_24h: 24h low (optional)
        volume_24h: 24h volume in USD (optional)
        rsi: 14-period RSI in [0, 100] (optional)
        macd: MACD values (optional)
        moving_averages: 20/50/200 moving averages (optional)
    """

    symbol: str
    current_price: float
    price_change_24h: float = 0.0
    price_change_7d: float | None = None
    high_24h: float | None = None
    low_24h: float | None = None
    volume_24h: float | None = None
    rsi: float | None = None
    macd: MACDValues | None = None
    moving_averages: MovingAverages | None = None

    @property
    def has_full_indicators(self) -> bool:
        """Whether enough indicators are present for the full signal blend.

        A lone RSI reading counts as coarse data.
        """
        return self.macd is not None or self.moving_averages is not None

    @property
    def range_24h(self) -> float:
        """Width of the daily range, 0 when either bound is missing."""
        if self.high_24h is None or self.low_24h is None:
            return 0.0
        return self.high_24h - self.low_24h

    def to_dict(self) -> dict[str, Any]:
        """Wire format used by the HTTP API (camelCase keys)."""
        return {
            "symbol": self.symbol,
            "currentPrice": self.current_price,
            "priceChange24h": self.price_change_24h,
            "priceChange7d": self.price_change_7d,
            "high24h": self.high_24h,
            "low24h": self.low_24h,
            "volume24h": self.volume_24h,
            "rsi": self.rsi,
            "macd": asdict(self.macd) if self.macd else None,
            "movingAverages": asdict(self.moving_averages) if self.moving_averages else None,
        }


class MarketDataProvider(Protocol):
    """Anything that can produce a MarketSnapshot for a coin id."""

    async def fetch_snapshot(self, coin_id: str) -> MarketSnapshot: ...
