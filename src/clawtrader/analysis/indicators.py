"""Technical Indicators Module.

Computes the indicator fields of a MarketSnapshot (RSI, MACD and the 20/50/200
simple moving averages) from a series of daily closing prices, using pandas.

Each indicator needs a minimum amount of history; when the series is too
short the indicator is reported as None so the snapshot simply omits it.
"""

from dataclasses import dataclass

import pandas as pd

from clawtrader.data.market import MACDValues, MovingAverages

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
MA_PERIODS = (20, 50, 200)


@dataclass(frozen=True)
class IndicatorSet:
    """Indicators computable from the available history."""

    rsi: float | None = None
    macd: MACDValues | None = None
    moving_averages: MovingAverages | None = None


def calculate_rsi(closes: pd.Series, period: int = RSI_PERIOD) -> float | None:
    """Calculate the latest Relative Strength Index.

    Uses simple rolling means of gains and losses.

    Args:
        closes: Closing prices, oldest first
        period: Lookback period (default: 14)

    Returns:
        RSI in [0, 100], or None if fewer than period + 1 closes
    """
    if period < 1:
        raise ValueError(f"RSI period must be positive, got {period}")
    if len(closes) < period + 1:
        return None

    delta = closes.diff()
    gain = delta.where(delta > 0, 0.0).rolling(window=period).mean().iloc[-1]
    loss = (-delta.where(delta < 0, 0.0)).rolling(window=period).mean().iloc[-1]

    if loss == 0:
        # flat window reads as neutral, pure gains as fully overbought
        return 50.0 if gain == 0 else 100.0

    rs = gain / loss
    return float(100 - (100 / (1 + rs)))


def calculate_macd(
    closes: pd.Series,
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal: int = MACD_SIGNAL,
) -> MACDValues | None:
    """Calculate the latest MACD line, signal line and histogram.

    Args:
        closes: Closing prices, oldest first
        fast: Fast EMA period (default: 12)
        slow: Slow EMA period (default: 26)
        signal: Signal line period (default: 9)

    Returns:
        MACDValues, or None if fewer than slow + signal closes
    """
    if len(closes) < slow + signal:
        return None

    ema_fast = closes.ewm(span=fast, adjust=False).mean()
    ema_slow = closes.ewm(span=slow, adjust=False).mean()
    macd_line = ema_fast - ema_slow
    signal_line = macd_line.ewm(span=signal, adjust=False).mean()
    histogram = macd_line - signal_line

    return MACDValues(
        value=float(macd_line.iloc[-1]),
        signal=float(signal_line.iloc[-1]),
        histogram=float(histogram.iloc[-1]),
    )


def calculate_moving_averages(closes: pd.Series) -> MovingAverages | None:
    """Calculate the latest 20/50/200-period simple moving averages.

    Returns:
        MovingAverages, or None if fewer than 200 closes
    """
    if len(closes) < max(MA_PERIODS):
        return None

    ma20, ma50, ma200 = (
        float(closes.rolling(window=period).mean().iloc[-1]) for period in MA_PERIODS
    )
    return MovingAverages(ma20=ma20, ma50=ma50, ma200=ma200)


class PriceHistoryAnalyzer:
    """Indicator calculator over a closing-price history.

    Example:
        ```python
        analyzer = PriceHistoryAnalyzer([100.0, 101.5, 99.8, ...])
        indicators = analyzer.indicators()
        ```
    """

    def __init__(self, closes: pd.Series | list[float]):
        series = pd.Series(closes, dtype="float64").dropna()
        self.closes = series.reset_index(drop=True)

    def indicators(self) -> IndicatorSet:
        """Compute every indicator the history length allows."""
        return IndicatorSet(
            rsi=calculate_rsi(self.closes),
            macd=calculate_macd(self.closes),
            moving_averages=calculate_moving_averages(self.closes),
        )
