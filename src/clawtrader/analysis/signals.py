"""Signal extraction from market snapshots.

Turns a MarketSnapshot into normalized, directly comparable signals. Every
output is well defined for partial or degenerate data: missing indicators
contribute 0 and a zero-width daily range yields volatility 0 with the price
sitting at the middle of the range.
"""

from dataclasses import dataclass

from clawtrader.config.constants import (
    MOMENTUM_SCALE_PCT,
    NEUTRAL_PRICE_POSITION,
    RSI_MID_BAND_SCALE,
    RSI_NEUTRAL,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    TREND_SCALE_PCT,
)
from clawtrader.data.market import MACDValues, MarketSnapshot, MovingAverages


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(value, upper))


@dataclass(frozen=True)
class MarketSignals:
    """
    Normalized market signals.

    Attributes:
        trend: 24h direction, [-1, 1]
        momentum: Faster-saturating 24h direction, [-1, 1]
        volatility: Daily range relative to price, [0, 1]
        rsi_signal: Oversold (+) / overbought (-) reading, [-1, 1]
        macd_signal: Histogram relative to MACD magnitude, [-1, 1]
        ma_signal: Price vs. 20/50/200 averages, [-1, 1]
        price_position: Where price sits in the daily range, [0, 1]
    """

    trend: float
    momentum: float
    volatility: float
    rsi_signal: float
    macd_signal: float
    ma_signal: float
    price_position: float


def rsi_to_signal(rsi: float | None) -> float:
    """Map RSI onto a buy (+) / sell (-) bias.

    Inside 30-70 the signal is proportional to the distance from 50 and never
    exceeds 0.3 in magnitude. Beyond the bands it grows linearly from 0.3 up
    to 1 at the extremes, so the mapping is continuous and monotone.
    """
    if rsi is None:
        return 0.0
    rsi = clamp(rsi, 0.0, 100.0)
    extreme_span = 1.0 - RSI_MID_BAND_SCALE

    if rsi < RSI_OVERSOLD:
        return RSI_MID_BAND_SCALE + (RSI_OVERSOLD - rsi) / RSI_OVERSOLD * extreme_span
    if rsi > RSI_OVERBOUGHT:
        return -(
            RSI_MID_BAND_SCALE
            + (rsi - RSI_OVERBOUGHT) / (100.0 - RSI_OVERBOUGHT) * extreme_span
        )
    half_band = RSI_OVERBOUGHT - RSI_NEUTRAL
    return (RSI_NEUTRAL - rsi) / half_band * RSI_MID_BAND_SCALE


def macd_to_signal(macd: MACDValues | None) -> float:
    if macd is None:
        return 0.0
    return clamp(macd.histogram / max(abs(macd.value), 1.0), -1.0, 1.0)


def moving_averages_to_signal(price: float, averages: MovingAverages | None) -> float:
    """+1 when price is above all three averages, -1 when below all."""
    if averages is None:
        return 0.0
    above = sum(1 for ma in averages.as_tuple() if price > ma)
    return (above / 3) * 2 - 1


def extract_signals(snapshot: MarketSnapshot) -> MarketSignals:
    """
    Derive normalized signals from a market snapshot.

    Args:
        snapshot: Market observation

    Returns:
        MarketSignals for the DNA weighting model
    """
    price = snapshot.current_price
    change = snapshot.price_change_24h
    day_range = snapshot.range_24h

    if price > 0 and day_range > 0:
        volatility = clamp(day_range / price, 0.0, 1.0)
    else:
        volatility = 0.0

    if day_range > 0:
        price_position = clamp((price - snapshot.low_24h) / day_range, 0.0, 1.0)
    else:
        price_position = NEUTRAL_PRICE_POSITION

    return MarketSignals(
        trend=clamp(change / TREND_SCALE_PCT, -1.0, 1.0),
        momentum=clamp(change / MOMENTUM_SCALE_PCT, -1.0, 1.0),
        volatility=volatility,
        rsi_signal=rsi_to_signal(snapshot.rsi),
        macd_signal=macd_to_signal(snapshot.macd),
        ma_signal=moving_averages_to_signal(price, snapshot.moving_averages),
        price_position=price_position,
    )
