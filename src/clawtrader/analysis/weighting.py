"""DNA weighting model.

Blends extracted market signals into one raw directional signal using the
agent's DNA. Three traits act independently:

- pattern_recognition picks which signal source dominates (technical blend
  vs. naive price action)
- contrarian_bias decides whether the conclusion is flipped
- timing_sensitivity sets how much conviction is required to act at all
"""

from dataclasses import dataclass

from clawtrader.config.constants import (
    CONTRARIAN_ACTIVATION,
    INTUITIVE_TREND_WEIGHT,
    RANGE_HIGH_ZONE,
    RANGE_LOW_ZONE,
    RANGE_ZONE_BIAS,
    THRESHOLD_BASE,
    THRESHOLD_TIMING_SPAN,
    WEIGHT_MA,
    WEIGHT_MACD,
    WEIGHT_MOMENTUM,
    WEIGHT_RSI,
)

from .dna import AgentDNA
from .signals import MarketSignals


@dataclass(frozen=True)
class WeightedSignal:
    """
    Output of the DNA weighting model.

    Attributes:
        technical_score: Fixed-weight blend of RSI, MACD, MA and momentum
        intuitive_score: Trend plus daily-range zone bias
        pattern_weight: Share of the technical score, pattern_recognition / 100
        intuitive_weight: 1 - pattern_weight
        blended_signal: Weighted combination before the contrarian step
        raw_signal: Signal after the contrarian step
        contrarian_applied: Whether the contrarian inversion fired
        contrarian_factor: Inversion strength (0 when not applied)
        action_threshold: Minimum |signal| needed to act
    """

    technical_score: float
    intuitive_score: float
    pattern_weight: float
    intuitive_weight: float
    blended_signal: float
    raw_signal: float
    contrarian_applied: bool
    contrarian_factor: float
    action_threshold: float


def technical_score(signals: MarketSignals) -> float:
    return (
        signals.rsi_signal * WEIGHT_RSI
        + signals.macd_signal * WEIGHT_MACD
        + signals.ma_signal * WEIGHT_MA
        + signals.momentum * WEIGHT_MOMENTUM
    )


def intuitive_score(signals: MarketSignals) -> float:
    """Naive price-action read: follow the trend, buy near lows, sell near highs."""
    if signals.price_position < RANGE_LOW_ZONE:
        zone_bias = RANGE_ZONE_BIAS
    elif signals.price_position > RANGE_HIGH_ZONE:
        zone_bias = -RANGE_ZONE_BIAS
    else:
        zone_bias = 0.0
    return signals.trend * INTUITIVE_TREND_WEIGHT + zone_bias


def contrarian_factor(contrarian_bias: float) -> float:
    """Inversion strength in (0.2, 1] above the activation level, else 0."""
    if contrarian_bias <= CONTRARIAN_ACTIVATION:
        return 0.0
    return (contrarian_bias / 100) * 2 - 1


def apply_contrarian(signal: float, contrarian_bias: float) -> float:
    """Invert and scale the signal when contrarian_bias exceeds 60; pass through otherwise."""
    factor = contrarian_factor(contrarian_bias)
    if factor == 0.0:
        return signal
    return signal * -factor


def action_threshold(timing_sensitivity: float) -> float:
    """Minimum |signal| to act, from 0.05 (timing 0) to 0.45 (timing 100)."""
    return THRESHOLD_BASE + (timing_sensitivity / 100) * THRESHOLD_TIMING_SPAN


def weigh_signals(dna: AgentDNA, signals: MarketSignals) -> WeightedSignal:
    """
    Combine market signals into a raw directional signal for one agent.

    Args:
        dna: Agent DNA (already clamped to [0, 100])
        signals: Normalized market signals

    Returns:
        WeightedSignal with every intermediate value
    """
    pattern_weight = dna.pattern_recognition / 100
    intuitive_weight = 1 - pattern_weight

    tech = technical_score(signals)
    intuitive = intuitive_score(signals)
    blended = tech * pattern_weight + intuitive * intuitive_weight

    factor = contrarian_factor(dna.contrarian_bias)
    raw = apply_contrarian(blended, dna.contrarian_bias)

    return WeightedSignal(
        technical_score=tech,
        intuitive_score=intuitive,
        pattern_weight=pattern_weight,
        intuitive_weight=intuitive_weight,
        blended_signal=blended,
        raw_signal=raw,
        contrarian_applied=factor > 0.0,
        contrarian_factor=factor,
        action_threshold=action_threshold(dna.timing_sensitivity),
    )
