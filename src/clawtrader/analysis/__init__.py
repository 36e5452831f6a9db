"""
Analysis module for ClawTrader.

Provides price-history indicators, market signal extraction, the agent DNA
model and the DNA weighting model that feed the decision engine.
"""

from .indicators import (
    IndicatorSet,
    PriceHistoryAnalyzer,
    calculate_macd,
    calculate_moving_averages,
    calculate_rsi,
)
from .dna import AgentDNA
from .signals import MarketSignals, extract_signals
from .weighting import (
    WeightedSignal,
    action_threshold,
    apply_contrarian,
    weigh_signals,
)

__all__ = [
    # Indicators
    "IndicatorSet",
    "PriceHistoryAnalyzer",
    "calculate_rsi",
    "calculate_macd",
    "calculate_moving_averages",
    # Signals
    "AgentDNA",
    "MarketSignals",
    "extract_signals",
    # Weighting
    "WeightedSignal",
    "weigh_signals",
    "apply_contrarian",
    "action_threshold",
]
