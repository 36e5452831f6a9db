"""
Decision Engine Constants for ClawTrader.

This module defines the fixed weights, thresholds, sizing bounds and risk bands
used by the DNA-driven decision engine, plus the registry of tradeable tokens.
Tunable behaviour (random activity and deception probabilities, execution
confidence floor) lives in settings instead.

All constants are immutable (Final) to prevent accidental modification during runtime.
"""

from typing import Final


# =============================================================================
# DNA Traits
# =============================================================================

TRAIT_MIN: Final[float] = 0.0
TRAIT_MAX: Final[float] = 100.0

TRAIT_DEFAULT: Final[float] = 50.0
"""Neutral value used when a trait is missing or not a finite number."""

DNA_MUTATION_STRENGTH: Final[float] = 10.0
"""Largest change a single evolution step applies to one trait."""

DNA_LOSING_WIN_RATE: Final[float] = 0.4
DNA_WINNING_WIN_RATE: Final[float] = 0.5
DNA_LOW_PNL: Final[float] = 10.0
"""Realized P&L (USDC) below which a winning agent is pushed to size up."""


# =============================================================================
# Signal Extraction
# =============================================================================

TREND_SCALE_PCT: Final[float] = 10.0
"""24h change (%) that saturates the trend signal at +/-1."""

MOMENTUM_SCALE_PCT: Final[float] = 5.0
"""24h change (%) that saturates the momentum signal at +/-1."""

RSI_OVERSOLD: Final[float] = 30.0
RSI_OVERBOUGHT: Final[float] = 70.0
RSI_NEUTRAL: Final[float] = 50.0

RSI_MID_BAND_SCALE: Final[float] = 0.3
"""Maximum |rsi_signal| inside the 30-70 band; the extremes extend it to 1."""

NEUTRAL_PRICE_POSITION: Final[float] = 0.5
"""Price position reported for a zero-width daily range."""


# =============================================================================
# DNA Weighting Model
# =============================================================================

WEIGHT_RSI: Final[float] = 0.30
WEIGHT_MACD: Final[float] = 0.25
WEIGHT_MA: Final[float] = 0.25
WEIGHT_MOMENTUM: Final[float] = 0.20

INTUITIVE_TREND_WEIGHT: Final[float] = 0.5

RANGE_LOW_ZONE: Final[float] = 0.3
RANGE_HIGH_ZONE: Final[float] = 0.7
RANGE_ZONE_BIAS: Final[float] = 0.3
"""Bias added near the daily low (and subtracted near the daily high)."""

CONTRARIAN_ACTIVATION: Final[float] = 60.0
"""Contrarian bias strictly above this level inverts the blended signal."""

THRESHOLD_BASE: Final[float] = 0.05
THRESHOLD_TIMING_SPAN: Final[float] = 0.40
"""Action threshold spans [0.05, 0.45] across timing sensitivity 0-100."""


# =============================================================================
# Personality Biases
# =============================================================================

AGGRESSIVE_BIAS: Final[float] = 0.10
CAUTIOUS_BIAS: Final[float] = -0.05
CHAOTIC_NOISE: Final[float] = 0.15


# =============================================================================
# Decision Resolver
# =============================================================================

CONFIDENCE_SIGNAL_CAP: Final[float] = 95.0
CONFIDENCE_PATTERN_BONUS: Final[float] = 15.0
MIN_CONFIDENCE: Final[float] = 10.0
MAX_CONFIDENCE: Final[float] = 98.0

BASE_POSITION_PCT: Final[float] = 5.0
AGGRESSION_POSITION_PCT: Final[float] = 45.0
MAX_SUGGESTED_AMOUNT: Final[float] = 50.0
"""Hard cap on the percentage of cash (BUY) or tokens (SELL) per decision."""

STOP_LOSS_BASE_PCT: Final[float] = 2.0
STOP_LOSS_RISK_SPAN_PCT: Final[float] = 8.0
TAKE_PROFIT_BASE_PCT: Final[float] = 3.0
TAKE_PROFIT_PATIENCE_SPAN_PCT: Final[float] = 12.0


# =============================================================================
# Basic Mode Heuristics
# =============================================================================

BASIC_DIP_BASE_PCT: Final[float] = -1.0
BASIC_PROFIT_BASE_PCT: Final[float] = 2.0
BASIC_RANGE_BUY_BASE: Final[float] = 45.0
BASIC_RANGE_BUY_SPAN: Final[float] = 15.0
BASIC_RANGE_SELL_BASE: Final[float] = 55.0
BASIC_RANGE_SELL_SPAN: Final[float] = 10.0

BASIC_STOP_LOSS_TRIGGER_PCT: Final[float] = -8.0
"""24h drop that forces a SELL while holding."""

BASIC_DCA_MULTIPLIER: Final[float] = 1.5
BASIC_ACCUMULATION_7D_PCT: Final[float] = -10.0

# Confidence assigned by each basic-mode rule
BASIC_DIP_CONFIDENCE_BASE: Final[float] = 60.0
BASIC_DIP_CONFIDENCE_PER_PCT: Final[float] = 5.0
BASIC_DIP_CONFIDENCE_CAP: Final[float] = 90.0
BASIC_RANGE_BUY_CONFIDENCE_BASE: Final[float] = 55.0
BASIC_RANGE_BUY_CONFIDENCE_CAP: Final[float] = 80.0
BASIC_ACCUMULATION_CONFIDENCE: Final[float] = 65.0
BASIC_FLAT_HOLD_CONFIDENCE: Final[float] = 60.0
BASIC_PROFIT_CONFIDENCE_BASE: Final[float] = 60.0
BASIC_PROFIT_CONFIDENCE_PER_PCT: Final[float] = 3.0
BASIC_PROFIT_CONFIDENCE_CAP: Final[float] = 90.0
BASIC_RANGE_SELL_CONFIDENCE_BASE: Final[float] = 55.0
BASIC_RANGE_SELL_CONFIDENCE_CAP: Final[float] = 85.0
BASIC_STOP_LOSS_CONFIDENCE: Final[float] = 75.0
BASIC_DCA_CONFIDENCE: Final[float] = 65.0
BASIC_ACTIVITY_CONFIDENCE: Final[float] = 45.0
BASIC_HOLDING_HOLD_CONFIDENCE: Final[float] = 55.0


# =============================================================================
# Execution
# =============================================================================

DEFAULT_MIN_EXECUTION_CONFIDENCE: Final[float] = 55.0
DEFAULT_DECEPTIVE_FLIP_PROBABILITY: Final[float] = 0.15
DEFAULT_ACTIVITY_BIAS_PROBABILITY: Final[float] = 0.30
DEFAULT_LOOP_INTERVAL_SECONDS: Final[float] = 30.0

USDC_DECIMALS: Final[int] = 6

SUPPORTED_TOKENS: Final[dict[str, dict[str, str | int]]] = {
    "bitcoin": {
        "address": "0x8C56E4d502C544556b76bbC4b8f7E7Fc58511c87",
        "decimals": 8,
        "symbol": "tBTC",
    },
    "ethereum": {
        "address": "0x3809C6E3512c409Ded482240Bd1005c1c40fE5e4",
        "decimals": 18,
        "symbol": "tETH",
    },
    "solana": {
        "address": "0xD02dB25175f69A1b1A03d6F6a8d4A566a99061Af",
        "decimals": 9,
        "symbol": "tSOL",
    },
}
"""Testnet tokens keyed by market-data coin id."""

APP_VERSION: Final[str] = "0.1.0"
