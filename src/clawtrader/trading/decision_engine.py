"""
DNA-driven Trading Decision Engine for ClawTrader.

Turns one market snapshot, one agent's DNA and personality, and the agent's
current position into a single BUY / SELL / HOLD decision with confidence,
position size, stop-loss / take-profit levels and a human-readable rationale.

Two modes share one resolver:
1. Full mode: the snapshot carries MACD or moving averages. Signals are
   extracted, blended by DNA, adjusted by personality and thresholded.
2. Basic mode: only price, 24h change and the daily range are known. A small
   set of DNA-parameterized price-range heuristics picks the action.

The engine is pure and synchronous: no I/O, no shared state. Randomness
(deceptive and chaotic personalities, basic-mode activity bias) comes from an
injected random source, a fresh one per call when none is given.

Example Usage:
    ```python
    from clawtrader.analysis.dna import AgentDNA
    from clawtrader.data.market import MarketSnapshot
    from clawtrader.trading.decision_engine import create_decision_engine
    from clawtrader.trading.positions import PositionState

    engine = create_decision_engine()
    decision = engine.decide(
        dna=AgentDNA(aggression=80, contrarian_bias=20),
        market=MarketSnapshot(symbol="bitcoin", current_price=50000.0, price_change_24h=-3.0),
        position=PositionState.flat(1000.0),
        personality="aggressive",
    )
    print(decision.action, decision.confidence, decision.suggested_amount)
    ```
"""

from dataclasses import dataclass
import random
from typing import Any, Literal

from clawtrader.analysis.dna import AgentDNA
from clawtrader.analysis.signals import MarketSignals, clamp, extract_signals
from clawtrader.analysis.weighting import WeightedSignal, weigh_signals
from clawtrader.config import get_settings
from clawtrader.config.constants import (
    AGGRESSION_POSITION_PCT,
    BASE_POSITION_PCT,
    BASIC_ACCUMULATION_7D_PCT,
    BASIC_ACCUMULATION_CONFIDENCE,
    BASIC_ACTIVITY_CONFIDENCE,
    BASIC_DCA_CONFIDENCE,
    BASIC_DCA_MULTIPLIER,
    BASIC_DIP_BASE_PCT,
    BASIC_DIP_CONFIDENCE_BASE,
    BASIC_DIP_CONFIDENCE_CAP,
    BASIC_DIP_CONFIDENCE_PER_PCT,
    BASIC_FLAT_HOLD_CONFIDENCE,
    BASIC_HOLDING_HOLD_CONFIDENCE,
    BASIC_PROFIT_BASE_PCT,
    BASIC_PROFIT_CONFIDENCE_BASE,
    BASIC_PROFIT_CONFIDENCE_CAP,
    BASIC_PROFIT_CONFIDENCE_PER_PCT,
    BASIC_RANGE_BUY_BASE,
    BASIC_RANGE_BUY_CONFIDENCE_BASE,
    BASIC_RANGE_BUY_CONFIDENCE_CAP,
    BASIC_RANGE_BUY_SPAN,
    BASIC_RANGE_SELL_BASE,
    BASIC_RANGE_SELL_CONFIDENCE_BASE,
    BASIC_RANGE_SELL_CONFIDENCE_CAP,
    BASIC_RANGE_SELL_SPAN,
    BASIC_STOP_LOSS_CONFIDENCE,
    BASIC_STOP_LOSS_TRIGGER_PCT,
    CONFIDENCE_PATTERN_BONUS,
    CONFIDENCE_SIGNAL_CAP,
    DEFAULT_ACTIVITY_BIAS_PROBABILITY,
    DEFAULT_DECEPTIVE_FLIP_PROBABILITY,
    MAX_CONFIDENCE,
    MAX_SUGGESTED_AMOUNT,
    MIN_CONFIDENCE,
    NEUTRAL_PRICE_POSITION,
    STOP_LOSS_BASE_PCT,
    STOP_LOSS_RISK_SPAN_PCT,
    TAKE_PROFIT_BASE_PCT,
    TAKE_PROFIT_PATIENCE_SPAN_PCT,
)
from clawtrader.data.market import MarketSnapshot
from clawtrader.utils import get_logger

from .personality import Personality, PersonalityAdjustment, RandomSource, apply_personality
from .positions import PositionState
from .rationale import compose_rationale

logger = get_logger(__name__)

Action = Literal["BUY", "SELL", "HOLD"]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RiskLevels:
    """Absolute stop-loss / take-profit prices and the percentages behind them."""

    stop_loss: float
    take_profit: float
    stop_loss_pct: float
    take_profit_pct: float


@dataclass(frozen=True)
class BasicThresholds:
    """
    DNA-derived thresholds of the basic-mode heuristics.

    Attributes:
        dip_pct: 24h change at or below which a flat agent buys the dip
        dca_pct: 24h change at or below which a holder averages down
        profit_pct: 24h change at or above which a holder takes profit
        range_buy_pct: Range position (0-100) below which a flat agent buys
        range_sell_pct: Range position (0-100) above which a holder sells
        range_position_pct: Where the price sits in the daily range (0-100)
    """

    dip_pct: float
    dca_pct: float
    profit_pct: float
    range_buy_pct: float
    range_sell_pct: float
    range_position_pct: float

    def to_dict(self) -> dict[str, float]:
        return {
            "dipPct": self.dip_pct,
            "dcaPct": self.dca_pct,
            "profitPct": self.profit_pct,
            "rangeBuyPct": self.range_buy_pct,
            "rangeSellPct": self.range_sell_pct,
            "rangePositionPct": self.range_position_pct,
        }


@dataclass(frozen=True)
class DecisionTrace:
    """
    Numeric intermediates behind a decision.

    Attributes:
        mode: "full" or "basic"
        rule: Name of the rule that fired ("signal" in full mode)
        final_signal: Signal after personality (full mode; 0 in basic mode)
        threshold: Action threshold (full mode; 0 in basic mode)
        signals: Extracted market signals (full mode)
        weighted: DNA weighting intermediates (full mode)
        adjustment: Personality adjustment that was applied
        basic: Basic-mode thresholds (basic mode)
        risk: Stop-loss / take-profit levels, None for HOLD
    """

    mode: Literal["full", "basic"]
    rule: str
    final_signal: float = 0.0
    threshold: float = 0.0
    signals: MarketSignals | None = None
    weighted: WeightedSignal | None = None
    adjustment: PersonalityAdjustment | None = None
    basic: BasicThresholds | None = None
    risk: RiskLevels | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "mode": self.mode,
            "rule": self.rule,
            "finalSignal": round(self.final_signal, 4),
            "threshold": round(self.threshold, 4),
        }
        if self.weighted is not None:
            data["technicalScore"] = round(self.weighted.technical_score, 4)
            data["intuitiveScore"] = round(self.weighted.intuitive_score, 4)
            data["rawSignal"] = round(self.weighted.raw_signal, 4)
            data["contrarianApplied"] = self.weighted.contrarian_applied
        if self.adjustment is not None:
            data["personalityDelta"] = round(self.adjustment.delta, 4)
            data["personalityInverted"] = self.adjustment.inverted
        if self.basic is not None:
            data["basic"] = self.basic.to_dict()
        return data


@dataclass(frozen=True)
class TradingDecision:
    """
    Final trading decision for one agent and one market.

    Attributes:
        action: BUY, SELL or HOLD
        confidence: Confidence in [10, 98]
        suggested_amount: BUY: % of USDC balance; SELL: % of held tokens; HOLD: 0
        reasoning: Why the agent acted
        technical_analysis: What the numbers said
        risk_assessment: Stops, size and exposure
        stop_loss: Absolute stop price (None for HOLD)
        take_profit: Absolute take-profit price (None for HOLD)
        symbol: Market the decision applies to
        mode: "full" or "basic"
        personality: Personality used
        trace: Numeric intermediates
    """

    action: Action
    confidence: float
    suggested_amount: float
    reasoning: str
    technical_analysis: str
    risk_assessment: str
    stop_loss: float | None
    take_profit: float | None
    symbol: str
    mode: Literal["full", "basic"]
    personality: Personality
    trace: DecisionTrace

    def to_dict(self) -> dict[str, Any]:
        """camelCase wire format used by the HTTP API."""
        return {
            "action": self.action,
            "confidence": round(self.confidence, 2),
            "suggestedAmount": round(self.suggested_amount, 2),
            "reasoning": self.reasoning,
            "technicalAnalysis": self.technical_analysis,
            "riskAssessment": self.risk_assessment,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
            "symbol": self.symbol,
            "mode": self.mode,
            "personality": self.personality.value,
            "trace": self.trace.to_dict(),
        }

    def __repr__(self) -> str:
        if self.action == "HOLD":
            return f"TradingDecision(HOLD {self.symbol}, confidence={self.confidence:.1f})"
        return (
            f"TradingDecision({self.action} {self.symbol}, "
            f"size={self.suggested_amount:.1f}%, confidence={self.confidence:.1f}, "
            f"SL={self.stop_loss:.2f}, TP={self.take_profit:.2f})"
        )


# =============================================================================
# Resolver Helpers
# =============================================================================


def clamp_confidence(value: float) -> float:
    return clamp(value, MIN_CONFIDENCE, MAX_CONFIDENCE)


def signal_confidence(signal: float, pattern_recognition: float) -> float:
    """Confidence from signal strength plus a pattern-recognition bonus, in [10, 98]."""
    strength = min(CONFIDENCE_SIGNAL_CAP, abs(signal) * 100)
    bonus = (pattern_recognition / 100) * CONFIDENCE_PATTERN_BONUS
    return clamp_confidence(strength + bonus)


def position_size(confidence: float, aggression: float) -> float:
    """
    Suggested size in percent, scaled by aggression and confidence.

    Ranges from 5% (aggression 0) to 50% (aggression 100) at full confidence,
    never above MAX_SUGGESTED_AMOUNT.
    """
    base = BASE_POSITION_PCT + AGGRESSION_POSITION_PCT * (aggression / 100)
    return min(MAX_SUGGESTED_AMOUNT, base * (confidence / 100))


def risk_levels(action: Action, price: float, risk_tolerance: float) -> RiskLevels | None:
    """
    Stop-loss and take-profit prices for an action.

    Wider stops for risk-tolerant agents; risk-averse agents aim for larger
    take-profit targets. HOLD has no levels.
    """
    if action == "HOLD":
        return None

    risk = risk_tolerance / 100
    stop_loss_pct = STOP_LOSS_BASE_PCT + risk * STOP_LOSS_RISK_SPAN_PCT
    take_profit_pct = TAKE_PROFIT_BASE_PCT + (1 - risk) * TAKE_PROFIT_PATIENCE_SPAN_PCT

    if action == "BUY":
        stop_loss = price * (1 - stop_loss_pct / 100)
        take_profit = price * (1 + take_profit_pct / 100)
    else:
        stop_loss = price * (1 + stop_loss_pct / 100)
        take_profit = price * (1 - take_profit_pct / 100)

    return RiskLevels(
        stop_loss=stop_loss,
        take_profit=take_profit,
        stop_loss_pct=stop_loss_pct,
        take_profit_pct=take_profit_pct,
    )


def resolve_action(signal: float, threshold: float, has_position: bool) -> Action:
    """Threshold a signal; an agent with nothing to sell can only BUY or HOLD."""
    if signal > threshold:
        return "BUY"
    if has_position and signal < -threshold:
        return "SELL"
    return "HOLD"


def basic_thresholds(dna: AgentDNA, market: MarketSnapshot) -> BasicThresholds:
    """Derive basic-mode thresholds from DNA and the daily range."""
    aggression = dna.aggression / 100
    contrarian = dna.contrarian_bias / 100

    day_range = market.range_24h
    if day_range > 0:
        position = clamp((market.current_price - market.low_24h) / day_range, 0.0, 1.0)
    else:
        position = NEUTRAL_PRICE_POSITION

    dip_pct = BASIC_DIP_BASE_PCT + contrarian
    return BasicThresholds(
        dip_pct=dip_pct,
        dca_pct=dip_pct * BASIC_DCA_MULTIPLIER,
        profit_pct=BASIC_PROFIT_BASE_PCT - aggression,
        range_buy_pct=BASIC_RANGE_BUY_BASE + BASIC_RANGE_BUY_SPAN * contrarian,
        range_sell_pct=BASIC_RANGE_SELL_BASE - BASIC_RANGE_SELL_SPAN * aggression,
        range_position_pct=position * 100,
    )


# =============================================================================
# Decision Engine
# =============================================================================


class DecisionEngine:
    """
    Stateless decision engine shared by every agent.

    Args:
        deceptive_flip_probability: Chance a deceptive agent inverts its read
        activity_bias_probability: Chance of a minor basic-mode trade in a
            neutral market while holding
    """

    def __init__(
        self,
        deceptive_flip_probability: float = DEFAULT_DECEPTIVE_FLIP_PROBABILITY,
        activity_bias_probability: float = DEFAULT_ACTIVITY_BIAS_PROBABILITY,
    ):
        self.deceptive_flip_probability = deceptive_flip_probability
        self.activity_bias_probability = activity_bias_probability

    def decide(
        self,
        dna: AgentDNA | dict[str, Any] | None,
        market: MarketSnapshot,
        position: PositionState,
        personality: str | Personality | None = Personality.ADAPTIVE,
        rng: RandomSource | None = None,
    ) -> TradingDecision:
        """
        Produce one trading decision.

        Args:
            dna: Agent DNA (a mapping is accepted and normalized)
            market: Market snapshot
            position: Current holdings of the agent
            personality: Personality tag; unknown values behave as adaptive
            rng: Random source; a fresh random.Random() is created when omitted

        Returns:
            TradingDecision. Data quality problems never raise: traits are
            clamped, missing fields take neutral defaults and degenerate
            ranges fall back to neutral signals.
        """
        if not isinstance(dna, AgentDNA):
            dna = AgentDNA.from_dict(dna)
        kind = Personality.parse(personality)
        rng = rng or random.Random()

        if market.has_full_indicators:
            decision = self._decide_full(dna, market, position, kind, rng)
        else:
            decision = self._decide_basic(dna, market, position, kind, rng)

        logger.info(
            "decision_made",
            symbol=decision.symbol,
            mode=decision.mode,
            action=decision.action,
            confidence=round(decision.confidence, 2),
            suggested_amount=round(decision.suggested_amount, 2),
            personality=kind.value,
            rule=decision.trace.rule,
            has_position=position.has_position,
        )
        return decision

    def _decide_full(
        self,
        dna: AgentDNA,
        market: MarketSnapshot,
        position: PositionState,
        personality: Personality,
        rng: RandomSource,
    ) -> TradingDecision:
        signals = extract_signals(market)
        weighted = weigh_signals(dna, signals)
        adjustment = apply_personality(
            personality, weighted.raw_signal, rng, self.deceptive_flip_probability
        )

        final_signal = adjustment.signal
        threshold = weighted.action_threshold
        action = resolve_action(final_signal, threshold, position.has_position)
        confidence = signal_confidence(final_signal, dna.pattern_recognition)

        logger.debug(
            "full_mode_signal",
            symbol=market.symbol,
            technical=round(weighted.technical_score, 4),
            intuitive=round(weighted.intuitive_score, 4),
            raw=round(weighted.raw_signal, 4),
            final=round(final_signal, 4),
            threshold=round(threshold, 4),
        )

        trace = DecisionTrace(
            mode="full",
            rule="signal",
            final_signal=final_signal,
            threshold=threshold,
            signals=signals,
            weighted=weighted,
            adjustment=adjustment,
            risk=risk_levels(action, market.current_price, dna.risk_tolerance),
        )
        size = position_size(confidence, dna.aggression) if action != "HOLD" else 0.0
        return self._build(dna, market, position, personality, action, confidence, size, trace)

    def _decide_basic(
        self,
        dna: AgentDNA,
        market: MarketSnapshot,
        position: PositionState,
        personality: Personality,
        rng: RandomSource,
    ) -> TradingDecision:
        thresholds = basic_thresholds(dna, market)
        action, confidence, rule = self._basic_rule(market, position, thresholds, rng)

        direction = {"BUY": 1.0, "SELL": -1.0, "HOLD": 0.0}[action]
        if personality is Personality.DECEPTIVE:
            adjustment = apply_personality(
                personality, direction, rng, self.deceptive_flip_probability
            )
        else:
            adjustment = PersonalityAdjustment(
                personality=personality,
                signal=direction,
                delta=0.0,
                inverted=False,
                note=f"{personality.value.capitalize()} overlay does not affect basic-mode heuristics",
            )
        if adjustment.inverted and action != "HOLD":
            flipped: Action = "SELL" if action == "BUY" else "BUY"
            if flipped == "SELL" and not position.has_position:
                action, confidence = "HOLD", BASIC_FLAT_HOLD_CONFIDENCE
            else:
                action = flipped
            rule = f"{rule}_inverted"

        confidence = clamp_confidence(confidence)
        if action == "HOLD":
            size = 0.0
        elif rule == "stop_loss":
            size = MAX_SUGGESTED_AMOUNT
        else:
            size = position_size(confidence, dna.aggression)

        trace = DecisionTrace(
            mode="basic",
            rule=rule,
            adjustment=adjustment,
            basic=thresholds,
            risk=risk_levels(action, market.current_price, dna.risk_tolerance),
        )
        return self._build(dna, market, position, personality, action, confidence, size, trace)

    def _basic_rule(
        self,
        market: MarketSnapshot,
        position: PositionState,
        t: BasicThresholds,
        rng: RandomSource,
    ) -> tuple[Action, float, str]:
        """Pick (action, confidence, rule) from the price-range heuristics."""
        change = market.price_change_24h
        range_pos = t.range_position_pct

        if not position.has_position:
            if change <= t.dip_pct:
                confidence = min(
                    BASIC_DIP_CONFIDENCE_CAP,
                    BASIC_DIP_CONFIDENCE_BASE + abs(change) * BASIC_DIP_CONFIDENCE_PER_PCT,
                )
                return "BUY", confidence, "dip_buy"
            if range_pos < t.range_buy_pct:
                confidence = min(
                    BASIC_RANGE_BUY_CONFIDENCE_CAP,
                    BASIC_RANGE_BUY_CONFIDENCE_BASE + (t.range_buy_pct - range_pos),
                )
                return "BUY", confidence, "range_buy"
            change_7d = market.price_change_7d
            if change_7d is not None and change_7d < BASIC_ACCUMULATION_7D_PCT and change > 0:
                return "BUY", BASIC_ACCUMULATION_CONFIDENCE, "accumulation"
            return "HOLD", BASIC_FLAT_HOLD_CONFIDENCE, "wait"

        if change >= t.profit_pct:
            confidence = min(
                BASIC_PROFIT_CONFIDENCE_CAP,
                BASIC_PROFIT_CONFIDENCE_BASE + change * BASIC_PROFIT_CONFIDENCE_PER_PCT,
            )
            return "SELL", confidence, "take_profit"
        if range_pos > t.range_sell_pct:
            confidence = min(
                BASIC_RANGE_SELL_CONFIDENCE_CAP,
                BASIC_RANGE_SELL_CONFIDENCE_BASE + (range_pos - t.range_sell_pct),
            )
            return "SELL", confidence, "range_sell"
        if change < BASIC_STOP_LOSS_TRIGGER_PCT:
            return "SELL", BASIC_STOP_LOSS_CONFIDENCE, "stop_loss"
        if change <= t.dca_pct:
            return "BUY", BASIC_DCA_CONFIDENCE, "dca"
        if self.activity_bias_probability > 0 and rng.random() < self.activity_bias_probability:
            action: Action = "SELL" if change > 0 else "BUY"
            return action, BASIC_ACTIVITY_CONFIDENCE, "activity"
        return "HOLD", BASIC_HOLDING_HOLD_CONFIDENCE, "hold"

    def _build(
        self,
        dna: AgentDNA,
        market: MarketSnapshot,
        position: PositionState,
        personality: Personality,
        action: Action,
        confidence: float,
        size: float,
        trace: DecisionTrace,
    ) -> TradingDecision:
        rationale = compose_rationale(
            action=action,
            confidence=confidence,
            suggested_amount=size,
            dna=dna,
            market=market,
            has_position=position.has_position,
            trace=trace,
        )
        return TradingDecision(
            action=action,
            confidence=confidence,
            suggested_amount=size,
            reasoning=rationale.reasoning,
            technical_analysis=rationale.technical_analysis,
            risk_assessment=rationale.risk_assessment,
            stop_loss=trace.risk.stop_loss if trace.risk else None,
            take_profit=trace.risk.take_profit if trace.risk else None,
            symbol=market.symbol,
            mode=trace.mode,
            personality=personality,
            trace=trace,
        )


# =============================================================================
# Factory Functions
# =============================================================================


def create_decision_engine() -> DecisionEngine:
    """
    Create a decision engine configured from settings.

    Returns:
        DecisionEngine using the ENGINE_* probabilities
    """
    settings = get_settings().engine
    engine = DecisionEngine(
        deceptive_flip_probability=settings.deceptive_flip_probability,
        activity_bias_probability=settings.activity_bias_probability,
    )
    logger.info(
        "decision_engine_created",
        deceptive_flip_probability=engine.deceptive_flip_probability,
        activity_bias_probability=engine.activity_bias_probability,
    )
    return engine


def decide(
    dna: AgentDNA | dict[str, Any] | None,
    market: MarketSnapshot,
    position: PositionState,
    personality: str | Personality | None = Personality.ADAPTIVE,
    rng: RandomSource | None = None,
) -> TradingDecision:
    """Decide with default probabilities; see DecisionEngine.decide."""
    return DecisionEngine().decide(dna, market, position, personality, rng)
