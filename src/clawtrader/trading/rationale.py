"""
Human-readable rationale for trading decisions.

Formatting only: every number shown here was computed by the decision engine
and is read from the decision trace.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from clawtrader.analysis.dna import AgentDNA
from clawtrader.data.market import MarketSnapshot

if TYPE_CHECKING:
    from .decision_engine import DecisionTrace

_TRAIT_LABELS = {
    "risk_tolerance": "risk tolerance",
    "aggression": "aggression",
    "pattern_recognition": "pattern recognition",
    "timing_sensitivity": "timing sensitivity",
    "contrarian_bias": "contrarian bias",
}

_BASIC_RULES = {
    "dip_buy": "Buying the dip: 24h change {change:+.2f}% is at or below {dip:+.2f}%",
    "range_buy": "Price sits low in the daily range ({pos:.0f}% < {buy:.0f}%), entering",
    "accumulation": "Accumulating after a weak week ({change_7d:+.2f}% over 7d) with a green day",
    "wait": "No entry signal: {change:+.2f}% in 24h at {pos:.0f}% of the daily range",
    "take_profit": "Taking profit: 24h change {change:+.2f}% reached {profit:+.2f}%",
    "range_sell": "Price sits high in the daily range ({pos:.0f}% > {sell:.0f}%), trimming",
    "stop_loss": "Stop-loss trigger: 24h drop of {change:+.2f}% exceeds the hard limit",
    "dca": "Averaging down: 24h change {change:+.2f}% is past {dca:+.2f}%",
    "activity": "Neutral market, taking a small position adjustment",
    "hold": "Holding: no exit or add signal at {pos:.0f}% of the daily range",
}


@dataclass(frozen=True)
class Rationale:
    reasoning: str
    technical_analysis: str
    risk_assessment: str


def dominant_trait(dna: AgentDNA) -> tuple[str, float]:
    """Trait with the highest value (first one wins ties)."""
    name = max(_TRAIT_LABELS, key=lambda trait: getattr(dna, trait))
    return _TRAIT_LABELS[name], getattr(dna, name)


def _trend_word(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "flat"


def compose_rationale(
    *,
    action: str,
    confidence: float,
    suggested_amount: float,
    dna: AgentDNA,
    market: MarketSnapshot,
    has_position: bool,
    trace: "DecisionTrace",
) -> Rationale:
    """
    Compose the reasoning, technical analysis and risk texts of a decision.

    Args:
        action: Resolved action
        confidence: Resolved confidence
        suggested_amount: Resolved size in percent
        dna: Agent DNA
        market: Market snapshot the decision was made on
        has_position: Whether the agent held the token
        trace: Decision trace with all intermediates

    Returns:
        Rationale texts
    """
    change = market.price_change_24h
    trait, trait_value = dominant_trait(dna)
    parts: list[str] = []

    if trace.mode == "full":
        parts.append(
            f"{market.symbol} is {_trend_word(change)} {change:+.2f}% in 24h. "
            f"DNA-weighted signal {trace.final_signal:+.3f} vs threshold "
            f"±{trace.threshold:.3f} -> {action}."
        )
        if trace.weighted is not None and trace.weighted.contrarian_applied:
            parts.append(
                f"Contrarian instinct inverted the read "
                f"(factor {trace.weighted.contrarian_factor:.2f})."
            )
        if not has_position and action == "HOLD" and trace.final_signal < -trace.threshold:
            parts.append("Bearish, but there is nothing to sell.")
    else:
        rule = trace.rule.removesuffix("_inverted")
        basic = trace.basic
        parts.append(
            _BASIC_RULES.get(rule, rule).format(
                change=change,
                change_7d=market.price_change_7d or 0.0,
                pos=basic.range_position_pct if basic else 0.0,
                dip=basic.dip_pct if basic else 0.0,
                dca=basic.dca_pct if basic else 0.0,
                buy=basic.range_buy_pct if basic else 0.0,
                sell=basic.range_sell_pct if basic else 0.0,
                profit=basic.profit_pct if basic else 0.0,
            )
            + "."
        )
        if trace.rule.endswith("_inverted"):
            parts.append(f"Then did the opposite: {action}.")

    if trace.adjustment is not None:
        parts.append(trace.adjustment.note + ".")
    parts.append(f"Dominant trait: {trait} ({trait_value:.0f}).")

    return Rationale(
        reasoning=" ".join(parts),
        technical_analysis=_technical_text(market, trace),
        risk_assessment=_risk_text(action, confidence, suggested_amount, dna, trace),
    )


def _technical_text(market: MarketSnapshot, trace: "DecisionTrace") -> str:
    if trace.mode == "full" and trace.signals is not None and trace.weighted is not None:
        s, w = trace.signals, trace.weighted
        return (
            f"RSI {s.rsi_signal:+.2f}, MACD {s.macd_signal:+.2f}, MA {s.ma_signal:+.2f}, "
            f"momentum {s.momentum:+.2f}. Technical {w.technical_score:+.3f} "
            f"({w.pattern_weight:.0%}) / intuitive {w.intuitive_score:+.3f} "
            f"({w.intuitive_weight:.0%}), volatility {s.volatility:.2%}, "
            f"range position {s.price_position:.0%}."
        )

    position = trace.basic.range_position_pct if trace.basic else 50.0
    text = (
        f"Basic mode (no MACD or moving averages): price ${market.current_price:,.2f}, "
        f"24h {market.price_change_24h:+.2f}%, range position {position:.0f}%."
    )
    if market.rsi is not None:
        text += f" RSI {market.rsi:.1f} noted but not used by the price-range heuristics."
    return text


def _risk_text(
    action: str,
    confidence: float,
    suggested_amount: float,
    dna: AgentDNA,
    trace: "DecisionTrace",
) -> str:
    if action == "HOLD" or trace.risk is None:
        return f"No position change at {confidence:.0f}% confidence."

    side = "of USDC balance" if action == "BUY" else "of holdings"
    return (
        f"Size {suggested_amount:.1f}% {side} at {confidence:.0f}% confidence. "
        f"Stop-loss {trace.risk.stop_loss_pct:.1f}% (${trace.risk.stop_loss:,.2f}), "
        f"take-profit {trace.risk.take_profit_pct:.1f}% (${trace.risk.take_profit:,.2f}) "
        f"for risk tolerance {dna.risk_tolerance:.0f}."
    )
