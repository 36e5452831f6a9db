"""Agent DNA trait vector.

Five traits in [0, 100] shape how an agent reads the market:

- risk_tolerance: width of stop-loss / take-profit bands
- aggression: position size
- pattern_recognition: reliance on technical indicators vs. raw price action
- timing_sensitivity: conviction required before acting
- contrarian_bias: whether (and how hard) the conclusion is inverted
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import math
import random
from typing import Any, Protocol

from clawtrader.config.constants import (
    DNA_LOSING_WIN_RATE,
    DNA_LOW_PNL,
    DNA_MUTATION_STRENGTH,
    DNA_WINNING_WIN_RATE,
    TRAIT_DEFAULT,
    TRAIT_MAX,
    TRAIT_MIN,
)
from clawtrader.utils import get_logger

logger = get_logger(__name__)

_CAMEL_KEYS = {
    "riskTolerance": "risk_tolerance",
    "aggression": "aggression",
    "patternRecognition": "pattern_recognition",
    "timingSensitivity": "timing_sensitivity",
    "contrarianBias": "contrarian_bias",
}

# Traits nudged at random on every evolution step
_DRIFT_TRAITS = ("pattern_recognition", "timing_sensitivity", "contrarian_bias")


class PerformanceRecord(Protocol):
    """Realized results an agent evolves from."""

    @property
    def win_rate(self) -> float: ...

    @property
    def total_pnl(self) -> float: ...


@dataclass(frozen=True)
class AgentDNA:
    """
    Normalized DNA traits of a trading agent.

    Values outside [0, 100] are clamped on construction, and non-finite
    values fall back to 50, so one malformed trait never breaks analysis.
    """

    risk_tolerance: float = TRAIT_DEFAULT
    aggression: float = TRAIT_DEFAULT
    pattern_recognition: float = TRAIT_DEFAULT
    timing_sensitivity: float = TRAIT_DEFAULT
    contrarian_bias: float = TRAIT_DEFAULT

    def __post_init__(self) -> None:
        for f in fields(self):
            raw = getattr(self, f.name)
            value = _normalize_trait(raw)
            if value != raw:
                logger.warning("dna_trait_clamped", trait=f.name, raw=raw, clamped=value)
            object.__setattr__(self, f.name, value)

    @classmethod
    def from_fractions(
        cls,
        risk_tolerance: float = 0.5,
        aggression: float = 0.5,
        pattern_recognition: float = 0.5,
        timing_sensitivity: float = 0.5,
        contrarian_bias: float = 0.5,
    ) -> "AgentDNA":
        """Build DNA from [0, 1] fractions as stored in the agents table."""
        return cls(
            risk_tolerance=risk_tolerance * 100,
            aggression=aggression * 100,
            pattern_recognition=pattern_recognition * 100,
            timing_sensitivity=timing_sensitivity * 100,
            contrarian_bias=contrarian_bias * 100,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AgentDNA":
        """Build DNA from a camelCase or snake_case mapping; missing traits are neutral."""
        values: dict[str, float] = {}
        for key, value in (data or {}).items():
            name = _CAMEL_KEYS.get(key, key)
            if name in _CAMEL_KEYS.values() and value is not None:
                values[name] = value
        return cls(**values)

    @classmethod
    def random(cls, rng: random.Random | None = None) -> "AgentDNA":
        """Draw integer traits uniformly from [0, 99], like the agent creation form."""
        rng = rng or random.Random()
        return cls(**{name: float(rng.randrange(100)) for name in _CAMEL_KEYS.values()})

    def evolve(
        self, performance: PerformanceRecord, rng: random.Random | None = None
    ) -> "AgentDNA":
        """
        Mutate traits from realized trading performance.

        A losing agent (win rate under 0.4) lowers aggression and risk
        tolerance; a winning agent with little realized P&L raises aggression.
        One of pattern recognition, timing sensitivity or contrarian bias then
        drifts at random. No trait moves by more than DNA_MUTATION_STRENGTH.

        Args:
            performance: Win rate and total realized P&L of the agent
            rng: Random source; a fresh random.Random() is used when omitted

        Returns:
            New AgentDNA; self is unchanged
        """
        rng = rng or random.Random()
        strength = DNA_MUTATION_STRENGTH
        values = {name: getattr(self, name) for name in _CAMEL_KEYS.values()}
        win_rate = performance.win_rate

        if win_rate < DNA_LOSING_WIN_RATE:
            values["aggression"] -= strength * rng.random()
            values["risk_tolerance"] -= strength * rng.random()
        elif win_rate > DNA_WINNING_WIN_RATE and performance.total_pnl < DNA_LOW_PNL:
            values["aggression"] += strength * rng.random()

        drifted = rng.choice(_DRIFT_TRAITS)
        values[drifted] += (rng.random() - 0.5) * strength * 2

        evolved = AgentDNA(**{name: _normalize_trait(v) for name, v in values.items()})
        logger.info(
            "dna_evolved",
            win_rate=round(win_rate, 4),
            total_pnl=round(performance.total_pnl, 4),
            drifted_trait=drifted,
            before=self.to_dict(),
            after=evolved.to_dict(),
        )
        return evolved

    def to_dict(self) -> dict[str, float]:
        """camelCase wire format."""
        return {camel: getattr(self, name) for camel, name in _CAMEL_KEYS.items()}


def _normalize_trait(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return TRAIT_DEFAULT
    if not math.isfinite(number):
        return TRAIT_DEFAULT
    return max(TRAIT_MIN, min(number, TRAIT_MAX))
