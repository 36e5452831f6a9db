"""
Personality overlay for agent decisions.

Each agent carries one categorical personality which nudges, inverts or
perturbs the DNA-weighted signal before it is thresholded. Randomness comes
from an injected source so decisions can be reproduced in tests and backtests.
"""

from dataclasses import dataclass
from enum import Enum
import random
from typing import Protocol

from clawtrader.config.constants import (
    AGGRESSIVE_BIAS,
    CAUTIOUS_BIAS,
    CHAOTIC_NOISE,
    DEFAULT_DECEPTIVE_FLIP_PROBABILITY,
)


class RandomSource(Protocol):
    """Subset of random.Random used by the engine."""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...


class Personality(str, Enum):
    """Behavioural overlay of an agent."""

    AGGRESSIVE = "aggressive"
    CAUTIOUS = "cautious"
    DECEPTIVE = "deceptive"
    CHAOTIC = "chaotic"
    CALCULATING = "calculating"
    ADAPTIVE = "adaptive"

    @classmethod
    def parse(cls, value: "str | Personality | None") -> "Personality":
        """Resolve a tag, falling back to ADAPTIVE for unknown or missing values."""
        if isinstance(value, Personality):
            return value
        if value is None:
            return cls.ADAPTIVE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ADAPTIVE


@dataclass(frozen=True)
class PersonalityAdjustment:
    """
    Result of applying a personality to a signal.

    Attributes:
        personality: Personality that was applied
        signal: Adjusted signal
        delta: signal - input signal
        inverted: True when a deceptive agent acted against its own read
        note: Short human-readable description
    """

    personality: Personality
    signal: float
    delta: float
    inverted: bool
    note: str


def apply_personality(
    personality: "str | Personality | None",
    signal: float,
    rng: RandomSource | None = None,
    deceptive_flip_probability: float = DEFAULT_DECEPTIVE_FLIP_PROBABILITY,
) -> PersonalityAdjustment:
    """
    Apply a personality overlay to a DNA-weighted signal.

    Args:
        personality: Personality tag (unknown values behave as adaptive)
        signal: Raw signal after DNA weighting
        rng: Random source for deceptive/chaotic; a fresh local
            random.Random() is used when omitted
        deceptive_flip_probability: Chance a deceptive agent negates its signal

    Returns:
        PersonalityAdjustment with the adjusted signal and a note
    """
    kind = Personality.parse(personality)
    adjusted = signal
    inverted = False

    if kind is Personality.AGGRESSIVE:
        adjusted = signal + AGGRESSIVE_BIAS
        note = f"Aggressive bias {AGGRESSIVE_BIAS:+.2f} toward buying"
    elif kind is Personality.CAUTIOUS:
        adjusted = signal + CAUTIOUS_BIAS
        note = f"Cautious bias {CAUTIOUS_BIAS:+.2f} away from new risk"
    elif kind is Personality.DECEPTIVE:
        rng = rng or random.Random()
        if rng.random() < deceptive_flip_probability:
            adjusted = -signal
            inverted = True
            note = "Deceptive move: acting against its own analysis"
        else:
            note = "Deceptive agent played it straight this time"
    elif kind is Personality.CHAOTIC:
        rng = rng or random.Random()
        adjusted = signal + rng.uniform(-CHAOTIC_NOISE, CHAOTIC_NOISE)
        note = f"Chaotic noise {adjusted - signal:+.3f} added"
    elif kind is Personality.CALCULATING:
        note = "Calculating: waits for clean confirmation"
    else:
        note = "Adaptive: balanced read, no bias"

    return PersonalityAdjustment(
        personality=kind,
        signal=adjusted,
        delta=adjusted - signal,
        inverted=inverted,
        note=note,
    )
