"""
Position snapshot supplied to the decision engine.

The engine never tracks holdings itself; the caller reads them from the vault
(or any PositionProvider) and passes this immutable record in.
"""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class PositionState:
    """
    Agent holdings for one token plus cash available to buy with.

    Attributes:
        has_position: Whether the agent holds the token; forced to False when
            token_amount is zero
        token_amount: Token quantity held
        token_value_usd: token_amount * current price
        usdc_balance: USDC available for buys
    """

    has_position: bool = False
    token_amount: float = 0.0
    token_value_usd: float = 0.0
    usdc_balance: float = 0.0

    def __post_init__(self) -> None:
        for name in ("token_amount", "token_value_usd", "usdc_balance"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        # Nothing to sell means flat, whatever the provider reported.
        if self.has_position and self.token_amount <= 0:
            object.__setattr__(self, "has_position", False)

    @classmethod
    def flat(cls, usdc_balance: float) -> "PositionState":
        """No token holdings, only cash."""
        return cls(has_position=False, usdc_balance=usdc_balance)

    @classmethod
    def from_holdings(
        cls, token_amount: float, usdc_balance: float, price: float
    ) -> "PositionState":
        """Derive has_position and the USD value from raw balances."""
        return cls(
            has_position=token_amount > 0,
            token_amount=token_amount,
            token_value_usd=token_amount * max(price, 0.0),
            usdc_balance=usdc_balance,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasPosition": self.has_position,
            "tokenAmount": self.token_amount,
            "tokenValueUSD": self.token_value_usd,
            "usdcBalance": self.usdc_balance,
        }


class PositionProvider(Protocol):
    """Source of agent holdings, e.g. the paper vault or an on-chain reader."""

    async def get_position(
        self, user_address: str, agent_id: str, token: str, price: float
    ) -> PositionState: ...

    async def get_usdc_balance(self, user_address: str, agent_id: str) -> float: ...
