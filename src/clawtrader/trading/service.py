"""
Trading orchestration for ClawTrader.

Wires market data, the agent vault and the decision engine together:

1. Resolve the requested symbol against the supported token registry
2. Fetch a market snapshot
3. Read the agent's position from the vault
4. Ask the decision engine for a decision
5. Execute it when it is actionable and confident enough

Data and position failures raise typed errors before any decision is made.
An executor failure after a decision is a partial success: the decision is
returned with ``trade.executed = False`` and the error message.
"""

from collections.abc import Callable
from dataclasses import dataclass
import random
import time
from typing import Any, Literal, Protocol

import httpx

from clawtrader.analysis.dna import AgentDNA
from clawtrader.config.constants import DEFAULT_MIN_EXECUTION_CONFIDENCE, SUPPORTED_TOKENS
from clawtrader.data.market import MarketDataProvider, MarketSnapshot
from clawtrader.utils import add_context, get_logger

from .decision_engine import DecisionEngine, TradingDecision
from .executor import (
    AgentPerformance,
    ExecutionError,
    TradeExecutor,
    TradeReceipt,
    TradeRequest,
)
from .personality import Personality, RandomSource
from .positions import PositionProvider, PositionState

logger = get_logger(__name__)


# =============================================================================
# Errors
# =============================================================================


class TradingServiceError(Exception):
    """Base class for orchestration errors."""


class UnsupportedSymbolError(TradingServiceError):
    """Symbol is not in the supported token registry."""


class MarketDataUnavailableError(TradingServiceError):
    """Market data could not be fetched or parsed."""


class PositionUnavailableError(TradingServiceError):
    """Agent balances could not be read."""


class InvalidTradeRequestError(TradingServiceError):
    """Request is missing fields or cannot be executed as asked."""


# =============================================================================
# Token Registry
# =============================================================================


@dataclass(frozen=True)
class TokenInfo:
    coin_id: str
    address: str
    decimals: int
    symbol: str


TOKENS: dict[str, TokenInfo] = {
    coin_id: TokenInfo(
        coin_id=coin_id,
        address=str(info["address"]),
        decimals=int(info["decimals"]),
        symbol=str(info["symbol"]),
    )
    for coin_id, info in SUPPORTED_TOKENS.items()
}


def resolve_token(symbol: str, tokens: dict[str, TokenInfo] = TOKENS) -> TokenInfo:
    """
    Look up a token by coin id or token symbol, case-insensitively.

    Raises:
        UnsupportedSymbolError: If the symbol is unknown
    """
    key = (symbol or "").strip().lower()
    if key in tokens:
        return tokens[key]
    for token in tokens.values():
        if token.symbol.lower() == key:
            return token
    raise UnsupportedSymbolError(
        f"Unsupported symbol '{symbol}', expected one of: {', '.join(sorted(tokens))}"
    )


# =============================================================================
# Results
# =============================================================================


class AgentVault(TradeExecutor, PositionProvider, Protocol):
    """Executor and position provider that also holds agent funds."""

    async def deposit(self, user_address: str, agent_id: str, amount: float) -> float: ...

    async def withdraw(self, user_address: str, agent_id: str, amount: float) -> float: ...

    async def get_balances(self, user_address: str, agent_id: str) -> dict[str, Any]: ...

    async def get_performance(self, user_address: str, agent_id: str) -> AgentPerformance: ...


@dataclass(frozen=True)
class TradeOutcome:
    """What happened after the decision was made."""

    executed: bool = False
    tx_hash: str | None = None
    new_balance: float | None = None
    tokens_traded: float | None = None
    realized_pnl: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "executed": self.executed,
            "txHash": self.tx_hash,
            "newBalance": self.new_balance,
            "tokensTraded": self.tokens_traded,
            "realizedPnl": self.realized_pnl,
            "error": self.error,
        }


@dataclass(frozen=True)
class SmartTradeResult:
    decision: TradingDecision
    market: MarketSnapshot
    position: PositionState
    trade: TradeOutcome

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "decision": self.decision.to_dict(),
            "marketData": self.market.to_dict(),
            "positions": self.position.to_dict(),
            "trade": self.trade.to_dict(),
        }


# =============================================================================
# Trading Service
# =============================================================================


class TradingService:
    """
    Per-request orchestration of market data, decisions and execution.

    Args:
        market_data: Market snapshot provider
        vault: Agent vault used for positions and execution
        engine: Decision engine
        min_execution_confidence: Minimum confidence before executing
        tokens: Supported token registry
    """

    def __init__(
        self,
        market_data: MarketDataProvider,
        vault: AgentVault,
        engine: DecisionEngine | None = None,
        min_execution_confidence: float = DEFAULT_MIN_EXECUTION_CONFIDENCE,
        tokens: dict[str, TokenInfo] | None = None,
    ):
        self.market_data = market_data
        self.vault = vault
        self.engine = engine or DecisionEngine()
        self.min_execution_confidence = min_execution_confidence
        self.tokens = tokens if tokens is not None else TOKENS

    def resolve(self, symbol: str) -> TokenInfo:
        return resolve_token(symbol, self.tokens)

    async def smart_trade(
        self,
        symbol: str,
        agent_id: str,
        user_address: str,
        dna: AgentDNA | dict[str, Any] | None,
        personality: str | Personality | None = None,
        rng: RandomSource | None = None,
    ) -> SmartTradeResult:
        """
        Decide for one agent and execute the decision when warranted.

        Raises:
            InvalidTradeRequestError: If agent id or owner address is missing
            UnsupportedSymbolError: If the symbol is unknown (before any fetch)
            MarketDataUnavailableError: If the snapshot cannot be fetched
            PositionUnavailableError: If balances cannot be read
        """
        _require_agent(agent_id, user_address)
        token = self.resolve(symbol)

        with add_context(agent_id=agent_id, symbol=token.coin_id):
            market = await self._fetch_market(token)
            position = await self._read_position(user_address, agent_id, token, market)

            decision = self.engine.decide(dna, market, position, personality, rng)

            if decision.action == "HOLD":
                trade = TradeOutcome()
            elif decision.confidence < self.min_execution_confidence:
                logger.info(
                    "trade_skipped_low_confidence",
                    action=decision.action,
                    confidence=decision.confidence,
                    min_confidence=self.min_execution_confidence,
                )
                trade = TradeOutcome()
            else:
                trade = await self._execute(decision, position, user_address, agent_id, token, market)

        return SmartTradeResult(decision=decision, market=market, position=position, trade=trade)

    async def force_trade(
        self,
        action: str,
        symbol: str,
        agent_id: str,
        user_address: str,
        amount_usdc: float | None = None,
    ) -> TradeOutcome:
        """
        Execute a trade without consulting the engine.

        BUY spends ``amount_usdc``; SELL liquidates the whole token balance.

        Raises:
            InvalidTradeRequestError: Missing fields, bad action, bad amount or nothing to sell
            UnsupportedSymbolError: If the symbol is unknown
            MarketDataUnavailableError: If the price cannot be fetched
            PositionUnavailableError: If balances cannot be read
        """
        _require_agent(agent_id, user_address)
        side = (action or "").strip().upper()
        if side not in ("BUY", "SELL"):
            raise InvalidTradeRequestError(f"Action must be BUY or SELL, got '{action}'")
        token = self.resolve(symbol)

        with add_context(agent_id=agent_id, symbol=token.coin_id):
            market = await self._fetch_market(token)
            position = await self._read_position(user_address, agent_id, token, market)

            if side == "BUY":
                if amount_usdc is None or amount_usdc <= 0:
                    raise InvalidTradeRequestError("amountUSDC must be positive for BUY")
                amount = amount_usdc
            else:
                if not position.has_position:
                    raise InvalidTradeRequestError(f"No {token.symbol} balance to sell")
                amount = position.token_amount

            logger.info("force_trade_requested", action=side, amount=amount)
            return await self._submit(side, amount, user_address, agent_id, token, market)

    async def agent_balances(self, user_address: str, agent_id: str) -> dict[str, Any]:
        """USDC and per-token balances keyed by token symbol."""
        _require_agent(agent_id, user_address)
        try:
            balances = await self.vault.get_balances(user_address, agent_id)
            performance = await self.vault.get_performance(user_address, agent_id)
        except Exception as e:
            raise PositionUnavailableError(f"Failed to read balances for {agent_id}: {e}") from e

        tokens = {
            self.tokens[coin_id].symbol if coin_id in self.tokens else coin_id: amount
            for coin_id, amount in balances["tokens"].items()
        }
        return {
            "agentId": agent_id,
            "userAddress": user_address,
            "usdc": balances["usdc"],
            "tokens": tokens,
            "performance": performance.to_dict(),
        }

    async def evolve_agent(
        self,
        user_address: str,
        agent_id: str,
        dna: AgentDNA | dict[str, Any] | None,
        rng: random.Random | None = None,
    ) -> dict[str, Any]:
        """
        Mutate an agent's DNA from its realized performance in the vault.

        The caller stores the returned DNA; the service keeps no agent state.

        Raises:
            InvalidTradeRequestError: If agent id or owner address is missing
            PositionUnavailableError: If the performance record cannot be read
        """
        _require_agent(agent_id, user_address)
        if not isinstance(dna, AgentDNA):
            dna = AgentDNA.from_dict(dna)
        try:
            performance = await self.vault.get_performance(user_address, agent_id)
        except Exception as e:
            raise PositionUnavailableError(f"Failed to read performance for {agent_id}: {e}") from e

        with add_context(agent_id=agent_id):
            evolved = dna.evolve(performance, rng)

        return {
            "agentId": agent_id,
            "dnaBefore": dna.to_dict(),
            "dnaAfter": evolved.to_dict(),
            "performance": performance.to_dict(),
        }

    async def deposit(self, user_address: str, agent_id: str, amount: float) -> float:
        _require_agent(agent_id, user_address)
        try:
            return await self.vault.deposit(user_address, agent_id, amount)
        except ValueError as e:
            raise InvalidTradeRequestError(str(e)) from e

    async def withdraw(self, user_address: str, agent_id: str, amount: float) -> float:
        _require_agent(agent_id, user_address)
        try:
            return await self.vault.withdraw(user_address, agent_id, amount)
        except (ValueError, ExecutionError) as e:
            raise InvalidTradeRequestError(str(e)) from e

    async def _fetch_market(self, token: TokenInfo) -> MarketSnapshot:
        try:
            return await self.market_data.fetch_snapshot(token.coin_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("market_fetch_failed", coin_id=token.coin_id, error=str(e))
            raise MarketDataUnavailableError(
                f"Upstream market data unavailable for {token.coin_id}: {e}"
            ) from e

    async def _read_position(
        self, user_address: str, agent_id: str, token: TokenInfo, market: MarketSnapshot
    ) -> PositionState:
        try:
            return await self.vault.get_position(
                user_address, agent_id, token.coin_id, market.current_price
            )
        except Exception as e:
            logger.error("position_read_failed", error=str(e))
            raise PositionUnavailableError(f"Failed to read position for {agent_id}: {e}") from e

    async def _execute(
        self,
        decision: TradingDecision,
        position: PositionState,
        user_address: str,
        agent_id: str,
        token: TokenInfo,
        market: MarketSnapshot,
    ) -> TradeOutcome:
        fraction = decision.suggested_amount / 100
        if decision.action == "BUY":
            amount = position.usdc_balance * fraction
            if amount <= 0:
                return TradeOutcome(error="No USDC balance to buy with")
        else:
            amount = position.token_amount * fraction
            if amount <= 0:
                return TradeOutcome(error=f"No {token.symbol} balance to sell")

        return await self._submit(decision.action, amount, user_address, agent_id, token, market)

    async def _submit(
        self,
        side: Literal["BUY", "SELL"],
        amount: float,
        user_address: str,
        agent_id: str,
        token: TokenInfo,
        market: MarketSnapshot,
    ) -> TradeOutcome:
        try:
            request = TradeRequest(
                user_address=user_address,
                agent_id=agent_id,
                token=token.coin_id,
                amount=amount,
                price=market.current_price,
            )
            if side == "BUY":
                receipt = await self.vault.execute_buy(request)
            else:
                receipt = await self.vault.execute_sell(request)
        except (ExecutionError, ValueError) as e:
            logger.warning("trade_execution_failed", action=side, amount=amount, error=str(e))
            return TradeOutcome(error=str(e))

        new_balance = await self.vault.get_usdc_balance(user_address, agent_id)
        logger.info(
            "trade_executed",
            action=side,
            tx_hash=receipt.tx_hash,
            amount_in=receipt.amount_in,
            amount_out=receipt.amount_out,
            new_balance=new_balance,
        )
        return TradeOutcome(
            executed=True,
            tx_hash=receipt.tx_hash,
            new_balance=new_balance,
            tokens_traded=_tokens_traded(receipt),
            realized_pnl=receipt.realized_pnl,
        )


def _tokens_traded(receipt: TradeReceipt) -> float:
    return receipt.amount_out if receipt.action == "BUY" else receipt.amount_in


def _require_agent(agent_id: str, user_address: str) -> None:
    if not agent_id or not user_address:
        raise InvalidTradeRequestError("agentId and userAddress are required")


# =============================================================================
# Scheduling
# =============================================================================


class AgentScheduler:
    """
    Per-agent cooldown for the autonomous loop.

    An agent becomes due again ``interval_seconds`` after its last decision.
    """

    def __init__(self, interval_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_run: dict[str, float] = {}

    def is_due(self, agent_id: str) -> bool:
        last = self._last_run.get(agent_id)
        return last is None or self._clock() - last >= self.interval_seconds

    def mark_ran(self, agent_id: str) -> None:
        self._last_run[agent_id] = self._clock()

    def seconds_until_due(self, agent_id: str) -> float:
        last = self._last_run.get(agent_id)
        if last is None:
            return 0.0
        return max(0.0, self.interval_seconds - (self._clock() - last))
