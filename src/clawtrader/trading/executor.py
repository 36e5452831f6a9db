"""
Trade execution for ClawTrader agents.

Defines the executor contract the orchestration layer talks to and an
in-memory paper vault implementing it. The vault keeps USDC per agent and
token balances per agent and token, fills swaps at the quoted price with
slippage and a swap fee, records every fill and keeps each agent's realized
P&L and win/loss record (average cost basis).

Example Usage:
    ```python
    from clawtrader.trading.executor import PaperVault, TradeRequest

    vault = PaperVault(fee_rate=0.003)
    await vault.deposit("0xabc", "agent-1", 1000.0)

    receipt = await vault.execute_buy(
        TradeRequest(
            user_address="0xabc",
            agent_id="agent-1",
            token="bitcoin",
            amount=100.0,
            price=50000.0,
        )
    )
    print(receipt.tx_hash, receipt.amount_out)
    ```
"""

import asyncio
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal, Protocol
import uuid

from clawtrader.utils import get_logger

from .positions import PositionState

logger = get_logger(__name__)


# =============================================================================
# Errors
# =============================================================================


class ExecutionError(Exception):
    """The executor refused or failed to execute a trade."""


class InsufficientFundsError(ExecutionError):
    """Balance too small for the requested trade."""

    def __init__(self, asset: str, required: float, available: float):
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient {asset}: required {required:.8f}, available {available:.8f}"
        )


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class TradeRequest:
    """
    One swap to execute for an agent.

    Attributes:
        user_address: Owner of the agent vault
        agent_id: Agent identifier
        token: Coin id of the traded token (e.g. "bitcoin")
        amount: BUY: USDC to spend; SELL: tokens to sell
        price: Quoted token price in USD
    """

    user_address: str
    agent_id: str
    token: str
    amount: float
    price: float

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Trade amount must be positive, got {self.amount}")
        if self.price <= 0:
            raise ValueError(f"Trade price must be positive, got {self.price}")


@dataclass(frozen=True)
class TradeReceipt:
    """
    Result of an executed swap.

    Attributes:
        tx_hash: Transaction identifier
        action: BUY or SELL
        amount_in: BUY: USDC spent; SELL: tokens sold
        amount_out: BUY: tokens received; SELL: USDC received
        price: Execution price after slippage
        fee: Fee paid in USDC
        token: Coin id of the traded token
        agent_id: Agent identifier
        realized_pnl: SELL only: USDC received minus the cost basis of the tokens sold
        timestamp: Fill time (UTC)
    """

    tx_hash: str
    action: Literal["BUY", "SELL"]
    amount_in: float
    amount_out: float
    price: float
    fee: float
    token: str = ""
    agent_id: str = ""
    realized_pnl: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class AgentPerformance:
    """
    Realized trading record of one agent.

    Only sells close (part of) a position, so only sells count as trades here.
    best_pnl and worst_pnl start at 0.
    """

    closed_trades: int = 0
    wins: int = 0
    losses: int = 0
    total_pnl: float = 0.0
    best_pnl: float = 0.0
    worst_pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        """Share of winning closed trades, 0.5 before the first one."""
        if self.closed_trades == 0:
            return 0.5
        return self.wins / self.closed_trades

    def record(self, pnl: float) -> None:
        self.closed_trades += 1
        if pnl > 0:
            self.wins += 1
        elif pnl < 0:
            self.losses += 1
        self.total_pnl += pnl
        self.best_pnl = max(self.best_pnl, pnl)
        self.worst_pnl = min(self.worst_pnl, pnl)

    def to_dict(self) -> dict[str, Any]:
        return {
            "closedTrades": self.closed_trades,
            "wins": self.wins,
            "losses": self.losses,
            "winRate": self.win_rate,
            "totalPnl": self.total_pnl,
            "bestPnl": self.best_pnl,
            "worstPnl": self.worst_pnl,
        }


class TradeExecutor(Protocol):
    """Executes swaps on behalf of an agent."""

    async def execute_buy(self, request: TradeRequest) -> TradeReceipt: ...

    async def execute_sell(self, request: TradeRequest) -> TradeReceipt: ...


# =============================================================================
# Paper Vault
# =============================================================================


class PaperVault:
    """
    Simulated agent vault.

    Implements both TradeExecutor and PositionProvider. Agents seen for the
    first time start with ``initial_usdc``.
    """

    def __init__(
        self,
        initial_usdc: float = 0.0,
        fee_rate: float = 0.003,
        slippage: float = 0.0005,
    ):
        """
        Initialize paper vault.

        Args:
            initial_usdc: USDC credited to an agent on first access
            fee_rate: Swap fee rate charged in USDC (default: 0.3%)
            slippage: Price slippage applied against the trader (default: 0.05%)
        """
        self.initial_usdc = initial_usdc
        self.fee_rate = fee_rate
        self.slippage = slippage
        self._usdc: dict[tuple[str, str], float] = {}
        self._tokens: dict[tuple[str, str, str], float] = {}
        self._cost_basis: dict[tuple[str, str, str], float] = {}
        self._performance: dict[tuple[str, str], AgentPerformance] = {}
        self.trade_history: list[TradeReceipt] = []
        self._lock = asyncio.Lock()

        logger.info(
            "paper_vault_initialized",
            initial_usdc=initial_usdc,
            fee_rate=fee_rate,
            slippage=slippage,
        )

    def _usdc_key(self, user_address: str, agent_id: str) -> tuple[str, str]:
        key = (user_address.lower(), agent_id)
        if key not in self._usdc:
            self._usdc[key] = self.initial_usdc
        return key

    def _token_key(self, user_address: str, agent_id: str, token: str) -> tuple[str, str, str]:
        return (user_address.lower(), agent_id, token)

    async def deposit(self, user_address: str, agent_id: str, amount: float) -> float:
        """
        Fund an agent with USDC.

        Returns:
            New USDC balance

        Raises:
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive, got {amount}")

        async with self._lock:
            key = self._usdc_key(user_address, agent_id)
            self._usdc[key] += amount
            balance = self._usdc[key]

        logger.info("agent_deposit", agent_id=agent_id, amount=amount, balance=balance)
        return balance

    async def withdraw(self, user_address: str, agent_id: str, amount: float) -> float:
        """
        Withdraw USDC from an agent.

        Returns:
            New USDC balance

        Raises:
            ValueError: If amount is not positive
            InsufficientFundsError: If the agent holds less than amount
        """
        if amount <= 0:
            raise ValueError(f"Withdraw amount must be positive, got {amount}")

        async with self._lock:
            key = self._usdc_key(user_address, agent_id)
            available = self._usdc[key]
            if amount > available:
                raise InsufficientFundsError("USDC", amount, available)
            self._usdc[key] = available - amount
            balance = self._usdc[key]

        logger.info("agent_withdraw", agent_id=agent_id, amount=amount, balance=balance)
        return balance

    async def execute_buy(self, request: TradeRequest) -> TradeReceipt:
        """
        Swap USDC for tokens.

        Raises:
            InsufficientFundsError: If the agent holds less USDC than requested
        """
        async with self._lock:
            usdc_key = self._usdc_key(request.user_address, request.agent_id)
            available = self._usdc[usdc_key]
            if request.amount > available:
                logger.warning(
                    "paper_buy_failed_insufficient_balance",
                    agent_id=request.agent_id,
                    required=request.amount,
                    available=available,
                )
                raise InsufficientFundsError("USDC", request.amount, available)

            exec_price = request.price * (1 + self.slippage)
            fee = request.amount * self.fee_rate
            tokens = (request.amount - fee) / exec_price

            token_key = self._token_key(request.user_address, request.agent_id, request.token)
            self._usdc[usdc_key] = available - request.amount
            self._tokens[token_key] = self._tokens.get(token_key, 0.0) + tokens
            self._cost_basis[token_key] = self._cost_basis.get(token_key, 0.0) + request.amount

            receipt = TradeReceipt(
                tx_hash=_new_tx_hash(),
                action="BUY",
                amount_in=request.amount,
                amount_out=tokens,
                price=exec_price,
                fee=fee,
                token=request.token,
                agent_id=request.agent_id,
            )
            self.trade_history.append(receipt)

        logger.info(
            "paper_buy_filled",
            agent_id=request.agent_id,
            coin_id=request.token,
            usdc_in=request.amount,
            tokens_out=tokens,
            price=exec_price,
            fee=fee,
        )
        return receipt

    async def execute_sell(self, request: TradeRequest) -> TradeReceipt:
        """
        Swap tokens for USDC.

        Raises:
            InsufficientFundsError: If the agent holds fewer tokens than requested
        """
        async with self._lock:
            token_key = self._token_key(request.user_address, request.agent_id, request.token)
            held = self._tokens.get(token_key, 0.0)
            if request.amount > held:
                logger.warning(
                    "paper_sell_failed_insufficient_tokens",
                    agent_id=request.agent_id,
                    coin_id=request.token,
                    required=request.amount,
                    available=held,
                )
                raise InsufficientFundsError(request.token, request.amount, held)

            exec_price = request.price * (1 - self.slippage)
            gross = request.amount * exec_price
            fee = gross * self.fee_rate
            usdc_out = gross - fee

            usdc_key = self._usdc_key(request.user_address, request.agent_id)
            basis = self._cost_basis.get(token_key, 0.0)
            cost = basis * request.amount / held
            pnl = usdc_out - cost

            remaining = held - request.amount
            if remaining > 0:
                self._tokens[token_key] = remaining
                self._cost_basis[token_key] = basis - cost
            else:
                self._tokens.pop(token_key, None)
                self._cost_basis.pop(token_key, None)
            self._usdc[usdc_key] += usdc_out
            self._performance.setdefault(usdc_key, AgentPerformance()).record(pnl)

            receipt = TradeReceipt(
                tx_hash=_new_tx_hash(),
                action="SELL",
                amount_in=request.amount,
                amount_out=usdc_out,
                price=exec_price,
                fee=fee,
                token=request.token,
                agent_id=request.agent_id,
                realized_pnl=pnl,
            )
            self.trade_history.append(receipt)

        logger.info(
            "paper_sell_filled",
            agent_id=request.agent_id,
            coin_id=request.token,
            tokens_in=request.amount,
            usdc_out=usdc_out,
            price=exec_price,
            fee=fee,
            realized_pnl=pnl,
        )
        return receipt

    async def get_usdc_balance(self, user_address: str, agent_id: str) -> float:
        return self._usdc[self._usdc_key(user_address, agent_id)]

    async def get_token_balance(self, user_address: str, agent_id: str, token: str) -> float:
        return self._tokens.get(self._token_key(user_address, agent_id, token), 0.0)

    async def get_position(
        self, user_address: str, agent_id: str, token: str, price: float
    ) -> PositionState:
        token_amount = await self.get_token_balance(user_address, agent_id, token)
        usdc = await self.get_usdc_balance(user_address, agent_id)
        return PositionState.from_holdings(token_amount, usdc, price)

    async def get_balances(self, user_address: str, agent_id: str) -> dict[str, Any]:
        """USDC balance plus every non-zero token balance of an agent."""
        user = user_address.lower()
        tokens = {
            token: amount
            for (owner, agent, token), amount in self._tokens.items()
            if owner == user and agent == agent_id and amount > 0
        }
        return {
            "usdc": await self.get_usdc_balance(user_address, agent_id),
            "tokens": tokens,
        }

    async def get_performance(self, user_address: str, agent_id: str) -> AgentPerformance:
        """Copy of the agent's realized P&L and win/loss record."""
        record = self._performance.get((user_address.lower(), agent_id))
        return replace(record) if record is not None else AgentPerformance()

    def get_trade_history(self, agent_id: str | None = None) -> list[TradeReceipt]:
        if agent_id is None:
            return list(self.trade_history)
        return [r for r in self.trade_history if r.agent_id == agent_id]


def _new_tx_hash() -> str:
    return "0x" + uuid.uuid4().hex + uuid.uuid4().hex
