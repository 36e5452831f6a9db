"""
Trading module for ClawTrader.

Provides the DNA-driven decision engine, personality overlay, paper agent
vault and the orchestration service used by the API and autonomous loop.
"""

from .agent import AgentProfile, load_agents
from .decision_engine import (
    DecisionEngine,
    DecisionTrace,
    TradingDecision,
    create_decision_engine,
    decide,
)
from .executor import (
    AgentPerformance,
    ExecutionError,
    InsufficientFundsError,
    PaperVault,
    TradeExecutor,
    TradeReceipt,
    TradeRequest,
)
from .personality import Personality, apply_personality
from .positions import PositionProvider, PositionState
from .service import (
    AgentScheduler,
    InvalidTradeRequestError,
    MarketDataUnavailableError,
    PositionUnavailableError,
    TradingService,
    TradingServiceError,
    UnsupportedSymbolError,
)

__all__ = [
    # Decision Engine
    "DecisionEngine",
    "DecisionTrace",
    "TradingDecision",
    "create_decision_engine",
    "decide",
    "Personality",
    "apply_personality",
    "PositionState",
    "PositionProvider",
    # Execution
    "TradeRequest",
    "TradeReceipt",
    "TradeExecutor",
    "ExecutionError",
    "InsufficientFundsError",
    "PaperVault",
    "AgentPerformance",
    # Orchestration
    "AgentProfile",
    "load_agents",
    "AgentScheduler",
    "TradingService",
    "TradingServiceError",
    "UnsupportedSymbolError",
    "MarketDataUnavailableError",
    "PositionUnavailableError",
    "InvalidTradeRequestError",
]
