"""FastAPI interface for the ClawTrader trading service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from clawtrader.config.constants import APP_VERSION
from clawtrader.trading.service import (
    InvalidTradeRequestError,
    MarketDataUnavailableError,
    PositionUnavailableError,
    TradingService,
    TradingServiceError,
    UnsupportedSymbolError,
)
from clawtrader.utils import get_logger

logger = get_logger(__name__)

_STATUS_CODES: dict[type[TradingServiceError], int] = {
    UnsupportedSymbolError: 400,
    InvalidTradeRequestError: 400,
    MarketDataUnavailableError: 502,
    PositionUnavailableError: 502,
}


class AgentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent_id: str = Field(default="", alias="agentId")
    user_address: str = Field(default="", alias="userAddress")


class SmartTradeIn(AgentRequest):
    """Decide-and-execute request for one agent."""

    symbol: str
    agent_dna: dict[str, Any] | None = Field(default=None, alias="agentDNA")
    personality: str | None = None


class ExecuteTradeIn(AgentRequest):
    """Forced trade that bypasses the decision engine."""

    action: str
    symbol: str
    amount_usdc: float | None = Field(default=None, alias="amountUSDC")


class FundsIn(AgentRequest):
    amount: float


class EvolveIn(AgentRequest):
    """DNA mutation request driven by the agent's realized performance."""

    agent_dna: dict[str, Any] | None = Field(default=None, alias="agentDNA")


def _status_for(exc: TradingServiceError) -> int:
    for error_type, status in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status
    return 500


def create_app(service: TradingService) -> FastAPI:
    """Build the API with the trading service stored in ``app.state``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        close = getattr(app.state.service.market_data, "close", None)
        if close is not None:
            await close()

    app = FastAPI(title="ClawTrader API", version=APP_VERSION, lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(TradingServiceError)
    async def handle_service_error(request: Request, exc: TradingServiceError) -> JSONResponse:
        status = _status_for(exc)
        logger.warning(
            "request_failed",
            path=request.url.path,
            status=status,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})

    @app.get("/api/health")
    async def health(request: Request) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        return {
            "status": "ok",
            "version": APP_VERSION,
            "supportedTokens": {
                coin_id: {"symbol": t.symbol, "address": t.address, "decimals": t.decimals}
                for coin_id, t in svc.tokens.items()
            },
        }

    @app.post("/api/smart-trade")
    async def smart_trade(request: Request, body: SmartTradeIn) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        result = await svc.smart_trade(
            symbol=body.symbol,
            agent_id=body.agent_id,
            user_address=body.user_address,
            dna=body.agent_dna,
            personality=body.personality,
        )
        return result.to_dict()

    @app.post("/api/execute-trade")
    async def execute_trade(request: Request, body: ExecuteTradeIn) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        outcome = await svc.force_trade(
            action=body.action,
            symbol=body.symbol,
            agent_id=body.agent_id,
            user_address=body.user_address,
            amount_usdc=body.amount_usdc,
        )
        return {"success": outcome.executed, "action": body.action.upper(), **outcome.to_dict()}

    @app.get("/api/agent-balances/{user_address}/{agent_id}")
    async def agent_balances(request: Request, user_address: str, agent_id: str) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        balances = await svc.agent_balances(user_address, agent_id)
        return {"success": True, **balances}

    @app.post("/api/agent-deposit")
    async def agent_deposit(request: Request, body: FundsIn) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        balance = await svc.deposit(body.user_address, body.agent_id, body.amount)
        return {"success": True, "agentId": body.agent_id, "usdc": balance}

    @app.post("/api/agent-withdraw")
    async def agent_withdraw(request: Request, body: FundsIn) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        balance = await svc.withdraw(body.user_address, body.agent_id, body.amount)
        return {"success": True, "agentId": body.agent_id, "usdc": balance}

    @app.post("/api/agent-evolve")
    async def agent_evolve(request: Request, body: EvolveIn) -> dict[str, Any]:
        svc: TradingService = request.app.state.service
        result = await svc.evolve_agent(body.user_address, body.agent_id, body.agent_dna)
        return {"success": True, **result}

    return app
