"""
ClawTrader - DNA-driven trading agents

Main entry point for the trading service.

Commands:
    run     Autonomous loop: every agent in the agents file gets a decision
            each cooldown interval, executed against the paper vault
    serve   HTTP API (FastAPI under uvicorn)
"""

import argparse
import asyncio
import signal
import sys
from typing import NoReturn

import uvicorn

from clawtrader.api import create_app
from clawtrader.config import Settings, get_settings
from clawtrader.config.constants import APP_VERSION
from clawtrader.data.coingecko import CoinGeckoClient
from clawtrader.trading.agent import AgentProfile, load_agents
from clawtrader.trading.decision_engine import create_decision_engine
from clawtrader.trading.executor import PaperVault
from clawtrader.trading.service import AgentScheduler, TradingService, TradingServiceError
from clawtrader.utils import LogConfig, add_context, get_logger, setup_logging

# Global shutdown flag
shutdown_event = asyncio.Event()


def setup_signal_handlers() -> None:
    """Setup graceful shutdown handlers for SIGINT and SIGTERM."""

    def signal_handler(signum: int, frame: object) -> None:
        logger = get_logger(__name__)
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def configure_logging(settings: Settings) -> None:
    setup_logging(
        LogConfig(
            level=settings.logging.level,
            format=settings.logging.format,
            file_path=settings.logging.file_path,
            include_timestamp=True,
        )
    )


def build_service(settings: Settings, vault: PaperVault | None = None) -> TradingService:
    """
    Wire the market data client, paper vault and decision engine.

    Args:
        settings: Application settings
        vault: Existing vault to reuse (a fresh empty one otherwise)

    Returns:
        TradingService ready for requests
    """
    market_data = CoinGeckoClient(
        base_url=settings.market.base_url,
        api_key=settings.market.api_key.get_secret_value() or None,
        timeout=settings.market.timeout_seconds,
        history_days=settings.market.history_days,
        include_indicators=settings.market.include_indicators,
    )
    vault = vault or PaperVault(
        fee_rate=settings.trading.fee_rate,
        slippage=settings.trading.slippage,
    )
    return TradingService(
        market_data=market_data,
        vault=vault,
        engine=create_decision_engine(),
        min_execution_confidence=settings.engine.min_execution_confidence,
    )


async def process_agent(service: TradingService, agent: AgentProfile) -> None:
    """Run one decision cycle for an agent; service errors are logged, not raised."""
    logger = get_logger(__name__)

    with add_context(agent_id=agent.agent_id, personality=agent.personality.value):
        try:
            result = await service.smart_trade(
                symbol=agent.symbol,
                agent_id=agent.agent_id,
                user_address=agent.user_address,
                dna=agent.dna,
                personality=agent.personality,
            )
        except TradingServiceError as e:
            logger.warning("agent_cycle_failed", error_type=type(e).__name__, error=str(e))
            return

        logger.info(
            "agent_cycle_complete",
            action=result.decision.action,
            confidence=round(result.decision.confidence, 2),
            executed=result.trade.executed,
            tx_hash=result.trade.tx_hash,
            trade_error=result.trade.error,
        )


async def main_loop(
    service: TradingService, agents: list[AgentProfile], scheduler: AgentScheduler
) -> None:
    """
    Autonomous trading loop.

    Each agent is evaluated at most once per cooldown interval until shutdown.
    """
    logger = get_logger(__name__)
    logger.info(
        "main_loop_started",
        agents=len(agents),
        interval_seconds=scheduler.interval_seconds,
    )

    iteration = 0
    while not shutdown_event.is_set():
        try:
            iteration += 1
            for agent in agents:
                if shutdown_event.is_set():
                    break
                if not scheduler.is_due(agent.agent_id):
                    continue
                scheduler.mark_ran(agent.agent_id)
                await process_agent(service, agent)

            sleep_time = max(
                min((scheduler.seconds_until_due(a.agent_id) for a in agents), default=1.0),
                1.0,
            )
            logger.debug("loop_iteration_complete", iteration=iteration, sleep_seconds=sleep_time)

            # Wait for next iteration or shutdown
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=sleep_time)
            except TimeoutError:
                pass

        except asyncio.CancelledError:
            logger.info("main_loop_cancelled")
            break
        except Exception as e:
            logger.error("main_loop_error", error=str(e), exc_info=True)
            await asyncio.sleep(5)

    logger.info("main_loop_stopped", total_iterations=iteration)


async def run_agents(settings: Settings, agents_file: str | None) -> int:
    """
    Async entry point of the ``run`` command.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    logger = get_logger(__name__)
    path = agents_file or settings.trading.agents_file
    if not path:
        logger.error("agents_file_missing", hint="pass --agents or set TRADING_AGENTS_FILE")
        return 2

    try:
        agents = load_agents(path)
    except (OSError, ValueError) as e:
        logger.error("agents_load_failed", path=path, error=str(e))
        return 2

    setup_signal_handlers()

    service = build_service(settings)
    if settings.trading.paper_initial_usdc > 0:
        for agent in agents:
            await service.deposit(
                agent.user_address, agent.agent_id, settings.trading.paper_initial_usdc
            )

    scheduler = AgentScheduler(settings.trading.loop_interval_seconds)
    try:
        await main_loop(service, agents, scheduler)
        return 0
    except Exception as e:
        logger.critical("fatal_error", error=str(e), exc_info=True)
        return 1
    finally:
        await service.market_data.close()
        logger.info("clawtrader_stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clawtrader", description="ClawTrader agent runtime")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the autonomous agent loop")
    run_parser.add_argument("--agents", help="Agents JSON file (overrides TRADING_AGENTS_FILE)")

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", help="Bind host (overrides API_HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (overrides API_PORT)")

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """
    Main entry point.

    This function is called when running via the CLI.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info("clawtrader_starting", version=APP_VERSION, command=args.command)

    if args.command == "serve":
        app = create_app(build_service(settings))
        uvicorn.run(
            app,
            host=args.host or settings.api.host,
            port=args.port or settings.api.port,
            log_level=settings.logging.level.lower(),
        )
        sys.exit(0)

    exit_code = asyncio.run(run_agents(settings, args.agents))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
