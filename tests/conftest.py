"""
Shared pytest fixtures for the ClawTrader test suite.

This module provides fixtures for:
- Agent DNA presets
- Market snapshots (full indicators and basic price-only data)
- Position states
- Deterministic random sources
- Paper vault and mocked market data provider
- Test settings overrides
"""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from clawtrader.analysis.dna import AgentDNA
from clawtrader.config import Settings
from clawtrader.data.market import MACDValues, MarketSnapshot, MovingAverages
from clawtrader.trading.decision_engine import DecisionEngine
from clawtrader.trading.executor import PaperVault
from clawtrader.trading.positions import PositionState

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# ============================================================================
# Random Sources
# ============================================================================


class FixedRandom:
    """Random source returning scripted values."""

    def __init__(self, value: float = 0.99, uniform_value: float = 0.0):
        self.value = value
        self.uniform_value = uniform_value
        self.random_calls = 0
        self.uniform_calls = 0

    def random(self) -> float:
        self.random_calls += 1
        return self.value

    def uniform(self, a: float, b: float) -> float:
        self.uniform_calls += 1
        return self.uniform_value


@pytest.fixture
def seeded_rng() -> random.Random:
    """Seeded standard random source."""
    return random.Random(42)


@pytest.fixture
def never_random() -> FixedRandom:
    """Random source that never triggers a probabilistic branch."""
    return FixedRandom(value=0.99, uniform_value=0.0)


@pytest.fixture
def always_random() -> FixedRandom:
    """Random source that always triggers a probabilistic branch."""
    return FixedRandom(value=0.0, uniform_value=0.15)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Override settings for testing environment."""
    from clawtrader.config.settings import (
        EngineSettings,
        LoggingSettings,
        MarketDataSettings,
        TradingSettings,
    )

    return Settings(
        engine=EngineSettings(
            deceptive_flip_probability=0.0,
            activity_bias_probability=0.0,
            min_execution_confidence=55.0,
        ),
        market=MarketDataSettings(base_url="https://example.test/api/v3", history_days=30),
        trading=TradingSettings(loop_interval_seconds=1.0, paper_initial_usdc=1000.0),
        logging=LoggingSettings(level="DEBUG", format="json"),
    )


# ============================================================================
# DNA Fixtures
# ============================================================================


@pytest.fixture
def neutral_dna() -> AgentDNA:
    return AgentDNA()


@pytest.fixture
def trend_follower_dna() -> AgentDNA:
    """Pattern-driven, low contrarian bias, quick to act."""
    return AgentDNA(
        risk_tolerance=50,
        aggression=70,
        pattern_recognition=80,
        timing_sensitivity=20,
        contrarian_bias=20,
    )


@pytest.fixture
def contrarian_dna() -> AgentDNA:
    return AgentDNA(
        risk_tolerance=50,
        aggression=50,
        pattern_recognition=80,
        timing_sensitivity=20,
        contrarian_bias=90,
    )


# ============================================================================
# Market Data Fixtures
# ============================================================================


@pytest.fixture
def oversold_market() -> MarketSnapshot:
    """Price-only snapshot after a sharp daily drop, near the daily low."""
    return MarketSnapshot(
        symbol="bitcoin",
        current_price=95.0,
        price_change_24h=-3.0,
        high_24h=105.0,
        low_24h=94.0,
        rsi=25.0,
    )


@pytest.fixture
def overbought_market() -> MarketSnapshot:
    """Price-only snapshot after a strong rally, near the daily high."""
    return MarketSnapshot(
        symbol="bitcoin",
        current_price=108.0,
        price_change_24h=8.0,
        high_24h=110.0,
        low_24h=98.0,
        rsi=80.0,
    )


@pytest.fixture
def bullish_full_market() -> MarketSnapshot:
    """Snapshot with full indicators pointing up."""
    return MarketSnapshot(
        symbol="ethereum",
        current_price=3000.0,
        price_change_24h=5.0,
        high_24h=3100.0,
        low_24h=2800.0,
        volume_24h=1_000_000.0,
        rsi=20.0,
        macd=MACDValues(value=10.0, signal=5.0, histogram=5.0),
        moving_averages=MovingAverages(ma20=2900.0, ma50=2800.0, ma200=2500.0),
    )


@pytest.fixture
def bearish_full_market() -> MarketSnapshot:
    """Snapshot with full indicators pointing down."""
    return MarketSnapshot(
        symbol="ethereum",
        current_price=2500.0,
        price_change_24h=-6.0,
        high_24h=2700.0,
        low_24h=2480.0,
        rsi=80.0,
        macd=MACDValues(value=10.0, signal=15.0, histogram=-5.0),
        moving_averages=MovingAverages(ma20=2600.0, ma50=2700.0, ma200=2900.0),
    )


# ============================================================================
# Position Fixtures
# ============================================================================


@pytest.fixture
def flat_position() -> PositionState:
    return PositionState.flat(1000.0)


@pytest.fixture
def holding_position() -> PositionState:
    return PositionState.from_holdings(token_amount=2.0, usdc_balance=500.0, price=100.0)


# ============================================================================
# Engine / Vault Fixtures
# ============================================================================


@pytest.fixture
def engine() -> DecisionEngine:
    """Decision engine with all probabilistic behaviour disabled."""
    return DecisionEngine(deceptive_flip_probability=0.0, activity_bias_probability=0.0)


@pytest.fixture
def paper_vault() -> PaperVault:
    return PaperVault(fee_rate=0.003, slippage=0.0005)


@pytest.fixture
def mock_market_data(bullish_full_market) -> MagicMock:
    """Market data provider returning the bullish snapshot."""
    provider = MagicMock()
    provider.fetch_snapshot = AsyncMock(return_value=bullish_full_market)
    provider.close = AsyncMock()
    return provider
