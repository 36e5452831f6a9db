"""
Configuration settings for ClawTrader.

Uses pydantic-settings for environment variable management with nested models
for different configuration domains.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_ACTIVITY_BIAS_PROBABILITY,
    DEFAULT_DECEPTIVE_FLIP_PROBABILITY,
    DEFAULT_LOOP_INTERVAL_SECONDS,
    DEFAULT_MIN_EXECUTION_CONFIDENCE,
)


class EngineSettings(BaseSettings):
    """Decision engine tuning knobs."""

    deceptive_flip_probability: float = Field(
        default=DEFAULT_DECEPTIVE_FLIP_PROBABILITY,
        description="Probability that a deceptive agent acts against its own signal",
    )
    activity_bias_probability: float = Field(
        default=DEFAULT_ACTIVITY_BIAS_PROBABILITY,
        description="Probability of a minor trade in a neutral basic-mode market",
    )
    min_execution_confidence: float = Field(
        default=DEFAULT_MIN_EXECUTION_CONFIDENCE,
        description="Minimum decision confidence before a trade is executed",
    )

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("deceptive_flip_probability", "activity_bias_probability")
    @classmethod
    def validate_probability(cls, value: float) -> float:
        """Probabilities must lie in [0, 1]."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Probability must be between 0 and 1, got {value}")
        return value


class MarketDataSettings(BaseSettings):
    """Market data provider configuration settings."""

    base_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API base URL"
    )
    api_key: SecretStr = Field(default=SecretStr(""), description="Optional CoinGecko API key")
    timeout_seconds: float = Field(default=10.0, description="HTTP request timeout")
    history_days: int = Field(
        default=365, description="Days of daily closes fetched for indicators"
    )
    include_indicators: bool = Field(
        default=True, description="Compute RSI/MACD/moving averages from price history"
    )

    model_config = SettingsConfigDict(
        env_prefix="MARKET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class TradingSettings(BaseSettings):
    """Trading loop and paper vault configuration settings."""

    loop_interval_seconds: float = Field(
        default=DEFAULT_LOOP_INTERVAL_SECONDS,
        description="Cooldown between autonomous decisions for one agent",
    )
    agents_file: Optional[str] = Field(
        default=None, description="JSON file listing agents for the autonomous loop"
    )
    paper_initial_usdc: float = Field(
        default=1000.0, description="USDC credited to agents listed in the agents file"
    )
    fee_rate: float = Field(default=0.003, description="Paper vault swap fee rate")
    slippage: float = Field(default=0.0005, description="Paper vault price slippage")

    model_config = SettingsConfigDict(
        env_prefix="TRADING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ApiSettings(BaseSettings):
    """HTTP API configuration settings."""

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=3001, description="Bind port")

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="pretty", description="Log format: pretty or json")
    file_path: Optional[str] = Field(
        default=None, description="Optional log file path"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Settings(BaseSettings):
    """
    Main settings class combining all configuration domains.

    Loads configuration from environment variables and .env file.
    Uses nested models for organized configuration management.
    """

    engine: EngineSettings = Field(default_factory=EngineSettings)
    market: MarketDataSettings = Field(default_factory=MarketDataSettings)
    trading: TradingSettings = Field(default_factory=TradingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance (singleton pattern).

    Returns:
        Singleton Settings instance
    """
    return Settings()
