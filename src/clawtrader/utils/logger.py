"""
Structured logging for ClawTrader.

Console and optional file output through structlog, with JSON or pretty
rendering, agent context binding and masking of wallet secrets.

Example Usage:
    ```python
    from clawtrader.utils.logger import LogConfig, add_context, get_logger, setup_logging

    setup_logging(LogConfig(level="INFO", format="pretty"))
    logger = get_logger(__name__)

    logger.info("decision_made", symbol="bitcoin", action="BUY", confidence=72.5)

    with add_context(agent_id="8f0c...", user_address="0xabc..."):
        logger.info("trade_executed", tx_hash="0x123")
    ```
"""

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from pathlib import Path
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "apikey",
        "password",
        "secret",
        "token",
        "private_key",
        "privatekey",
        "mnemonic",
        "seed_phrase",
    }
)


@dataclass
class LogConfig:
    """Configuration for the logging system.

    Attributes:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format - "json" for production, "pretty" for development
        file_path: Optional path to a JSON log file
        include_timestamp: Whether to include ISO timestamps
        console_output: Whether to log to stdout
        max_string_length: Strings longer than this are truncated
        environment: Environment name (dev, staging, prod)
    """

    level: str = "INFO"
    format: Literal["json", "pretty"] = "pretty"
    file_path: str | None = None
    include_timestamp: bool = True
    console_output: bool = True
    max_string_length: int = 1000
    environment: str = "dev"


def add_app_info(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every entry with the application name and environment."""
    event_dict["app"] = "clawtrader"
    event_dict["environment"] = getattr(add_app_info, "environment", "unknown")
    return event_dict


def filter_sensitive(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask API keys and wallet secrets, including inside nested structures."""

    def mask_value(value: Any) -> Any:
        if isinstance(value, str) and len(value) > 4:
            return f"{value[:2]}***{value[-2:]}"
        return "***"

    def recursive_mask(data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: mask_value(value) if str(key).lower() in SENSITIVE_KEYS else recursive_mask(value)
                for key, value in data.items()
            }
        if isinstance(data, (list, tuple)):
            return type(data)(recursive_mask(item) for item in data)
        return data

    return recursive_mask(event_dict)  # type: ignore[return-value]


def truncate_strings(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Truncate long string values (reasoning text can get long)."""
    max_length = getattr(truncate_strings, "max_length", 1000)

    def truncate_value(value: Any) -> Any:
        if isinstance(value, str) and len(value) > max_length:
            return f"{value[:max_length]}... [truncated]"
        if isinstance(value, dict):
            return {k: truncate_value(v) for k, v in value.items()}
        return value

    return {key: truncate_value(value) for key, value in event_dict.items()}


def _shared_processors(config: LogConfig) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_app_info,
        filter_sensitive,
        truncate_strings,
    ]
    if config.include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors.append(structlog.processors.StackInfoRenderer())
    processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(config: LogConfig) -> None:
    """Setup structlog and the standard library root logger.

    Events are rendered by ``ProcessorFormatter`` on each handler, so the
    console can be pretty while the optional file is always JSON. Calling
    this again replaces the handlers installed by the previous call.

    Args:
        config: LogConfig instance with logging configuration
    """
    add_app_info.environment = config.environment
    truncate_strings.max_length = config.max_string_length
    level = getattr(logging, config.level.upper())
    shared = _shared_processors(config)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        if getattr(handler, "_clawtrader", False):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)

    console_renderer: Processor
    if config.format == "json":
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)

    handlers: list[logging.Handler] = []
    if config.console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_formatter(console_renderer, shared))
        handlers.append(console_handler)

    if config.file_path:
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        # File output is always JSON regardless of console format
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer(), shared))
        handlers.append(file_handler)

    for handler in handlers:
        handler._clawtrader = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _formatter(renderer: Processor, shared: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=shared,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance for the given name.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Configured structlog BoundLogger instance
    """
    return structlog.get_logger(name)


@contextmanager
def add_context(**kwargs: Any):
    """Bind key-value pairs to every log entry made inside the block.

    Context is stored in contextvars, so concurrently evaluated agents
    (separate asyncio tasks) never see each other's fields.

    Example:
        ```python
        with add_context(agent_id="abc", symbol="bitcoin"):
            logger.info("decision_made")  # includes agent_id and symbol
        ```
    """
    tokens = structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def set_log_level(level: str) -> None:
    """Change the root logging level at runtime."""
    logging.getLogger().setLevel(getattr(logging, level.upper()))


def clear_context() -> None:
    """Drop all bound context variables."""
    structlog.contextvars.clear_contextvars()
