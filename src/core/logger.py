"""Loguru logging configuration.

This module provides a centralized logging setup following the project's
logging standards (Rules #15). All logging in the application should use
the configured loguru logger.

Features:
    - Dual sinks: Console (human-readable) + File (JSON serialized or text)
    - Loguru-managed rotation, retention and compression
    - Structured logging with context binding

Rules Applied:
    - #15 Logging Standards: Loguru, dual sinks
    - #23 Exception Handling: backtrace on, diagnose off in files
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from src.logging.config import LoggingConfig, get_logging_config
from src.logging.context import get_vault_logger

# Remove default handler to prevent duplicate logs
logger.remove()


# =============================================================================
# Console Format Templates
# =============================================================================

CONSOLE_FORMAT_DEFAULT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


# =============================================================================
# Setup Functions
# =============================================================================


def setup_logger_from_config(config: LoggingConfig | None = None) -> None:
    """Initialize logger from Pydantic config model.

    Args:
        config: LoggingConfig instance (loads from env if None)

    Example:
        >>> from src.core.logger import setup_logger_from_config
        >>> setup_logger_from_config()  # Loads from LOG_* env vars
    """
    if config is None:
        config = get_logging_config()

    _setup_logger_internal(config)


def setup_logger(
    log_dir: Path | str = Path("logs"),
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    *,
    enable_file: bool = True,
) -> None:
    """Initialize the logger with minimal configuration.

    Args:
        log_dir: Directory for log files (default: "logs")
        console_level: Console output level (default: "INFO")
        file_level: File output level (default: "DEBUG")
        enable_file: Write the rotating file sink

    Example:
        >>> from src.core.logger import setup_logger, logger
        >>> setup_logger(log_dir="logs", console_level="DEBUG")
        >>> logger.info("Vault simulation started")
    """
    config = LoggingConfig(
        log_dir=Path(log_dir),
        console_level=console_level,  # type: ignore[arg-type]
        file_level=file_level,  # type: ignore[arg-type]
        enable_file=enable_file,
    )
    _setup_logger_internal(config)


def _setup_logger_internal(config: LoggingConfig) -> None:
    """Internal logger setup using config object.

    Args:
        config: LoggingConfig instance with all settings
    """
    logger.remove()

    # 1. Console Handler (Human-readable)
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT_DEFAULT,
        level=config.console_level,
        colorize=True,
        backtrace=config.backtrace,
        diagnose=config.diagnose,
    )

    # 2. File Handler (rotating)
    if config.enable_file:
        log_path = Path(config.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        suffix = "json" if config.json_logs else "log"
        logger.add(
            log_path / f"vault_{{time:YYYY-MM-DD}}.{suffix}",
            format="{message}" if config.json_logs else CONSOLE_FORMAT_DEFAULT,
            level=config.file_level,
            serialize=config.json_logs,
            rotation=config.rotation,
            retention=config.retention,
            compression=config.compression,
            backtrace=config.backtrace,
            diagnose=False,
        )

    logger.debug(
        "Logger initialized",
        log_dir=str(config.log_dir),
        console_level=config.console_level,
        file_level=config.file_level,
        file_enabled=config.enable_file,
    )


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "get_vault_logger",
    "logger",
    "setup_logger",
    "setup_logger_from_config",
]
