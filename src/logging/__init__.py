"""Logging service module for the vault engine.

This module provides the logging infrastructure with:
- Pydantic-backed sink configuration (LOG_* environment variables)
- Context binding utilities (vault / strategy / operation)

Rules Applied:
    - #15 Logging Standards: Loguru, dual sinks
"""

from src.logging.config import LoggingConfig, get_logging_config
from src.logging.context import (
    LoggingContext,
    clear_context,
    generate_trace_id,
    get_current_context,
    get_strategy_logger,
    get_vault_logger,
)

__all__ = [
    "LoggingConfig",
    "LoggingContext",
    "clear_context",
    "generate_trace_id",
    "get_current_context",
    "get_logging_config",
    "get_strategy_logger",
    "get_vault_logger",
]
