"""Context binding utilities for structured logging.

This module provides context propagation using contextvars. It ensures
that the vault address, strategy id, operation name and trace_id are
attached to all log records emitted while a vault operation runs.

Rules Applied:
    - #15 Logging Standards: Context binding with logger.bind()
    - #10 Python Standards: contextvars for scoped state
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

# =============================================================================
# Context Variables
# =============================================================================

current_vault: ContextVar[str | None] = ContextVar("vault", default=None)
current_strategy: ContextVar[str | None] = ContextVar("strategy", default=None)
current_operation: ContextVar[str | None] = ContextVar("operation", default=None)
current_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)


# =============================================================================
# Logger Factory Functions
# =============================================================================


def get_vault_logger(
    *,
    vault: str | None = None,
    strategy: str | None = None,
    operation: str | None = None,
    trace_id: str | None = None,
    **extra: str,
) -> Logger:
    """Get a logger with vault context bound.

    Creates a new logger instance with the provided context values bound.
    These values will be included in all log records from this logger,
    enabling structured logging and log correlation.

    Args:
        vault: Vault address (e.g., "vault-usdc")
        strategy: Strategy id (e.g., "strat-lending")
        operation: Vault operation name (e.g., "report", "withdraw")
        trace_id: Correlation id for one operation
        **extra: Additional context key-value pairs

    Returns:
        Logger instance with context bound

    Example:
        >>> log = get_vault_logger(vault="vault-usdc", operation="deposit")
        >>> log.info("Deposit accepted")
    """
    ctx: dict[str, str] = {}

    if vault:
        ctx["vault"] = vault
        current_vault.set(vault)
    if strategy:
        ctx["strategy"] = strategy
        current_strategy.set(strategy)
    if operation:
        ctx["operation"] = operation
        current_operation.set(operation)
    if trace_id:
        ctx["trace_id"] = trace_id
        current_trace_id.set(trace_id)

    ctx.update(extra)

    return logger.bind(**ctx)


def get_strategy_logger(strategy: str, vault: str | None = None) -> Logger:
    """Get a logger for strategy-level logging.

    Args:
        strategy: Strategy id
        vault: Vault address (optional)

    Returns:
        Logger bound with strategy context
    """
    return get_vault_logger(strategy=strategy, vault=vault)


# =============================================================================
# Utility Functions
# =============================================================================


def generate_trace_id() -> str:
    """Generate a unique trace ID for operation correlation.

    Returns:
        32-character hex string
    """
    return uuid.uuid4().hex


def get_current_context() -> dict[str, str | None]:
    """Get all current context values.

    Returns:
        Dictionary of current context values
    """
    return {
        "vault": current_vault.get(),
        "strategy": current_strategy.get(),
        "operation": current_operation.get(),
        "trace_id": current_trace_id.get(),
    }


def clear_context() -> None:
    """Clear all context variables."""
    current_vault.set(None)
    current_strategy.set(None)
    current_operation.set(None)
    current_trace_id.set(None)


# =============================================================================
# Context Manager for Scoped Logging
# =============================================================================


class LoggingContext:
    """Context manager for scoped logging context.

    Automatically sets and resets context variables within a scope.

    Example:
        >>> with LoggingContext(vault="vault-usdc", operation="report"):
        ...     logger.info("Processing report")
    """

    def __init__(
        self,
        vault: str | None = None,
        strategy: str | None = None,
        operation: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        self._values = {
            "vault": vault,
            "strategy": strategy,
            "operation": operation,
            "trace_id": trace_id,
        }
        self._tokens: dict[str, object] = {}

    def __enter__(self) -> LoggingContext:
        """Enter context and set variables."""
        context_vars = _context_vars()
        for key, value in self._values.items():
            if value:
                self._tokens[key] = context_vars[key].set(value)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit context and reset variables."""
        context_vars = _context_vars()
        for key, token in self._tokens.items():
            context_vars[key].reset(token)  # type: ignore[arg-type]
        self._tokens.clear()


def _context_vars() -> dict[str, ContextVar[str | None]]:
    return {
        "vault": current_vault,
        "strategy": current_strategy,
        "operation": current_operation,
        "trace_id": current_trace_id,
    }
