"""Core module - Single Source of Truth for shared components."""

from src.core.exceptions import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    InvalidStrategy,
    LimitExceeded,
    RatioExceeded,
    ScenarioError,
    SlippageExceeded,
    Unauthorized,
    VaultError,
)

__all__ = [
    "InsufficientAllowance",
    "InsufficientBalance",
    "InvalidParameter",
    "InvalidStrategy",
    "LimitExceeded",
    "RatioExceeded",
    "ScenarioError",
    "SlippageExceeded",
    "Unauthorized",
    "VaultError",
]
