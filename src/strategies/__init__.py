"""Strategy adapters for the vault engine.

Example:
    >>> from src.strategies import SimulatedStrategy, get_strategy_class
    >>> get_strategy_class("simulated") is SimulatedStrategy
    True
"""

from src.strategies.base import Strategy, Transactional
from src.strategies.registry import get_strategy_class, list_strategies, register
from src.strategies.simulated import SimulatedStrategy

__all__ = [
    "SimulatedStrategy",
    "Strategy",
    "Transactional",
    "get_strategy_class",
    "list_strategies",
    "register",
]
