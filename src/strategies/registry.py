"""Strategy adapter registry.

시나리오 YAML의 `kind` 값으로 전략 어댑터 클래스를 조회합니다.

Rules Applied:
    - #02 Clean Code: Dependency Inversion via Registry
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

# 어댑터 레지스트리 (모듈 레벨 싱글톤)
_ADAPTER_REGISTRY: dict[str, type[Any]] = {}


def register(name: str) -> Callable[[type[T]], type[T]]:
    """전략 어댑터 등록 데코레이터.

    Example:
        >>> @register("simulated")
        ... class SimulatedStrategy: ...
    """

    def decorator(cls: type[T]) -> type[T]:
        if name in _ADAPTER_REGISTRY:
            existing = _ADAPTER_REGISTRY[name].__name__
            msg = f"Strategy adapter '{name}' is already registered by {existing}"
            raise ValueError(msg)
        _ADAPTER_REGISTRY[name] = cls
        return cls

    return decorator


def get_strategy_class(name: str) -> type[Any]:
    """이름으로 어댑터 클래스 조회.

    Raises:
        KeyError: 등록되지 않은 이름
    """
    if name not in _ADAPTER_REGISTRY:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Strategy adapter '{name}' not found. Available: [{available}]"
        raise KeyError(msg)
    return _ADAPTER_REGISTRY[name]


def list_strategies() -> list[str]:
    """등록된 어댑터 이름 (알파벳 순)."""
    return sorted(_ADAPTER_REGISTRY)
