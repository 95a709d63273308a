"""Injectable time sources (unix seconds)."""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """현재 시각(초)을 제공하는 시간 소스."""

    def now(self) -> int: ...


class SystemClock:
    """벽시계 기반 시간 소스."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """수동으로 진행시키는 시간 소스 (시뮬레이션, 테스트용).

    Args:
        start: 시작 시각 (unix seconds)

    Example:
        >>> clock = ManualClock(start=1_700_000_000)
        >>> clock.advance(3600)
        1700003600
    """

    def __init__(self, start: int = 1_700_000_000) -> None:
        if start <= 0:
            msg = f"start must be positive, got {start}"
            raise ValueError(msg)
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """seconds만큼 진행 후 현재 시각 반환."""
        if seconds < 0:
            msg = f"Cannot move clock backwards ({seconds}s)"
            raise ValueError(msg)
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        """절대 시각으로 이동 (과거로는 불가)."""
        if timestamp < self._now:
            msg = f"Cannot move clock backwards to {timestamp}"
            raise ValueError(msg)
        self._now = timestamp
