"""WithdrawalQueue — 출금 우선순위 큐.

고정 길이 슬롯 리스트로, 활성 전략 id가 왼쪽부터 빈틈없이 채워지고
나머지 슬롯은 None(빈 슬롯)입니다. 중복은 허용되지 않습니다.

활성 여부 검증은 StrategyRegistry가 담당하며, 이 클래스는
순서·용량·중복 불변식만 관리합니다.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.core.exceptions import InvalidStrategy
from src.vault.constants import MAXIMUM_STRATEGIES

if TYPE_CHECKING:
    from collections.abc import Iterator


class WithdrawalQueue:
    """Bounded, left-packed ordered list of strategy ids.

    Args:
        max_length: 슬롯 수 (큐 최대 길이)
    """

    def __init__(self, max_length: int = MAXIMUM_STRATEGIES) -> None:
        if max_length < 1:
            msg = f"max_length must be positive, got {max_length}"
            raise ValueError(msg)
        self._slots: list[str | None] = [None] * max_length

    # ── Properties ─────────────────────────────────────────────────

    @property
    def max_length(self) -> int:
        """최대 길이."""
        return len(self._slots)

    @property
    def is_full(self) -> bool:
        """빈 슬롯이 없으면 True."""
        return self._slots[-1] is not None

    def __len__(self) -> int:
        for index, slot in enumerate(self._slots):
            if slot is None:
                return index
        return len(self._slots)

    def __iter__(self) -> Iterator[str]:
        for slot in self._slots:
            if slot is None:
                return
            yield slot

    def __contains__(self, strategy_id: object) -> bool:
        return strategy_id is not None and strategy_id in self._slots

    def __getitem__(self, index: int) -> str | None:
        """index 위치의 전략 id (빈 슬롯·범위 밖이면 None)."""
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WithdrawalQueue):
            return NotImplemented
        return self._slots == other._slots

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"WithdrawalQueue({self.to_list()!r}, max_length={self.max_length})"

    def to_list(self) -> list[str]:
        """채워진 슬롯만 순서대로 반환."""
        return list(self)

    def slots(self) -> tuple[str | None, ...]:
        """빈 슬롯을 포함한 전체 슬롯."""
        return tuple(self._slots)

    # ── Mutations ──────────────────────────────────────────────────

    def append(self, strategy_id: str) -> int:
        """첫 빈 슬롯에 추가하고 위치를 반환.

        Raises:
            InvalidStrategy: 이미 큐에 있거나 큐가 가득 찬 경우
        """
        if strategy_id in self:
            msg = "Strategy already in withdrawal queue"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})
        if self.is_full:
            msg = "Withdrawal queue is full"
            raise InvalidStrategy(
                msg, context={"strategy": strategy_id, "max_length": self.max_length}
            )
        index = len(self)
        self._slots[index] = strategy_id
        return index

    def remove(self, strategy_id: str) -> int:
        """제거 후 뒤의 항목을 한 칸씩 당기고, 제거된 위치를 반환.

        Raises:
            InvalidStrategy: 큐에 없는 경우
        """
        if strategy_id not in self:
            msg = "Strategy not in withdrawal queue"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})
        index = self._slots.index(strategy_id)
        del self._slots[index]
        self._slots.append(None)
        return index

    def insert_at(self, strategy_id: str, index: int) -> int:
        """index 위치에 삽입 (기존 위치가 있으면 먼저 제거).

        index는 [0, 현재 길이]로 clamp 됩니다. 반복 삽입 시
        마지막 삽입이 순서를 결정하며 중복은 생기지 않습니다.

        Returns:
            실제 삽입된 위치

        Raises:
            InvalidStrategy: 새 전략인데 큐가 가득 찬 경우
        """
        if strategy_id in self:
            self.remove(strategy_id)
        elif self.is_full:
            msg = "Withdrawal queue is full"
            raise InvalidStrategy(
                msg, context={"strategy": strategy_id, "max_length": self.max_length}
            )
        position = max(0, min(index, len(self)))
        self._slots.insert(position, strategy_id)
        self._slots.pop()
        return position
