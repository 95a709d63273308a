"""Strategy contract.

볼트가 전략 어댑터에 기대하는 인터페이스를 정의합니다.
전략은 자체 수익 로직을 가지며, 볼트와는 report 호출과
출금 콜백(withdraw)으로만 상호작용합니다.

Rules Applied:
    - #10 Python Standards: Protocol (structural typing)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from src.vault.models import ReportResult


@runtime_checkable
class Strategy(Protocol):
    """볼트에 등록되는 전략 어댑터.

    Attributes:
        id: 전략 식별자 (report 호출자 식별에도 사용)
        vault: 전략이 소속된 볼트 주소
    """

    @property
    def id(self) -> str: ...

    @property
    def vault(self) -> str: ...

    def harvest(self) -> ReportResult:
        """수익/손실을 집계해 볼트에 report하고 지시대로 정산."""
        ...

    def withdraw(self, amount_needed: int) -> tuple[int, int]:
        """볼트 출금 콜백.

        Args:
            amount_needed: 요청 자산 (전략 부채 이하)

        Returns:
            (withdrawn, loss): 반환한 자산과 청산 중 실현된 손실.
            withdrawn + loss는 amount_needed를 넘을 수 없습니다.
        """
        ...


@runtime_checkable
class Transactional(Protocol):
    """볼트 연산 실패 시 함께 되돌릴 수 있는 전략."""

    def snapshot(self) -> object: ...

    def restore(self, saved: object) -> None: ...
