"""StrategyRegistry — 전략 파라미터와 debt ratio 회계.

전략 추가/수정/철회, 출금 큐 관리, 그리고 report와 출금에서 공유하는
debt_outstanding / credit_available / realize_loss 계산을 담당합니다.

Invariants:
    - Σ 활성 전략 debt_ratio == state.debt_ratio ≤ MAX_BPS
    - Σ 전략 total_debt == state.total_debt
    - min_debt_per_harvest ≤ max_debt_per_harvest

Rules Applied:
    - #10 Python Standards: int-only arithmetic
    - #23 Exception Handling: Domain exceptions with context
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.core.exceptions import InvalidParameter, InvalidStrategy, RatioExceeded
from src.vault.constants import MAX_BPS
from src.vault.models import StrategyParams

if TYPE_CHECKING:
    from src.vault.models import VaultState


def _check_non_negative(name: str, value: int) -> None:
    if value < 0:
        msg = f"{name} must not be negative"
        raise InvalidParameter(msg, context={name: value})


def _check_bps(name: str, value: int) -> None:
    _check_non_negative(name, value)
    if value > MAX_BPS:
        msg = f"{name} must not exceed {MAX_BPS} bps"
        raise InvalidParameter(msg, context={name: value})


class StrategyRegistry:
    """전략 레지스트리 연산 (상태는 VaultState에 보관)."""

    # ── Lookup ─────────────────────────────────────────────────────

    def get(self, state: VaultState, strategy_id: str) -> StrategyParams:
        """등록된 전략 파라미터 (철회된 전략 포함).

        Raises:
            InvalidStrategy: 한 번도 등록되지 않은 전략
        """
        params = state.strategies.get(strategy_id)
        if params is None:
            msg = "Unknown strategy"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})
        return params

    def get_active(self, state: VaultState, strategy_id: str) -> StrategyParams:
        """활성 전략 파라미터.

        Raises:
            InvalidStrategy: 미등록 또는 비활성 전략
        """
        params = self.get(state, strategy_id)
        if not params.is_active:
            msg = "Strategy is not active"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})
        return params

    # ── Registration ───────────────────────────────────────────────

    def add(
        self,
        state: VaultState,
        strategy_id: str,
        strategy_vault: str,
        *,
        debt_ratio: int,
        min_debt_per_harvest: int,
        max_debt_per_harvest: int,
        performance_fee_bps: int,
        now: int,
    ) -> StrategyParams:
        """전략 등록 (철회된 전략은 누적 값을 유지한 채 재활성화).

        Raises:
            InvalidParameter: 음수 값 또는 bps 범위 초과
            InvalidStrategy: 다른 볼트 소속, 이미 활성, min > max, 큐 가득 참
            RatioExceeded: debt ratio 합계 초과
        """
        _check_bps("debt_ratio", debt_ratio)
        _check_bps("performance_fee_bps", performance_fee_bps)
        _check_non_negative("min_debt_per_harvest", min_debt_per_harvest)
        _check_non_negative("max_debt_per_harvest", max_debt_per_harvest)

        if not strategy_id or strategy_id == state.address:
            msg = "Invalid strategy id"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})
        if strategy_vault != state.address:
            msg = "Strategy belongs to another vault"
            raise InvalidStrategy(
                msg,
                context={
                    "strategy": strategy_id,
                    "strategy_vault": strategy_vault,
                    "vault": state.address,
                },
            )
        existing = state.strategies.get(strategy_id)
        if existing is not None and existing.is_active:
            msg = "Strategy already active"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})
        if min_debt_per_harvest > max_debt_per_harvest:
            msg = "min_debt_per_harvest exceeds max_debt_per_harvest"
            raise InvalidStrategy(
                msg,
                context={
                    "strategy": strategy_id,
                    "min": min_debt_per_harvest,
                    "max": max_debt_per_harvest,
                },
            )
        queue = state.withdrawal_queue
        if strategy_id not in queue and queue.is_full:
            msg = "Withdrawal queue is full"
            raise InvalidStrategy(
                msg, context={"strategy": strategy_id, "max_length": queue.max_length}
            )
        self._check_ratio_sum(state, strategy_id, state.debt_ratio + debt_ratio)

        params = existing or StrategyParams(strategy_id=strategy_id)
        params.performance_fee_bps = performance_fee_bps
        params.activation = now
        params.debt_ratio = debt_ratio
        params.min_debt_per_harvest = min_debt_per_harvest
        params.max_debt_per_harvest = max_debt_per_harvest
        params.last_report = now
        state.strategies[strategy_id] = params
        state.debt_ratio += debt_ratio

        if strategy_id not in queue:
            queue.append(strategy_id)
        return params

    def update_debt_ratio(
        self, state: VaultState, strategy_id: str, debt_ratio: int
    ) -> None:
        _check_bps("debt_ratio", debt_ratio)
        params = self.get_active(state, strategy_id)
        new_total = state.debt_ratio - params.debt_ratio + debt_ratio
        self._check_ratio_sum(state, strategy_id, new_total)
        state.debt_ratio = new_total
        params.debt_ratio = debt_ratio

    def update_min_debt_per_harvest(
        self, state: VaultState, strategy_id: str, amount: int
    ) -> None:
        _check_non_negative("min_debt_per_harvest", amount)
        params = self.get_active(state, strategy_id)
        self._check_harvest_bounds(strategy_id, amount, params.max_debt_per_harvest)
        params.min_debt_per_harvest = amount

    def update_max_debt_per_harvest(
        self, state: VaultState, strategy_id: str, amount: int
    ) -> None:
        _check_non_negative("max_debt_per_harvest", amount)
        params = self.get_active(state, strategy_id)
        self._check_harvest_bounds(strategy_id, params.min_debt_per_harvest, amount)
        params.max_debt_per_harvest = amount

    def update_performance_fee(
        self, state: VaultState, strategy_id: str, fee_bps: int
    ) -> None:
        _check_bps("performance_fee_bps", fee_bps)
        self.get_active(state, strategy_id).performance_fee_bps = fee_bps

    def revoke(self, state: VaultState, strategy_id: str) -> None:
        """전략 비활성화 (큐 슬롯과 누적 값은 유지).

        Raises:
            InvalidStrategy: 비활성 전략이거나 debt_ratio가 0이 아닌 경우
        """
        params = self.get_active(state, strategy_id)
        if params.debt_ratio != 0:
            msg = "Strategy debt ratio must be zero before revocation"
            raise InvalidStrategy(
                msg, context={"strategy": strategy_id, "debt_ratio": params.debt_ratio}
            )
        params.activation = 0
        params.debt_ratio = 0

    def _check_ratio_sum(self, state: VaultState, strategy_id: str, total: int) -> None:
        if total > MAX_BPS:
            msg = f"Debt ratio sum exceeds {MAX_BPS} bps"
            raise RatioExceeded(
                msg,
                context={
                    "strategy": strategy_id,
                    "current": state.debt_ratio,
                    "requested_total": total,
                },
            )

    @staticmethod
    def _check_harvest_bounds(strategy_id: str, minimum: int, maximum: int) -> None:
        if minimum > maximum:
            msg = "min_debt_per_harvest exceeds max_debt_per_harvest"
            raise RatioExceeded(
                msg, context={"strategy": strategy_id, "min": minimum, "max": maximum}
            )

    # ── Withdrawal Queue ───────────────────────────────────────────

    def add_to_queue(self, state: VaultState, strategy_id: str) -> int:
        self.get_active(state, strategy_id)
        return state.withdrawal_queue.append(strategy_id)

    def remove_from_queue(self, state: VaultState, strategy_id: str) -> int:
        return state.withdrawal_queue.remove(strategy_id)

    def insert_in_queue(self, state: VaultState, strategy_id: str, index: int) -> int:
        _check_non_negative("index", index)
        self.get_active(state, strategy_id)
        return state.withdrawal_queue.insert_at(strategy_id, index)

    # ── Debt Accounting ────────────────────────────────────────────

    def debt_outstanding(self, state: VaultState, strategy_id: str) -> int:
        """전략이 목표 대비 초과 보유 중인 부채 (상환 대상)."""
        params = self.get(state, strategy_id)
        if state.emergency_shutdown or state.debt_ratio == 0 or params.debt_ratio == 0:
            return params.total_debt
        target = state.gross_assets * params.debt_ratio // MAX_BPS
        return max(0, params.total_debt - target)

    def credit_available(self, state: VaultState, strategy_id: str) -> int:
        """다음 report에서 전략에 추가 배치할 수 있는 자산."""
        params = self.get(state, strategy_id)
        if state.emergency_shutdown:
            return 0

        gross = state.gross_assets
        vault_debt_limit = gross * state.debt_ratio // MAX_BPS
        strategy_debt_limit = gross * params.debt_ratio // MAX_BPS
        if (
            strategy_debt_limit <= params.total_debt
            or vault_debt_limit <= state.total_debt
        ):
            return 0

        available = min(
            strategy_debt_limit - params.total_debt,
            vault_debt_limit - state.total_debt,
            state.idle_assets,
            params.max_debt_per_harvest,
        )
        if available < params.min_debt_per_harvest:
            return 0
        return available

    def realize_loss(self, state: VaultState, strategy_id: str, loss: int) -> int:
        """손실 반영: debt 감소와 debt_ratio 비례 축소.

        Returns:
            축소된 debt_ratio (bps)

        Raises:
            InvalidStrategy: loss가 전략 부채보다 큰 경우
        """
        if loss == 0:
            return 0
        params = self.get(state, strategy_id)
        if loss > params.total_debt:
            msg = "Reported loss exceeds strategy debt"
            raise InvalidStrategy(
                msg,
                context={
                    "strategy": strategy_id,
                    "loss": loss,
                    "total_debt": params.total_debt,
                },
            )
        new_ratio = params.debt_ratio * (params.total_debt - loss) // params.total_debt
        ratio_change = params.debt_ratio - new_ratio
        params.debt_ratio = new_ratio
        state.debt_ratio -= ratio_change

        params.total_loss += loss
        params.total_debt -= loss
        state.total_debt -= loss
        return ratio_change
