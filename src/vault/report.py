"""ReportEngine — harvest 정산.

전략의 report(gain, loss, debt_payment)를 받아 다음 순서로 처리합니다.

    0. 잠금 이익 해제분 정산
    1. 손실 반영 (debt/ratio 축소, 잠금 이익에서 우선 흡수)
    2. 수수료 부과 (gain > 0일 때, 손실 반영 후, 이익 반영 전 가격으로 share 발행)
    3. 순이익 누적
    4. 부채 재조정 (초과 부채 상환 또는 신규 credit 배치, 둘 중 하나)
    5. 순이익 잠금
    6. report 시각 갱신

Rules Applied:
    - #10 Python Standards: int-only arithmetic
    - #15 Logging Standards: context-bound loguru logger
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from src.core.exceptions import InvalidParameter
from src.vault.constants import MAX_BPS, SECS_PER_YEAR
from src.vault.models import FeeBreakdown, ReportResult

if TYPE_CHECKING:
    from src.vault.ledger import ShareLedger
    from src.vault.locked_profit import LockedProfitTracker
    from src.vault.models import StrategyParams, VaultState
    from src.vault.registry import StrategyRegistry


class ReportEngine:
    """전략 report 처리기.

    Args:
        ledger: 수수료 share 발행에 사용
        registry: 손실 반영, debt 계산에 사용
        locked_profit: 잠금 이익 정산/추가에 사용
    """

    def __init__(
        self,
        ledger: ShareLedger,
        registry: StrategyRegistry,
        locked_profit: LockedProfitTracker,
    ) -> None:
        self._ledger = ledger
        self._registry = registry
        self._locked_profit = locked_profit

    def report(
        self,
        state: VaultState,
        strategy_id: str,
        *,
        gain: int,
        loss: int,
        debt_payment: int,
        now: int,
    ) -> ReportResult:
        """report 1회 처리.

        Args:
            state: 볼트 상태 (호출 중 변경됨)
            strategy_id: 보고 전략 (호출자 검증은 Vault에서 수행)
            gain: 마지막 report 이후 이익
            loss: 마지막 report 이후 손실
            debt_payment: 전략이 상환 가능한 자산
            now: 현재 시각

        Returns:
            전략이 정산해야 할 credit / debt_payment 지시

        Raises:
            InvalidParameter: 음수 입력
            InvalidStrategy: 비활성 전략 또는 loss > 전략 부채
        """
        for name, value in (("gain", gain), ("loss", loss), ("debt_payment", debt_payment)):
            if value < 0:
                msg = f"{name} must not be negative"
                raise InvalidParameter(msg, context={"strategy": strategy_id, name: value})
        params = self._registry.get_active(state, strategy_id)

        # 0. 잠금 이익 해제분 정산
        self._locked_profit.settle(state, now)

        # 1. 손실 우선 반영
        if loss > 0:
            ratio_change = self._registry.realize_loss(state, strategy_id, loss)
            absorbed = self._locked_profit.absorb_loss(state, loss)
            logger.debug(
                "Loss realized: strategy={} loss={} ratio_change={} absorbed={}",
                strategy_id,
                loss,
                ratio_change,
                absorbed,
            )

        # 2. 수수료 (손실 반영 후, gain 반영 전 가격)
        fees = FeeBreakdown()
        fee_shares = strategist_shares = 0
        if gain > 0:
            fees = self.assess_fees(state, params, gain, now)
            supply = state.total_shares
            free = self._ledger.free_assets(state, now)
            fee_shares = self._fee_to_shares(fees.vault_total, supply, free)
            strategist_shares = self._fee_to_shares(fees.strategist, supply, free)
            self._ledger.issue(state, state.fee_recipient, fee_shares)
            self._ledger.issue(state, strategy_id, strategist_shares)

        # 3. 순이익 누적
        net_profit = gain - fees.total
        params.total_gain += net_profit

        # 4. 부채 재조정 (ratio 축소 반영 후)
        credit = paid = 0
        outstanding = self._registry.debt_outstanding(state, strategy_id)
        if outstanding > 0:
            paid = min(debt_payment, outstanding)
            params.total_debt -= paid
            state.total_debt -= paid
            state.idle_assets += paid
        else:
            credit = self._registry.credit_available(state, strategy_id)
            params.total_debt += credit
            state.total_debt += credit
            state.idle_assets -= credit
        state.idle_assets += gain

        # 5. 순이익 잠금
        locked = self._locked_profit.lock(state, net_profit)

        # 6. report 시각
        params.last_report = now
        state.last_report = now

        result = ReportResult(
            strategy_id=strategy_id,
            timestamp=now,
            gain=gain,
            loss=loss,
            debt_payment=paid,
            credit=credit,
            debt_outstanding=self._registry.debt_outstanding(state, strategy_id),
            fees=fees,
            fee_shares=fee_shares,
            strategist_shares=strategist_shares,
        )
        logger.info(
            "Report processed: strategy={} gain={} loss={} credit={} paid={} fees={} locked={}",
            strategy_id,
            gain,
            loss,
            credit,
            paid,
            fees.total,
            locked,
        )
        return result

    def assess_fees(
        self, state: VaultState, params: StrategyParams, gain: int, now: int
    ) -> FeeBreakdown:
        """gain에 대한 수수료 계산 (합계는 gain을 넘지 않음).

        전략 성과 수수료를 먼저 gain 한도로 떼고, 운용 + 볼트 성과
        수수료는 남은 gain 한도로 비례 축소합니다.
        """
        elapsed = max(0, now - params.last_report)
        management = (
            params.total_debt * elapsed * state.management_fee_bps // MAX_BPS // SECS_PER_YEAR
        )
        performance = gain * state.performance_fee_bps // MAX_BPS
        strategist = min(gain, gain * params.performance_fee_bps // MAX_BPS)

        remaining = gain - strategist
        vault_fee = management + performance
        if vault_fee > remaining:
            # 운용/성과 비율을 유지하며 남은 gain으로 축소
            management = management * remaining // vault_fee
            performance = remaining - management
        return FeeBreakdown(
            management=management,
            performance=performance,
            strategist=strategist,
        )

    @staticmethod
    def _fee_to_shares(fee: int, supply: int, free_assets: int) -> int:
        if fee <= 0:
            return 0
        if supply == 0 or free_assets == 0:
            return fee
        return fee * supply // free_assets
