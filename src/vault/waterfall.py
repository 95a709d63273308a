"""WithdrawalWaterfall — idle → 출금 큐 순서로 자산 회수.

출금 요청을 (assets, shares)로 확정한 뒤 share를 소각하고,
idle 자산으로 부족한 만큼을 큐 순서대로 전략에서 회수합니다.
전략 청산 손실과 미회수 부족분의 합이 호출자의 max_loss_bps 허용치를
넘으면 SlippageExceeded로 전체 연산이 취소됩니다.

Rules Applied:
    - #10 Python Standards: int-only arithmetic
    - #23 Exception Handling: Domain exceptions with context
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from src.core.exceptions import InvalidParameter, InvalidStrategy, SlippageExceeded
from src.vault.constants import MAX_BPS
from src.vault.models import WithdrawResult

if TYPE_CHECKING:
    from collections.abc import Mapping

    from src.strategies.base import Strategy
    from src.vault.ledger import ShareLedger
    from src.vault.models import VaultState
    from src.vault.registry import StrategyRegistry


class WithdrawalWaterfall:
    """출금 처리기.

    Args:
        ledger: share 환산/소각, allowance 차감
        registry: 전략 손실 반영
    """

    def __init__(self, ledger: ShareLedger, registry: StrategyRegistry) -> None:
        self._ledger = ledger
        self._registry = registry

    # ── Entry Points ───────────────────────────────────────────────

    def withdraw(
        self,
        state: VaultState,
        strategies: Mapping[str, Strategy],
        *,
        caller: str,
        assets: int,
        receiver: str,
        owner: str,
        max_loss_bps: int,
        now: int,
    ) -> WithdrawResult:
        """정확한 자산 수량 출금 (소각 share는 ceil)."""
        if assets <= 0:
            msg = "Withdraw amount must be positive"
            raise InvalidParameter(msg, context={"assets": assets})
        shares = self._ledger.shares_for_withdraw(state, assets, now)
        return self._execute(
            state,
            strategies,
            caller=caller,
            assets=assets,
            shares=shares,
            receiver=receiver,
            owner=owner,
            max_loss_bps=max_loss_bps,
        )

    def redeem(
        self,
        state: VaultState,
        strategies: Mapping[str, Strategy],
        *,
        caller: str,
        shares: int,
        receiver: str,
        owner: str,
        max_loss_bps: int,
        now: int,
    ) -> WithdrawResult:
        """정확한 share 수량 상환 (자산은 floor)."""
        if shares <= 0:
            msg = "Redeem amount must be positive"
            raise InvalidParameter(msg, context={"shares": shares})
        assets = self._ledger.convert_to_assets(state, shares, now)
        if assets == 0:
            msg = "Redeem would return zero assets"
            raise InvalidParameter(msg, context={"shares": shares})
        return self._execute(
            state,
            strategies,
            caller=caller,
            assets=assets,
            shares=shares,
            receiver=receiver,
            owner=owner,
            max_loss_bps=max_loss_bps,
        )

    # ── Waterfall ──────────────────────────────────────────────────

    def _execute(
        self,
        state: VaultState,
        strategies: Mapping[str, Strategy],
        *,
        caller: str,
        assets: int,
        shares: int,
        receiver: str,
        owner: str,
        max_loss_bps: int,
    ) -> WithdrawResult:
        if not 0 <= max_loss_bps <= MAX_BPS:
            msg = f"max_loss_bps must be within [0, {MAX_BPS}]"
            raise InvalidParameter(msg, context={"max_loss_bps": max_loss_bps})
        if not receiver:
            msg = "Receiver must not be empty"
            raise InvalidParameter(msg)

        self._ledger.spend_allowance(state, owner, caller, shares)
        self._ledger.burn(state, owner, shares)

        from_idle = min(assets, state.idle_assets)
        state.idle_assets -= from_idle
        needed = assets - from_idle

        total_loss = 0
        for strategy_id in list(state.withdrawal_queue):
            if needed <= 0:
                break
            params = self._registry.get(state, strategy_id)
            if params.total_debt == 0:
                continue
            requested = min(needed, params.total_debt)
            withdrawn, loss = self._pull(strategies, strategy_id, requested, params.total_debt)

            if loss > 0:
                self._registry.realize_loss(state, strategy_id, loss)
                total_loss += loss
            params.total_debt -= withdrawn
            state.total_debt -= withdrawn
            needed -= withdrawn + loss
            logger.debug(
                "Strategy liquidated: strategy={} requested={} withdrawn={} loss={}",
                strategy_id,
                requested,
                withdrawn,
                loss,
            )

        tolerance = assets * max_loss_bps // MAX_BPS
        if total_loss + needed > tolerance:
            msg = "Withdrawal loss exceeds max_loss_bps"
            raise SlippageExceeded(
                msg,
                loss=total_loss + needed,
                tolerance=tolerance,
                context={
                    "assets": assets,
                    "loss": total_loss,
                    "shortfall": needed,
                    "max_loss_bps": max_loss_bps,
                },
            )

        delivered = assets - total_loss - needed
        return WithdrawResult(
            owner=owner,
            receiver=receiver,
            assets=delivered,
            shares=shares,
            loss=total_loss,
            shortfall=needed,
        )

    @staticmethod
    def _pull(
        strategies: Mapping[str, Strategy],
        strategy_id: str,
        requested: int,
        total_debt: int,
    ) -> tuple[int, int]:
        strategy = strategies.get(strategy_id)
        if strategy is None:
            msg = "No strategy adapter registered"
            raise InvalidStrategy(msg, context={"strategy": strategy_id})

        withdrawn, loss = strategy.withdraw(requested)
        if withdrawn < 0 or loss < 0:
            msg = "Strategy returned negative withdraw values"
            raise InvalidStrategy(
                msg, context={"strategy": strategy_id, "withdrawn": withdrawn, "loss": loss}
            )
        if withdrawn + loss > requested or withdrawn + loss > total_debt:
            msg = "Strategy returned more than requested"
            raise InvalidStrategy(
                msg,
                context={
                    "strategy": strategy_id,
                    "requested": requested,
                    "withdrawn": withdrawn,
                    "loss": loss,
                },
            )
        return withdrawn, loss
