"""LockedProfitTracker — harvest 이익의 선형 해제.

report에서 잠긴 순이익은 lock_full_duration 동안 선형으로 풀리며,
share 가격은 잠기지 않은 자산(free assets)으로만 계산됩니다.
덕분에 harvest 직전 입금 후 직후 출금으로 이익을 가로챌 수 없습니다.

Formula:
    decay = locked * elapsed * dispense_rate_bps // (MAX_BPS * lock_full_duration)
    current = max(0, locked - decay)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.vault.constants import MAX_BPS

if TYPE_CHECKING:
    from src.vault.models import VaultState


class LockedProfitTracker:
    """잠금 이익의 조회, 정산, 추가, 손실 흡수."""

    def current(self, state: VaultState, now: int) -> int:
        """now 시점에 아직 잠겨 있는 이익."""
        locked = state.locked_profit
        if locked == 0 or state.dispense_rate_bps == 0:
            return 0
        elapsed = now - state.locked_profit_updated_at
        if elapsed <= 0:
            return locked
        decay = (
            locked
            * elapsed
            * state.dispense_rate_bps
            // (MAX_BPS * state.lock_full_duration)
        )
        return max(0, locked - decay)

    def settle(self, state: VaultState, now: int) -> int:
        """now까지의 해제분을 반영하고 남은 잠금 이익을 반환."""
        state.locked_profit = self.current(state, now)
        state.locked_profit_updated_at = now
        return state.locked_profit

    def lock(self, state: VaultState, net_profit: int) -> int:
        """순이익 중 dispense_rate 비율만큼 잠그고 잠근 양을 반환."""
        if net_profit <= 0:
            return 0
        amount = net_profit * state.dispense_rate_bps // MAX_BPS
        state.locked_profit += amount
        return amount

    def absorb_loss(self, state: VaultState, loss: int) -> int:
        """손실을 잠금 이익에서 먼저 흡수하고, 흡수한 양을 반환."""
        absorbed = min(state.locked_profit, loss)
        state.locked_profit -= absorbed
        return absorbed
