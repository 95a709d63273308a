"""SimulatedStrategy — 프로그래머블 기준 전략 어댑터.

실제 수익 로직 없이 자산 잔액만 보유하며, 테스트와 시나리오에서
이익(earn), 손실(lose), 유동성 제한, 청산 손실을 주입할 수 있습니다.

Accounting:
    balance = 볼트 부채 + 미보고 이익 − 미보고 손실
    harvest()는 미보고 이익/손실을 상계하여 report하고,
    볼트의 지시(credit / debt_payment)대로 잔액을 정산합니다.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.core.exceptions import InvalidParameter
from src.logging.context import get_strategy_logger
from src.strategies.registry import register
from src.vault.constants import MAX_BPS

if TYPE_CHECKING:
    from src.vault.models import ReportResult
    from src.vault.vault import Vault


@register("simulated")
class SimulatedStrategy:
    """볼트 부채를 잔액으로만 보유하는 전략.

    Args:
        strategy_id: 전략 식별자
        vault: 소속 볼트
        liquidity: 출금 콜백에서 반환 가능한 최대 자산 (None = 제한 없음)
        liquidation_loss_bps: 출금 요청액 대비 청산 손실 비율

    Example:
        >>> strategy = SimulatedStrategy("strat-a", vault)
        >>> vault.add_strategy("gov", strategy, debt_ratio=3000, ...)
        >>> strategy.harvest()       # credit 수령
        >>> strategy.earn(10)        # 이익 발생
        >>> strategy.harvest()       # gain=10 report
    """

    def __init__(
        self,
        strategy_id: str,
        vault: Vault,
        *,
        liquidity: int | None = None,
        liquidation_loss_bps: int = 0,
    ) -> None:
        self._id = strategy_id
        self._vault = vault
        self._balance = 0
        self._pending_gain = 0
        self._pending_loss = 0
        self._liquidity: int | None = None
        self._liquidation_loss_bps = 0
        self.set_liquidity(liquidity)
        self.set_liquidation_loss(liquidation_loss_bps)
        self._log = get_strategy_logger(strategy_id, vault=vault.address)

    # ── Strategy Contract ──────────────────────────────────────────

    @property
    def id(self) -> str:
        return self._id

    @property
    def vault(self) -> str:
        return self._vault.address

    def harvest(self) -> ReportResult:
        """미보고 손익을 상계해 report하고 credit/상환을 정산."""
        gain, loss = self._pending_gain, self._pending_loss
        if gain >= loss:
            gain, loss = gain - loss, 0
        else:
            gain, loss = 0, loss - gain

        outstanding = self._vault.debt_outstanding(self._id)
        liquid = max(0, self._balance - gain)
        debt_payment = min(outstanding, liquid)

        result = self._vault.report(
            self._id, gain=gain, loss=loss, debt_payment=debt_payment
        )
        self._balance += result.credit - result.gain - result.debt_payment
        self._pending_gain = 0
        self._pending_loss = 0
        self._log.info(
            "Harvested: gain={} loss={} credit={} debt_payment={} balance={}",
            result.gain,
            result.loss,
            result.credit,
            result.debt_payment,
            self._balance,
        )
        return result

    def withdraw(self, amount_needed: int) -> tuple[int, int]:
        """출금 콜백: 청산 손실과 유동성 제한을 반영해 자산 반환."""
        if amount_needed <= 0:
            return 0, 0

        loss = min(amount_needed * self._liquidation_loss_bps // MAX_BPS, self._balance)
        withdrawn = min(amount_needed - loss, self._balance - loss)
        if self._liquidity is not None:
            withdrawn = min(withdrawn, self._liquidity)
            self._liquidity -= withdrawn
        self._balance -= withdrawn + loss

        # 잔액이 바닥나면 미보고 손실을 청산 손실로 인정
        unrecognized = min(self._pending_loss, amount_needed - withdrawn - loss)
        if unrecognized > 0 and self._balance == 0:
            self._pending_loss -= unrecognized
            loss += unrecognized

        self._log.debug(
            "Withdraw callback: needed={} withdrawn={} loss={}",
            amount_needed,
            withdrawn,
            loss,
        )
        return withdrawn, loss

    # ── Simulation Controls ────────────────────────────────────────

    @property
    def balance(self) -> int:
        """보유 자산."""
        return self._balance

    @property
    def pending_gain(self) -> int:
        return self._pending_gain

    @property
    def pending_loss(self) -> int:
        return self._pending_loss

    def estimated_total_assets(self) -> int:
        return self._balance

    def earn(self, amount: int) -> None:
        """이익 발생 (다음 harvest에서 report)."""
        if amount < 0:
            msg = "Earned amount must not be negative"
            raise InvalidParameter(msg, context={"strategy": self._id, "amount": amount})
        self._balance += amount
        self._pending_gain += amount

    def lose(self, amount: int) -> None:
        """손실 발생 (잔액 한도, 다음 harvest에서 report)."""
        if amount < 0:
            msg = "Lost amount must not be negative"
            raise InvalidParameter(msg, context={"strategy": self._id, "amount": amount})
        amount = min(amount, self._balance)
        self._balance -= amount
        self._pending_loss += amount

    def set_liquidity(self, liquidity: int | None) -> None:
        """출금 콜백에서 반환 가능한 자산 한도 (None = 제한 없음)."""
        if liquidity is not None and liquidity < 0:
            msg = "Liquidity must not be negative"
            raise InvalidParameter(msg, context={"strategy": self._id, "liquidity": liquidity})
        self._liquidity = liquidity

    def set_liquidation_loss(self, loss_bps: int) -> None:
        """출금 요청액 대비 청산 손실 비율 (bps)."""
        if not 0 <= loss_bps <= MAX_BPS:
            msg = f"Liquidation loss must be within [0, {MAX_BPS}] bps"
            raise InvalidParameter(msg, context={"strategy": self._id, "loss_bps": loss_bps})
        self._liquidation_loss_bps = loss_bps

    # ── Transactional ──────────────────────────────────────────────

    def snapshot(self) -> tuple[int, int, int, int | None, int]:
        return (
            self._balance,
            self._pending_gain,
            self._pending_loss,
            self._liquidity,
            self._liquidation_loss_bps,
        )

    def restore(self, saved: object) -> None:
        (
            self._balance,
            self._pending_gain,
            self._pending_loss,
            self._liquidity,
            self._liquidation_loss_bps,
        ) = saved  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"SimulatedStrategy(id={self._id!r}, balance={self._balance})"
