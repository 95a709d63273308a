"""Tests for withdraw/redeem through the idle → queue waterfall."""

from __future__ import annotations

import pytest

from src.core.exceptions import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    InvalidStrategy,
    SlippageExceeded,
    Unauthorized,
)
from src.strategies.base import Strategy
from src.strategies.simulated import SimulatedStrategy
from src.vault.models import ReportResult
from src.vault.vault import Vault

UNIT = 10**6


class _StubStrategy:
    """최소 전략 어댑터 (콜백 동작은 하위 클래스에서 정의)."""

    def __init__(self, strategy_id: str, vault: Vault) -> None:
        self._id = strategy_id
        self._vault = vault
        self.balance = 0

    @property
    def id(self) -> str:
        return self._id

    @property
    def vault(self) -> str:
        return self._vault.address

    def harvest(self) -> ReportResult:
        result = self._vault.report(self._id, gain=0, loss=0, debt_payment=0)
        self.balance += result.credit
        return result

    def withdraw(self, amount_needed: int) -> tuple[int, int]:
        self.balance -= amount_needed
        return amount_needed, 0


class _GreedyStrategy(_StubStrategy):
    def withdraw(self, amount_needed: int) -> tuple[int, int]:
        return amount_needed + 1, 0


class _ReentrantStrategy(_StubStrategy):
    def withdraw(self, amount_needed: int) -> tuple[int, int]:
        self._vault.deposit(self._id, 1)
        return super().withdraw(amount_needed)


class _ObservingStrategy(_StubStrategy):
    def __init__(self, strategy_id: str, vault: Vault) -> None:
        super().__init__(strategy_id, vault)
        self.observed_supply: int | None = None

    def withdraw(self, amount_needed: int) -> tuple[int, int]:
        self.observed_supply = self._vault.total_supply()
        return super().withdraw(amount_needed)


def _register(vault: Vault, strategy: Strategy, debt_ratio: int) -> None:
    vault.add_strategy("gov", strategy, debt_ratio=debt_ratio, max_debt_per_harvest=10**18)


@pytest.fixture
def funded(vault: Vault) -> tuple[SimulatedStrategy, SimulatedStrategy]:
    """100 단위 입금: idle 20, strat-a 50, strat-b 30."""
    strat_a = SimulatedStrategy("strat-a", vault)
    strat_b = SimulatedStrategy("strat-b", vault)
    _register(vault, strat_a, 5_000)
    _register(vault, strat_b, 3_000)
    vault.deposit("alice", 100 * UNIT)
    strat_a.harvest()
    strat_b.harvest()
    return strat_a, strat_b


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestWaterfallOrder:
    """idle 우선, 이후 출금 큐 순서."""

    def test_setup(self, vault: Vault, funded: tuple[SimulatedStrategy, ...]) -> None:
        strat_a, strat_b = funded

        assert vault.total_idle == 20 * UNIT
        assert strat_a.balance == 50 * UNIT
        assert strat_b.balance == 30 * UNIT

    def test_idle_only(self, vault: Vault, funded: tuple[SimulatedStrategy, ...]) -> None:
        strat_a, _ = funded

        result = vault.withdraw("alice", 15 * UNIT)

        assert result.assets == 15 * UNIT
        assert result.shares == 15 * UNIT
        assert vault.total_idle == 5 * UNIT
        assert strat_a.balance == 50 * UNIT

    def test_pulls_first_queued_strategy(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, strat_b = funded

        result = vault.withdraw("alice", 50 * UNIT)

        assert result.assets == 50 * UNIT
        assert result.loss == 0
        assert vault.total_idle == 0
        assert strat_a.balance == 20 * UNIT
        assert strat_b.balance == 30 * UNIT
        assert vault.strategies("strat-a").total_debt == 20 * UNIT
        assert vault.total_debt == 50 * UNIT
        assert vault.balance_of("alice") == 50 * UNIT

    def test_queue_order_respected(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, strat_b = funded
        vault.insert_strategy_to_queue("gov", "strat-b", 0)

        vault.withdraw("alice", 50 * UNIT)

        assert strat_b.balance == 0
        assert strat_a.balance == 50 * UNIT

    def test_spans_multiple_strategies(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, strat_b = funded

        result = vault.redeem("alice", 90 * UNIT)

        assert result.assets == 90 * UNIT
        assert strat_a.balance == 0
        assert strat_b.balance == 10 * UNIT

    def test_unqueued_strategy_skipped(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, strat_b = funded
        vault.remove_strategy_from_queue("gov", "strat-a")

        vault.withdraw("alice", 50 * UNIT)

        assert strat_a.balance == 50 * UNIT
        assert strat_b.balance == 0

    def test_revoked_strategy_still_liquidated(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        """revoke 후에도 큐 슬롯이 남아 있으면 부채를 회수."""
        strat_a, strat_b = funded
        vault.update_strategy_debt_ratio("gov", "strat-a", 0)
        vault.revoke_strategy("gov", "strat-a")

        result = vault.withdraw("alice", 50 * UNIT)

        params = vault.strategies("strat-a")
        assert vault.queue()[0] == "strat-a"
        assert params.activation == 0
        assert result.assets == 50 * UNIT
        assert strat_a.balance == 20 * UNIT
        assert params.total_debt == 20 * UNIT
        assert strat_b.balance == 30 * UNIT


# ---------------------------------------------------------------------------
# Loss & Shortfall
# ---------------------------------------------------------------------------


class TestWithdrawLoss:
    """청산 손실, 미회수 부족분, max_loss 허용치."""

    def test_liquidation_loss_within_tolerance(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, _ = funded
        strat_a.set_liquidation_loss(100)

        result = vault.withdraw("alice", 50 * UNIT, max_loss_bps=100)

        assert result.assets == 49_700_000
        assert result.loss == 300_000
        assert result.shares == 50 * UNIT
        params = vault.strategies("strat-a")
        assert params.debt_ratio == 4_970
        assert params.total_loss == 300_000
        assert params.total_debt == 20 * UNIT
        assert vault.debt_ratio == 4_970 + 3_000

    def test_default_tolerance_is_zero(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, _ = funded
        strat_a.set_liquidation_loss(100)
        before = vault.snapshot()

        with pytest.raises(SlippageExceeded) as exc_info:
            vault.withdraw("alice", 50 * UNIT)

        assert exc_info.value.loss == 300_000
        assert exc_info.value.tolerance == 0
        assert vault.snapshot() == before
        assert strat_a.balance == 50 * UNIT

    def test_shortfall_counts_as_loss(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, strat_b = funded
        strat_a.set_liquidity(10 * UNIT)
        strat_b.set_liquidity(5 * UNIT)

        result = vault.withdraw("alice", 50 * UNIT, max_loss_bps=10_000)

        assert result.assets == 35 * UNIT
        assert result.shortfall == 15 * UNIT
        assert result.loss == 0
        assert result.shares == 50 * UNIT
        assert vault.balance_of("alice") == 50 * UNIT

    def test_shortfall_over_tolerance(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        strat_a, strat_b = funded
        strat_a.set_liquidity(10 * UNIT)
        strat_b.set_liquidity(5 * UNIT)

        with pytest.raises(SlippageExceeded):
            vault.withdraw("alice", 50 * UNIT, max_loss_bps=100)
        assert vault.balance_of("alice") == 100 * UNIT

    def test_max_loss_out_of_range(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        with pytest.raises(InvalidParameter):
            vault.withdraw("alice", UNIT, max_loss_bps=10_001)


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


class TestWithdrawOwnership:
    """owner / allowance / 잔액 검증."""

    def test_third_party_needs_allowance(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        with pytest.raises(InsufficientAllowance):
            vault.withdraw("bob", 5 * UNIT, "bob", "alice")

    def test_third_party_spends_allowance(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        vault.approve("alice", "bob", 10 * UNIT)

        result = vault.withdraw("bob", 5 * UNIT, "bob", "alice")

        assert result.owner == "alice"
        assert result.receiver == "bob"
        assert vault.allowance("alice", "bob") == 5 * UNIT
        assert vault.balance_of("alice") == 95 * UNIT

    def test_insufficient_shares(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        vault.deposit("bob", UNIT)

        with pytest.raises(InsufficientBalance):
            vault.withdraw("bob", 2 * UNIT)

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...], amount: int
    ) -> None:
        with pytest.raises(InvalidParameter):
            vault.withdraw("alice", amount)
        with pytest.raises(InvalidParameter):
            vault.redeem("alice", amount)

    def test_withdraw_allowed_during_shutdown(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        vault.set_emergency_shutdown("guardian", True)

        result = vault.withdraw("alice", 10 * UNIT)

        assert result.assets == 10 * UNIT


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class TestWithdrawViews:
    """max/preview 조회 (idle 기준)."""

    def test_max_withdraw_bounded_by_idle(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        assert vault.max_withdraw("alice") == 20 * UNIT
        assert vault.max_redeem("alice") == 20 * UNIT
        assert vault.max_withdraw("bob") == 0

    def test_max_available_shares_counts_queued_debt(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        assert vault.max_available_shares() == vault.total_supply()

        vault.remove_strategy_from_queue("gov", "strat-a")

        assert vault.max_available_shares() == 50 * UNIT

    def test_preview(self, vault: Vault, funded: tuple[SimulatedStrategy, ...]) -> None:
        assert vault.preview_withdraw(10 * UNIT) == 10 * UNIT
        assert vault.preview_withdraw(30 * UNIT) == 0
        assert vault.preview_redeem(10 * UNIT) == 10 * UNIT
        assert vault.preview_redeem(30 * UNIT) == 0

    def test_views_zero_during_shutdown(
        self, vault: Vault, funded: tuple[SimulatedStrategy, ...]
    ) -> None:
        vault.set_emergency_shutdown("gov", True)

        assert vault.max_withdraw("alice") == 0
        assert vault.max_redeem("alice") == 0
        assert vault.preview_withdraw(UNIT) == 0


# ---------------------------------------------------------------------------
# Strategy callbacks
# ---------------------------------------------------------------------------


class TestStrategyCallbacks:
    """출금 콜백의 비정상 동작과 재진입."""

    def test_callback_returning_too_much(self, vault: Vault) -> None:
        strategy = _GreedyStrategy("strat-x", vault)
        _register(vault, strategy, 10_000)
        vault.deposit("alice", 10 * UNIT)
        strategy.harvest()

        with pytest.raises(InvalidStrategy, match="more than requested"):
            vault.withdraw("alice", 5 * UNIT)
        assert vault.balance_of("alice") == 10 * UNIT

    def test_reentrant_call_rejected(self, vault: Vault) -> None:
        strategy = _ReentrantStrategy("strat-x", vault)
        _register(vault, strategy, 10_000)
        vault.deposit("alice", 10 * UNIT)
        strategy.harvest()
        before = vault.snapshot()

        with pytest.raises(Unauthorized, match="Reentrant"):
            vault.withdraw("alice", 5 * UNIT)

        assert vault.snapshot() == before
        assert vault.balance_of("strat-x") == 0

    def test_views_during_callback_see_entry_state(self, vault: Vault) -> None:
        strategy = _ObservingStrategy("strat-x", vault)
        _register(vault, strategy, 10_000)
        vault.deposit("alice", 10 * UNIT)
        strategy.harvest()

        vault.withdraw("alice", 5 * UNIT)

        # 소각 이후 콜백이지만 진입 시점 공급량을 본다
        assert strategy.observed_supply == 10 * UNIT
        assert vault.total_supply() == 5 * UNIT
