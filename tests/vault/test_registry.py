"""Tests for StrategyRegistry (add/update/revoke, debt accounting)."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from src.core.exceptions import (
    InvalidParameter,
    InvalidStrategy,
    RatioExceeded,
    Unauthorized,
)
from src.strategies.simulated import SimulatedStrategy
from src.vault.clock import ManualClock
from src.vault.config import VaultConfig
from src.vault.models import StrategyParams, VaultState
from src.vault.registry import StrategyRegistry
from src.vault.vault import Vault

UNIT = 10**6

AddStrategy = Callable[..., SimulatedStrategy]


def _make_loss_state() -> VaultState:
    return VaultState(
        address="vault-usdc",
        asset="usdc",
        decimals=6,
        governance="gov",
        management="mgmt",
        fee_recipient="rewards",
        total_debt=303,
        idle_assets=700,
        debt_ratio=2_500,
        strategies={
            "strat-a": StrategyParams(
                strategy_id="strat-a", activation=1, debt_ratio=2_500, total_debt=303
            )
        },
    )


def _ratio_sum(vault: Vault) -> int:
    return sum(
        vault.strategies(sid).debt_ratio
        for sid in vault.strategy_ids()
        if vault.strategies(sid).is_active
    )


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestAddStrategy:
    """add_strategy 검증."""

    def test_add_sets_params_and_queue(
        self, vault: Vault, clock: ManualClock, add_strategy: AddStrategy
    ) -> None:
        add_strategy("strat-a", 3_000, min_debt_per_harvest=10, max_debt_per_harvest=1_000)

        params = vault.strategies("strat-a")
        assert params.activation == clock.now()
        assert params.last_report == clock.now()
        assert params.debt_ratio == 3_000
        assert params.min_debt_per_harvest == 10
        assert params.max_debt_per_harvest == 1_000
        assert vault.debt_ratio == 3_000
        assert vault.queue() == ["strat-a"]

    def test_management_may_add(self, vault: Vault) -> None:
        strategy = SimulatedStrategy("strat-a", vault)

        vault.add_strategy("mgmt", strategy, debt_ratio=1_000, max_debt_per_harvest=UNIT)

        assert vault.strategies("strat-a").is_active

    def test_unauthorized_caller(self, vault: Vault) -> None:
        strategy = SimulatedStrategy("strat-a", vault)

        with pytest.raises(Unauthorized):
            vault.add_strategy("alice", strategy, debt_ratio=1_000, max_debt_per_harvest=UNIT)

    def test_strategy_of_other_vault(
        self, vault: Vault, vault_config: VaultConfig, clock: ManualClock
    ) -> None:
        other = Vault(vault_config.model_copy(update={"address": "vault-dai"}), clock=clock)
        strategy = SimulatedStrategy("strat-a", other)

        with pytest.raises(InvalidStrategy, match="another vault"):
            vault.add_strategy("gov", strategy, debt_ratio=1_000, max_debt_per_harvest=UNIT)

    def test_already_active(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 1_000)

        with pytest.raises(InvalidStrategy, match="already active"):
            add_strategy("strat-a", 1_000)

    def test_ratio_sum_exceeded(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 6_000)

        with pytest.raises(RatioExceeded):
            add_strategy("strat-b", 5_000)
        assert vault.debt_ratio == 6_000
        assert vault.queue() == ["strat-a"]

    def test_min_above_max(self, add_strategy: AddStrategy) -> None:
        with pytest.raises(InvalidStrategy):
            add_strategy("strat-a", 1_000, min_debt_per_harvest=10, max_debt_per_harvest=5)

    @pytest.mark.parametrize(
        ("debt_ratio", "performance_fee_bps"),
        [(10_001, 0), (1_000, 10_001), (-1, 0)],
    )
    def test_invalid_parameters(
        self, add_strategy: AddStrategy, debt_ratio: int, performance_fee_bps: int
    ) -> None:
        with pytest.raises(InvalidParameter):
            add_strategy("strat-a", debt_ratio, performance_fee_bps=performance_fee_bps)

    def test_queue_full(self, vault_config: VaultConfig, clock: ManualClock) -> None:
        vault = Vault(vault_config.model_copy(update={"max_queue_length": 2}), clock=clock)
        for sid in ("strat-a", "strat-b"):
            vault.add_strategy(
                "gov", SimulatedStrategy(sid, vault), debt_ratio=100, max_debt_per_harvest=UNIT
            )

        with pytest.raises(InvalidStrategy, match="full"):
            vault.add_strategy(
                "gov",
                SimulatedStrategy("strat-c", vault),
                debt_ratio=100,
                max_debt_per_harvest=UNIT,
            )


# ---------------------------------------------------------------------------
# Updates & Revocation
# ---------------------------------------------------------------------------


class TestUpdateStrategy:
    """update_strategy_* 검증."""

    def test_update_debt_ratio(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 3_000)
        add_strategy("strat-b", 2_000)

        vault.update_strategy_debt_ratio("mgmt", "strat-a", 8_000)

        assert vault.debt_ratio == 10_000
        assert vault.strategies("strat-a").debt_ratio == 8_000
        with pytest.raises(RatioExceeded):
            vault.update_strategy_debt_ratio("mgmt", "strat-b", 2_001)
        assert _ratio_sum(vault) == vault.debt_ratio

    def test_update_requires_active(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 0)
        vault.revoke_strategy("gov", "strat-a")

        with pytest.raises(InvalidStrategy):
            vault.update_strategy_debt_ratio("gov", "strat-a", 100)
        with pytest.raises(InvalidStrategy):
            vault.update_strategy_debt_ratio("gov", "unknown", 100)

    def test_harvest_bounds(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 1_000, min_debt_per_harvest=5, max_debt_per_harvest=50)

        vault.update_strategy_min_debt_per_harvest("gov", "strat-a", 50)
        vault.update_strategy_max_debt_per_harvest("gov", "strat-a", 70)

        with pytest.raises(RatioExceeded):
            vault.update_strategy_min_debt_per_harvest("gov", "strat-a", 71)
        with pytest.raises(RatioExceeded):
            vault.update_strategy_max_debt_per_harvest("gov", "strat-a", 49)
        params = vault.strategies("strat-a")
        assert (params.min_debt_per_harvest, params.max_debt_per_harvest) == (50, 70)

    def test_update_performance_fee(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 1_000)

        vault.update_strategy_performance_fee("mgmt", "strat-a", 250)

        assert vault.strategies("strat-a").performance_fee_bps == 250
        with pytest.raises(InvalidParameter):
            vault.update_strategy_performance_fee("mgmt", "strat-a", 10_001)
        with pytest.raises(Unauthorized):
            vault.update_strategy_performance_fee("alice", "strat-a", 100)


class TestRevokeStrategy:
    """revoke_strategy와 재등록."""

    def test_revoke_requires_zero_ratio(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 1_000)

        with pytest.raises(InvalidStrategy, match="zero"):
            vault.revoke_strategy("gov", "strat-a")

    def test_guardian_revokes_and_queue_slot_stays(
        self, vault: Vault, add_strategy: AddStrategy
    ) -> None:
        add_strategy("strat-a", 1_000)
        vault.update_strategy_debt_ratio("mgmt", "strat-a", 0)

        vault.revoke_strategy("guardian", "strat-a")

        params = vault.strategies("strat-a")
        assert params.activation == 0
        assert params.debt_ratio == 0
        assert vault.queue() == ["strat-a"]

    def test_revoke_inactive(self, vault: Vault, add_strategy: AddStrategy) -> None:
        add_strategy("strat-a", 0)
        vault.revoke_strategy("gov", "strat-a")

        with pytest.raises(InvalidStrategy):
            vault.revoke_strategy("gov", "strat-a")

    def test_readd_keeps_totals(
        self, vault: Vault, clock: ManualClock, add_strategy: AddStrategy
    ) -> None:
        vault.deposit("alice", 100 * UNIT)
        strategy = add_strategy("strat-a", 5_000)
        strategy.harvest()
        strategy.earn(2 * UNIT)
        strategy.harvest()
        vault.update_strategy_debt_ratio("gov", "strat-a", 0)
        vault.revoke_strategy("gov", "strat-a")
        before = vault.strategies("strat-a")

        clock.advance(60)
        vault.add_strategy("gov", strategy, debt_ratio=2_000, max_debt_per_harvest=10**18)

        after = vault.strategies("strat-a")
        assert after.is_active
        assert after.activation == clock.now()
        assert after.total_debt == before.total_debt
        assert after.total_gain == before.total_gain == 2 * UNIT
        assert vault.queue() == ["strat-a"]


# ---------------------------------------------------------------------------
# Debt Accounting
# ---------------------------------------------------------------------------


class TestDebtAccounting:
    """credit_available / debt_outstanding / realize_loss."""

    def test_credit_available_follows_ratio(
        self, vault: Vault, add_strategy: AddStrategy
    ) -> None:
        vault.deposit("alice", 100 * UNIT)
        add_strategy("strat-a", 3_000)

        assert vault.credit_available("strat-a") == 30 * UNIT
        assert vault.debt_outstanding("strat-a") == 0

    def test_credit_capped_by_max_per_harvest(
        self, vault: Vault, add_strategy: AddStrategy
    ) -> None:
        vault.deposit("alice", 100 * UNIT)
        add_strategy("strat-a", 3_000, max_debt_per_harvest=10 * UNIT)

        assert vault.credit_available("strat-a") == 10 * UNIT

    def test_credit_below_min_is_zero(self, vault: Vault, add_strategy: AddStrategy) -> None:
        vault.deposit("alice", 100 * UNIT)
        add_strategy("strat-a", 3_000, min_debt_per_harvest=31 * UNIT)

        assert vault.credit_available("strat-a") == 0

    def test_credit_zero_under_shutdown(self, vault: Vault, add_strategy: AddStrategy) -> None:
        vault.deposit("alice", 100 * UNIT)
        add_strategy("strat-a", 3_000)

        vault.set_emergency_shutdown("guardian", True)

        assert vault.credit_available("strat-a") == 0

    def test_outstanding_is_full_debt_without_ratio(
        self, vault: Vault, add_strategy: AddStrategy
    ) -> None:
        vault.deposit("alice", 100 * UNIT)
        strategy = add_strategy("strat-a", 3_000)
        strategy.harvest()

        vault.update_strategy_debt_ratio("gov", "strat-a", 0)

        assert vault.debt_outstanding("strat-a") == 30 * UNIT

    def test_outstanding_after_ratio_cut(self, vault: Vault, add_strategy: AddStrategy) -> None:
        vault.deposit("alice", 100 * UNIT)
        strategy = add_strategy("strat-a", 3_000)
        strategy.harvest()

        vault.update_strategy_debt_ratio("gov", "strat-a", 1_000)

        assert vault.debt_outstanding("strat-a") == 20 * UNIT
        assert vault.credit_available("strat-a") == 0

    def test_outstanding_under_shutdown(self, vault: Vault, add_strategy: AddStrategy) -> None:
        vault.deposit("alice", 100 * UNIT)
        strategy = add_strategy("strat-a", 3_000)
        strategy.harvest()

        vault.set_emergency_shutdown("gov", True)

        assert vault.debt_outstanding("strat-a") == 30 * UNIT

    def test_realize_loss_decays_ratio(self) -> None:
        state = _make_loss_state()

        change = StrategyRegistry().realize_loss(state, "strat-a", 10)

        params = state.strategies["strat-a"]
        assert change == 83
        assert params.debt_ratio == 2_417
        assert state.debt_ratio == 2_417
        assert params.total_debt == 293
        assert state.total_debt == 293
        assert params.total_loss == 10

    def test_realize_loss_above_debt(self) -> None:
        state = _make_loss_state()

        with pytest.raises(InvalidStrategy, match="exceeds"):
            StrategyRegistry().realize_loss(state, "strat-a", 304)
