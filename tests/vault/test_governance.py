"""Tests for role management, parameter setters and token sweeping."""

from __future__ import annotations

import pytest

from src.core.exceptions import (
    InsufficientBalance,
    InvalidParameter,
    LimitExceeded,
    Unauthorized,
)
from src.vault.access import has_role, require_role, role_holder
from src.vault.clock import ManualClock
from src.vault.models import Role
from src.vault.vault import Vault

UNIT = 10**6


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


class TestAccess:
    """역할 조회와 검사."""

    def test_role_holders(self, vault: Vault) -> None:
        state = vault.snapshot()

        assert role_holder(state, Role.GOVERNANCE) == "gov"
        assert role_holder(state, Role.MANAGEMENT) == "mgmt"
        assert role_holder(state, Role.GUARDIAN) == "guardian"

    def test_has_role_any_of(self, vault: Vault) -> None:
        state = vault.snapshot()

        assert has_role(state, "mgmt", Role.GOVERNANCE, Role.MANAGEMENT)
        assert not has_role(state, "guardian", Role.GOVERNANCE, Role.MANAGEMENT)

    def test_unset_guardian_matches_nobody(self, vault: Vault) -> None:
        vault.set_guardian("gov", None)
        state = vault.snapshot()

        assert role_holder(state, Role.GUARDIAN) is None
        with pytest.raises(Unauthorized) as exc_info:
            require_role(state, "guardian", Role.GUARDIAN)
        assert exc_info.value.context["required"] == "guardian"


# ---------------------------------------------------------------------------
# Role transfers
# ---------------------------------------------------------------------------


class TestRoleTransfers:
    """governance 2단계 이전과 역할 변경."""

    def test_two_step_governance(self, vault: Vault) -> None:
        vault.set_governance("gov", "new-gov")

        assert vault.governance == "gov"
        assert vault.pending_governance == "new-gov"

        vault.accept_governance("new-gov")

        assert vault.governance == "new-gov"
        assert vault.pending_governance is None
        with pytest.raises(Unauthorized):
            vault.set_deposit_limit("gov", 0)

    def test_accept_by_stranger(self, vault: Vault) -> None:
        vault.set_governance("gov", "new-gov")

        with pytest.raises(Unauthorized):
            vault.accept_governance("mallory")
        with pytest.raises(Unauthorized):
            vault.set_governance("mgmt", "mallory")

    def test_accept_without_pending(self, vault: Vault) -> None:
        with pytest.raises(Unauthorized):
            vault.accept_governance("gov")

    def test_set_management(self, vault: Vault) -> None:
        vault.set_management("gov", "new-mgmt")

        assert vault.management == "new-mgmt"
        with pytest.raises(InvalidParameter):
            vault.set_management("gov", "")

    def test_guardian_can_hand_over(self, vault: Vault) -> None:
        vault.set_guardian("guardian", "guardian-2")

        assert vault.guardian == "guardian-2"
        with pytest.raises(Unauthorized):
            vault.set_guardian("guardian", "guardian-3")

    def test_fee_recipient(self, vault: Vault) -> None:
        vault.set_fee_recipient("gov", "treasury")

        assert vault.fee_recipient == "treasury"
        with pytest.raises(InvalidParameter):
            vault.set_fee_recipient("gov", "vault-usdc")
        with pytest.raises(Unauthorized):
            vault.set_fee_recipient("mgmt", "treasury-2")


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


class TestParameters:
    """수수료, 입금 한도, 긴급 정지."""

    def test_fee_setters(self, vault: Vault) -> None:
        vault.set_performance_fee("gov", 2_000)
        vault.set_management_fee("gov", 100)

        assert vault.performance_fee == 2_000
        assert vault.management_fee == 100

    @pytest.mark.parametrize("fee", [-1, 10_001])
    def test_fee_bounds(self, vault: Vault, fee: int) -> None:
        with pytest.raises(InvalidParameter):
            vault.set_performance_fee("gov", fee)
        with pytest.raises(InvalidParameter):
            vault.set_management_fee("gov", fee)

    def test_deposit_limit(self, vault: Vault) -> None:
        vault.set_deposit_limit("gov", 10 * UNIT)

        assert vault.deposit_limit == 10 * UNIT
        assert vault.max_deposit() == 10 * UNIT
        with pytest.raises(LimitExceeded):
            vault.deposit("alice", 11 * UNIT)
        with pytest.raises(InvalidParameter):
            vault.set_deposit_limit("gov", -1)

    def test_emergency_shutdown_roles(self, vault: Vault) -> None:
        with pytest.raises(Unauthorized):
            vault.set_emergency_shutdown("mgmt", True)

        vault.set_emergency_shutdown("guardian", True)
        assert vault.emergency_shutdown

        # 해제는 governance만
        with pytest.raises(Unauthorized):
            vault.set_emergency_shutdown("guardian", False)
        vault.set_emergency_shutdown("gov", False)
        assert not vault.emergency_shutdown
        vault.deposit("alice", UNIT)


# ---------------------------------------------------------------------------
# Stray tokens
# ---------------------------------------------------------------------------


class TestSweep:
    """관리 자산 외 토큰 회수."""

    def test_sweep_all(self, vault: Vault) -> None:
        vault.receive_token("airdrop", 500)

        assert vault.sweep("gov", "airdrop") == 500
        assert vault.stray_balance("airdrop") == 0

    def test_partial_sweep(self, vault: Vault) -> None:
        vault.receive_token("airdrop", 500)
        vault.receive_token("airdrop", 100)

        assert vault.sweep("gov", "airdrop", 200) == 200
        assert vault.stray_balance("airdrop") == 400

    def test_sweep_more_than_held(self, vault: Vault) -> None:
        vault.receive_token("airdrop", 500)

        with pytest.raises(InsufficientBalance):
            vault.sweep("gov", "airdrop", 501)
        assert vault.stray_balance("airdrop") == 500

    def test_managed_asset_protected(self, vault: Vault) -> None:
        vault.deposit("alice", UNIT)

        with pytest.raises(InvalidParameter):
            vault.sweep("gov", "usdc")
        with pytest.raises(InvalidParameter):
            vault.receive_token("usdc", 10)
        assert vault.total_idle == UNIT

    def test_sweep_requires_governance(self, vault: Vault) -> None:
        vault.receive_token("airdrop", 500)

        with pytest.raises(Unauthorized):
            vault.sweep("mgmt", "airdrop")

    def test_receive_non_positive(self, vault: Vault) -> None:
        with pytest.raises(InvalidParameter):
            vault.receive_token("airdrop", 0)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class TestManualClock:
    def test_advance_and_set(self) -> None:
        clock = ManualClock(start=100)

        assert clock.advance(50) == 150
        clock.set(200)
        assert clock.now() == 200

    def test_cannot_go_backwards(self) -> None:
        clock = ManualClock(start=100)

        with pytest.raises(ValueError, match="backwards"):
            clock.advance(-1)
        with pytest.raises(ValueError, match="backwards"):
            clock.set(99)
