"""ShareLedger — share/asset 환산과 share 원장.

share 가격은 free assets (gross − 현재 잠금 이익) 기준이며,
입금 한도와 debt 목표는 gross assets 기준입니다.

Rounding:
    - convert_to_shares / convert_to_assets: floor
    - withdraw에서 소각할 share, mint에 필요한 자산: ceil (호출자 불리)

Rules Applied:
    - #10 Python Standards: int-only arithmetic, explicit division
    - #23 Exception Handling: Domain exceptions with context
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.core.exceptions import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidParameter,
    LimitExceeded,
)
from src.vault.constants import UNLIMITED_ALLOWANCE
from src.vault.models import DepositResult

if TYPE_CHECKING:
    from src.vault.locked_profit import LockedProfitTracker
    from src.vault.models import VaultState


def _div_up(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


class ShareLedger:
    """share 발행/소각, 이전, 승인, 환산.

    Args:
        locked_profit: free assets 계산에 쓰는 잠금 이익 추적기
    """

    def __init__(self, locked_profit: LockedProfitTracker) -> None:
        self._locked_profit = locked_profit

    # ── Conversion ─────────────────────────────────────────────────

    def free_assets(self, state: VaultState, now: int) -> int:
        """share 가격 산정 기준 자산 (gross − 현재 잠금 이익)."""
        return max(0, state.gross_assets - self._locked_profit.current(state, now))

    def convert_to_shares(self, state: VaultState, assets: int, now: int) -> int:
        if state.total_shares == 0:
            return assets
        free = self.free_assets(state, now)
        if free == 0:
            return 0
        return assets * state.total_shares // free

    def convert_to_assets(self, state: VaultState, shares: int, now: int) -> int:
        if state.total_shares == 0:
            return 0
        return shares * self.free_assets(state, now) // state.total_shares

    def price_per_share(self, state: VaultState, now: int) -> int:
        """share 1 단위의 자산 가치 (share 없으면 1 단위)."""
        if state.total_shares == 0:
            return state.one_unit
        return self.convert_to_assets(state, state.one_unit, now)

    def shares_for_withdraw(self, state: VaultState, assets: int, now: int) -> int:
        """assets를 인출하기 위해 소각할 share (ceil).

        Raises:
            InvalidParameter: share는 있는데 free assets가 0인 경우
        """
        if state.total_shares == 0:
            return assets
        free = self.free_assets(state, now)
        if free == 0:
            msg = "Vault has no free assets to withdraw"
            raise InvalidParameter(msg, context={"assets": assets})
        return _div_up(assets * state.total_shares, free)

    def assets_for_mint(self, state: VaultState, shares: int, now: int) -> int:
        """shares를 발행하기 위해 필요한 자산 (ceil)."""
        if state.total_shares == 0:
            return shares
        return _div_up(shares * self.free_assets(state, now), state.total_shares)

    # ── Deposit Limits & Previews ──────────────────────────────────

    def max_deposit(self, state: VaultState) -> int:
        if state.emergency_shutdown or state.gross_assets >= state.deposit_limit:
            return 0
        return state.deposit_limit - state.gross_assets

    def max_mint(self, state: VaultState, now: int) -> int:
        return self.convert_to_shares(state, self.max_deposit(state), now)

    def preview_deposit(self, state: VaultState, assets: int, now: int) -> int:
        """deposit 시 발행될 share (거부될 요청이면 0)."""
        if assets <= 0 or assets > self.max_deposit(state):
            return 0
        return self.convert_to_shares(state, assets, now)

    def preview_mint(self, state: VaultState, shares: int, now: int) -> int:
        """mint 시 필요한 자산 (거부될 요청이면 0)."""
        if shares <= 0:
            return 0
        if state.total_shares > 0 and self.free_assets(state, now) == 0:
            return 0
        assets = self.assets_for_mint(state, shares, now)
        if assets > self.max_deposit(state):
            return 0
        return assets

    # ── Deposit / Mint ─────────────────────────────────────────────

    def deposit(
        self, state: VaultState, assets: int, receiver: str, now: int
    ) -> DepositResult:
        """자산을 받아 share 발행.

        Raises:
            InvalidParameter: assets ≤ 0 또는 발행 share가 0
            LimitExceeded: 긴급 정지 또는 입금 한도 초과
        """
        if assets <= 0:
            msg = "Deposit amount must be positive"
            raise InvalidParameter(msg, context={"assets": assets})
        self._check_deposit_limit(state, assets)
        self._check_holder(state, receiver)

        shares = self.convert_to_shares(state, assets, now)
        if shares == 0:
            msg = "Deposit would mint zero shares"
            raise InvalidParameter(msg, context={"assets": assets})

        self.issue(state, receiver, shares)
        state.idle_assets += assets
        return DepositResult(receiver=receiver, assets=assets, shares=shares)

    def mint(
        self, state: VaultState, shares: int, receiver: str, now: int
    ) -> DepositResult:
        """정확한 share 수량을 발행하고 필요한 자산(ceil)을 받음.

        Raises:
            InvalidParameter: shares ≤ 0 또는 free assets가 0
            LimitExceeded: 긴급 정지 또는 입금 한도 초과
        """
        if shares <= 0:
            msg = "Mint amount must be positive"
            raise InvalidParameter(msg, context={"shares": shares})
        if state.total_shares > 0 and self.free_assets(state, now) == 0:
            msg = "Vault has no free assets to price shares"
            raise InvalidParameter(msg, context={"shares": shares})
        self._check_holder(state, receiver)

        assets = self.assets_for_mint(state, shares, now)
        self._check_deposit_limit(state, assets)

        self.issue(state, receiver, shares)
        state.idle_assets += assets
        return DepositResult(receiver=receiver, assets=assets, shares=shares)

    def _check_deposit_limit(self, state: VaultState, assets: int) -> None:
        if state.emergency_shutdown:
            msg = "Deposits are disabled during emergency shutdown"
            raise LimitExceeded(msg, context={"assets": assets})
        if state.gross_assets + assets > state.deposit_limit:
            msg = "Deposit limit exceeded"
            raise LimitExceeded(
                msg,
                context={
                    "assets": assets,
                    "gross_assets": state.gross_assets,
                    "deposit_limit": state.deposit_limit,
                },
            )

    # ── Share Supply ───────────────────────────────────────────────

    def issue(self, state: VaultState, holder: str, shares: int) -> None:
        """holder에게 share 발행."""
        if shares <= 0:
            return
        state.balances[holder] = state.balance_of(holder) + shares
        state.total_shares += shares

    def burn(self, state: VaultState, holder: str, shares: int) -> None:
        """holder의 share 소각.

        Raises:
            InsufficientBalance: 잔액 부족
        """
        balance = state.balance_of(holder)
        if shares > balance:
            msg = "Insufficient share balance"
            raise InsufficientBalance(
                msg, context={"holder": holder, "balance": balance, "shares": shares}
            )
        remaining = balance - shares
        if remaining:
            state.balances[holder] = remaining
        else:
            state.balances.pop(holder, None)
        state.total_shares -= shares

    # ── Transfers & Allowances ─────────────────────────────────────

    def transfer(
        self, state: VaultState, sender: str, receiver: str, amount: int
    ) -> None:
        if amount < 0:
            msg = "Transfer amount must not be negative"
            raise InvalidParameter(msg, context={"amount": amount})
        self._check_holder(state, receiver)
        balance = state.balance_of(sender)
        if amount > balance:
            msg = "Insufficient share balance"
            raise InsufficientBalance(
                msg, context={"holder": sender, "balance": balance, "amount": amount}
            )
        if amount == 0 or sender == receiver:
            return
        self.burn(state, sender, amount)
        self.issue(state, receiver, amount)

    def approve(
        self, state: VaultState, owner: str, spender: str, amount: int
    ) -> None:
        if amount < 0:
            msg = "Allowance must not be negative"
            raise InvalidParameter(msg, context={"amount": amount})
        if not spender:
            msg = "Spender must not be empty"
            raise InvalidParameter(msg)
        if amount:
            state.allowances[(owner, spender)] = amount
        else:
            state.allowances.pop((owner, spender), None)

    def spend_allowance(
        self, state: VaultState, owner: str, spender: str, amount: int
    ) -> None:
        """spender가 owner의 share를 쓸 때 allowance 차감 (unlimited 제외).

        Raises:
            InsufficientAllowance: allowance < amount
        """
        if spender == owner:
            return
        allowance = state.allowance(owner, spender)
        if allowance == UNLIMITED_ALLOWANCE:
            return
        if allowance < amount:
            msg = "Insufficient allowance"
            raise InsufficientAllowance(
                msg,
                context={
                    "owner": owner,
                    "spender": spender,
                    "allowance": allowance,
                    "amount": amount,
                },
            )
        self.approve(state, owner, spender, allowance - amount)

    def transfer_from(
        self,
        state: VaultState,
        spender: str,
        owner: str,
        receiver: str,
        amount: int,
    ) -> None:
        self.spend_allowance(state, owner, spender, amount)
        self.transfer(state, owner, receiver, amount)

    def _check_holder(self, state: VaultState, receiver: str) -> None:
        if not receiver or receiver == state.address:
            msg = "Invalid share receiver"
            raise InvalidParameter(msg, context={"receiver": receiver})
