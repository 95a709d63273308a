"""Vault — 다중 전략 풀링 볼트.

VaultState를 단독 소유하고, 모든 변경 연산을 트랜잭션으로 감싸는
퍼사드입니다. 하위 컴포넌트(ShareLedger, StrategyRegistry, ReportEngine,
WithdrawalWaterfall, LockedProfitTracker)는 상태를 인자로 받는
무상태 객체입니다.

Transaction Model:
    - 진입 시 VaultState deep copy + Transactional 전략 snapshot
    - 예외 발생 시 둘 다 복원 후 재발생 (부분 적용 없음)
    - 진행 중 재진입(중첩 변경 호출)은 Unauthorized
    - 진행 중 조회는 진입 시점 snapshot 기준

Rules Applied:
    - #10 Python Standards: contextmanager, keyword-only args
    - #15 Logging Standards: context-bound loguru logger
    - #23 Exception Handling: rollback then re-raise, no swallowing
"""

from __future__ import annotations

import copy
import dataclasses
from contextlib import contextmanager
from typing import TYPE_CHECKING

from src.core.exceptions import InsufficientBalance, InvalidParameter, Unauthorized
from src.logging.context import LoggingContext, generate_trace_id, get_vault_logger
from src.strategies.base import Transactional
from src.vault.access import require_role
from src.vault.clock import SystemClock
from src.vault.constants import MAX_BPS
from src.vault.history import ReportRecord, reports_frame
from src.vault.ledger import ShareLedger
from src.vault.locked_profit import LockedProfitTracker
from src.vault.models import Role, VaultState
from src.vault.queue import WithdrawalQueue
from src.vault.registry import StrategyRegistry
from src.vault.report import ReportEngine
from src.vault.waterfall import WithdrawalWaterfall

if TYPE_CHECKING:
    from collections.abc import Iterator

    import pandas as pd

    from src.strategies.base import Strategy
    from src.vault.clock import Clock
    from src.vault.config import VaultConfig
    from src.vault.models import (
        DepositResult,
        ReportResult,
        StrategyParams,
        WithdrawResult,
    )


def _check_bps(name: str, value: int) -> None:
    if not 0 <= value <= MAX_BPS:
        msg = f"{name} must be within [0, {MAX_BPS}] bps"
        raise InvalidParameter(msg, context={name: value})


class Vault:
    """단일 자산 다중 전략 볼트.

    모든 변경 메서드의 첫 인자는 호출자 식별자(caller)입니다.

    Args:
        config: 볼트 설정
        clock: 시간 소스 (기본: SystemClock)

    Example:
        >>> vault = Vault(config, clock=ManualClock())
        >>> vault.deposit("alice", 100 * 10**6)
        >>> strategy = SimulatedStrategy("strat-a", vault)
        >>> vault.add_strategy("gov", strategy, debt_ratio=3000,
        ...                    min_debt_per_harvest=0, max_debt_per_harvest=10**18,
        ...                    performance_fee_bps=0)
        >>> strategy.harvest()
    """

    def __init__(self, config: VaultConfig, *, clock: Clock | None = None) -> None:
        self._config = config
        self._clock: Clock = clock or SystemClock()
        now = self._clock.now()
        self._state = VaultState(
            address=config.address,
            asset=config.asset,
            decimals=config.decimals,
            governance=config.governance,
            management=config.management,
            guardian=config.guardian,
            fee_recipient=config.fee_recipient,
            deposit_limit=config.deposit_limit,
            performance_fee_bps=config.performance_fee_bps,
            management_fee_bps=config.management_fee_bps,
            dispense_rate_bps=config.dispense_rate_bps,
            lock_full_duration=config.lock_full_duration,
            locked_profit_updated_at=now,
            last_report=now,
            activation=now,
            withdrawal_queue=WithdrawalQueue(config.max_queue_length),
        )
        self._locked_profit = LockedProfitTracker()
        self._ledger = ShareLedger(self._locked_profit)
        self._registry = StrategyRegistry()
        self._reports = ReportEngine(self._ledger, self._registry, self._locked_profit)
        self._waterfall = WithdrawalWaterfall(self._ledger, self._registry)
        self._strategies: dict[str, Strategy] = {}
        self._history: list[ReportRecord] = []
        self._entry_snapshot: VaultState | None = None
        self._log = get_vault_logger(vault=config.address)
        self._log.info(
            "Vault created: asset={} deposit_limit={} performance_fee={} management_fee={}",
            config.asset,
            config.deposit_limit,
            config.performance_fee_bps,
            config.management_fee_bps,
        )

    # ── Transaction ────────────────────────────────────────────────

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[VaultState]:
        if self._entry_snapshot is not None:
            msg = "Reentrant vault call rejected"
            raise Unauthorized(msg, context={"operation": operation})

        snapshot = copy.deepcopy(self._state)
        participants = [
            (strategy, strategy.snapshot())
            for strategy in self._strategies.values()
            if isinstance(strategy, Transactional)
        ]
        self._entry_snapshot = snapshot
        try:
            with LoggingContext(
                vault=self._state.address,
                operation=operation,
                trace_id=generate_trace_id(),
            ):
                yield self._state
        except Exception as exc:
            self._state = snapshot
            for strategy, saved in participants:
                strategy.restore(saved)
            self._log.warning("Rolled back {}: {}", operation, exc)
            raise
        finally:
            self._entry_snapshot = None

    def _view(self) -> VaultState:
        if self._entry_snapshot is not None:
            return self._entry_snapshot
        return self._state

    def _now(self) -> int:
        return self._clock.now()

    # ── Identity & State Views ─────────────────────────────────────

    @property
    def address(self) -> str:
        return self._config.address

    @property
    def asset(self) -> str:
        return self._config.asset

    @property
    def decimals(self) -> int:
        return self._config.decimals

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def governance(self) -> str:
        return self._view().governance

    @property
    def pending_governance(self) -> str | None:
        return self._view().pending_governance

    @property
    def management(self) -> str:
        return self._view().management

    @property
    def guardian(self) -> str | None:
        return self._view().guardian

    @property
    def fee_recipient(self) -> str:
        return self._view().fee_recipient

    @property
    def emergency_shutdown(self) -> bool:
        return self._view().emergency_shutdown

    @property
    def deposit_limit(self) -> int:
        return self._view().deposit_limit

    @property
    def performance_fee(self) -> int:
        return self._view().performance_fee_bps

    @property
    def management_fee(self) -> int:
        return self._view().management_fee_bps

    @property
    def dispense_rate(self) -> int:
        return self._view().dispense_rate_bps

    @property
    def debt_ratio(self) -> int:
        return self._view().debt_ratio

    @property
    def total_debt(self) -> int:
        return self._view().total_debt

    @property
    def total_idle(self) -> int:
        return self._view().idle_assets

    @property
    def last_report(self) -> int:
        return self._view().last_report

    def snapshot(self) -> VaultState:
        """현재 상태의 독립 복사본."""
        return copy.deepcopy(self._view())

    # ── Ledger Views ───────────────────────────────────────────────

    def total_assets(self) -> int:
        """share 가격 기준 자산 (잠금 이익 제외)."""
        return self._ledger.free_assets(self._view(), self._now())

    def gross_assets(self) -> int:
        """idle + 전략 배치 자산."""
        return self._view().gross_assets

    def total_supply(self) -> int:
        return self._view().total_shares

    def locked_profit(self) -> int:
        """현재 시점의 잠금 이익."""
        return self._locked_profit.current(self._view(), self._now())

    def price_per_share(self) -> int:
        return self._ledger.price_per_share(self._view(), self._now())

    def convert_to_shares(self, assets: int) -> int:
        return self._ledger.convert_to_shares(self._view(), assets, self._now())

    def convert_to_assets(self, shares: int) -> int:
        return self._ledger.convert_to_assets(self._view(), shares, self._now())

    def balance_of(self, holder: str) -> int:
        return self._view().balance_of(holder)

    def allowance(self, owner: str, spender: str) -> int:
        return self._view().allowance(owner, spender)

    def max_deposit(self) -> int:
        return self._ledger.max_deposit(self._view())

    def max_mint(self) -> int:
        return self._ledger.max_mint(self._view(), self._now())

    def max_withdraw(self, owner: str) -> int:
        """idle 자산만으로 즉시 인출 가능한 자산."""
        state = self._view()
        if state.emergency_shutdown:
            return 0
        owned = self._ledger.convert_to_assets(state, state.balance_of(owner), self._now())
        return min(owned, state.idle_assets)

    def max_redeem(self, owner: str) -> int:
        """idle 자산만으로 즉시 상환 가능한 share."""
        state = self._view()
        if state.emergency_shutdown:
            return 0
        idle_shares = self._ledger.convert_to_shares(state, state.idle_assets, self._now())
        return min(state.balance_of(owner), idle_shares)

    def max_available_shares(self) -> int:
        """idle + 출금 큐 전략 부채로 회수 가능한 share 총량."""
        state = self._view()
        liquid = state.idle_assets + sum(
            state.strategies[strategy_id].total_debt for strategy_id in state.withdrawal_queue
        )
        return self._ledger.convert_to_shares(state, liquid, self._now())

    def preview_deposit(self, assets: int) -> int:
        return self._ledger.preview_deposit(self._view(), assets, self._now())

    def preview_mint(self, shares: int) -> int:
        return self._ledger.preview_mint(self._view(), shares, self._now())

    def preview_withdraw(self, assets: int) -> int:
        """assets 인출 시 소각될 share (idle 초과 요청이면 0)."""
        state = self._view()
        if state.emergency_shutdown or assets <= 0 or assets > state.idle_assets:
            return 0
        if state.total_shares > 0 and self._ledger.free_assets(state, self._now()) == 0:
            return 0
        return self._ledger.shares_for_withdraw(state, assets, self._now())

    def preview_redeem(self, shares: int) -> int:
        """shares 상환 시 받을 자산 (idle 초과 요청이면 0)."""
        state = self._view()
        if state.emergency_shutdown or shares <= 0:
            return 0
        assets = self._ledger.convert_to_assets(state, shares, self._now())
        if assets > state.idle_assets:
            return 0
        return assets

    # ── Ledger Mutations ───────────────────────────────────────────

    def deposit(
        self, caller: str, assets: int, receiver: str | None = None
    ) -> DepositResult:
        """자산 입금 후 share 발행 (receiver 기본값: caller)."""
        with self._transaction("deposit") as state:
            result = self._ledger.deposit(state, assets, receiver or caller, self._now())
        self._log.info(
            "Deposit: caller={} receiver={} assets={} shares={}",
            caller,
            result.receiver,
            result.assets,
            result.shares,
        )
        return result

    def mint(self, caller: str, shares: int, receiver: str | None = None) -> DepositResult:
        """정확한 share 발행 (필요 자산 ceil)."""
        with self._transaction("mint") as state:
            result = self._ledger.mint(state, shares, receiver or caller, self._now())
        self._log.info(
            "Mint: caller={} receiver={} assets={} shares={}",
            caller,
            result.receiver,
            result.assets,
            result.shares,
        )
        return result

    def withdraw(
        self,
        caller: str,
        assets: int,
        receiver: str | None = None,
        owner: str | None = None,
        max_loss_bps: int = 0,
    ) -> WithdrawResult:
        """자산 수량 기준 출금 (idle → 출금 큐 순서)."""
        with self._transaction("withdraw") as state:
            result = self._waterfall.withdraw(
                state,
                self._strategies,
                caller=caller,
                assets=assets,
                receiver=receiver or caller,
                owner=owner or caller,
                max_loss_bps=max_loss_bps,
                now=self._now(),
            )
        self._log_withdrawal("Withdraw", caller, result)
        return result

    def redeem(
        self,
        caller: str,
        shares: int,
        receiver: str | None = None,
        owner: str | None = None,
        max_loss_bps: int = 0,
    ) -> WithdrawResult:
        """share 수량 기준 상환 (idle → 출금 큐 순서)."""
        with self._transaction("redeem") as state:
            result = self._waterfall.redeem(
                state,
                self._strategies,
                caller=caller,
                shares=shares,
                receiver=receiver or caller,
                owner=owner or caller,
                max_loss_bps=max_loss_bps,
                now=self._now(),
            )
        self._log_withdrawal("Redeem", caller, result)
        return result

    def _log_withdrawal(self, label: str, caller: str, result: WithdrawResult) -> None:
        self._log.info(
            "{}: caller={} owner={} receiver={} assets={} shares={} loss={} shortfall={}",
            label,
            caller,
            result.owner,
            result.receiver,
            result.assets,
            result.shares,
            result.loss,
            result.shortfall,
        )

    def transfer(self, caller: str, receiver: str, amount: int) -> bool:
        with self._transaction("transfer") as state:
            self._ledger.transfer(state, caller, receiver, amount)
        return True

    def transfer_from(self, caller: str, owner: str, receiver: str, amount: int) -> bool:
        with self._transaction("transfer_from") as state:
            self._ledger.transfer_from(state, caller, owner, receiver, amount)
        return True

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        with self._transaction("approve") as state:
            self._ledger.approve(state, caller, spender, amount)
        return True

    # ── Strategy Registry ──────────────────────────────────────────

    def strategies(self, strategy_id: str) -> StrategyParams:
        """전략 파라미터 복사본."""
        return dataclasses.replace(self._registry.get(self._view(), strategy_id))

    def strategy_ids(self) -> list[str]:
        """등록된 모든 전략 id (철회 포함, 등록 순)."""
        return list(self._view().strategies)

    def strategy_adapter(self, strategy_id: str) -> Strategy:
        """등록된 전략 어댑터."""
        self._registry.get(self._view(), strategy_id)
        return self._strategies[strategy_id]

    def withdrawal_queue(self, index: int) -> str | None:
        return self._view().withdrawal_queue[index]

    def queue(self) -> list[str]:
        """출금 큐 (채워진 슬롯만)."""
        return self._view().withdrawal_queue.to_list()

    def debt_outstanding(self, strategy_id: str) -> int:
        return self._registry.debt_outstanding(self._view(), strategy_id)

    def credit_available(self, strategy_id: str) -> int:
        return self._registry.credit_available(self._view(), strategy_id)

    def add_strategy(
        self,
        caller: str,
        strategy: Strategy,
        *,
        debt_ratio: int,
        min_debt_per_harvest: int = 0,
        max_debt_per_harvest: int,
        performance_fee_bps: int = 0,
    ) -> None:
        """전략 등록 (governance 또는 management)."""
        with self._transaction("add_strategy") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.add(
                state,
                strategy.id,
                strategy.vault,
                debt_ratio=debt_ratio,
                min_debt_per_harvest=min_debt_per_harvest,
                max_debt_per_harvest=max_debt_per_harvest,
                performance_fee_bps=performance_fee_bps,
                now=self._now(),
            )
        self._strategies[strategy.id] = strategy
        self._log.info(
            "Strategy added: strategy={} debt_ratio={} min_debt={} max_debt={} fee={}",
            strategy.id,
            debt_ratio,
            min_debt_per_harvest,
            max_debt_per_harvest,
            performance_fee_bps,
        )

    def update_strategy_debt_ratio(self, caller: str, strategy_id: str, debt_ratio: int) -> None:
        with self._transaction("update_strategy_debt_ratio") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.update_debt_ratio(state, strategy_id, debt_ratio)
        self._log.info("Debt ratio updated: strategy={} debt_ratio={}", strategy_id, debt_ratio)

    def update_strategy_min_debt_per_harvest(
        self, caller: str, strategy_id: str, amount: int
    ) -> None:
        with self._transaction("update_strategy_min_debt_per_harvest") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.update_min_debt_per_harvest(state, strategy_id, amount)

    def update_strategy_max_debt_per_harvest(
        self, caller: str, strategy_id: str, amount: int
    ) -> None:
        with self._transaction("update_strategy_max_debt_per_harvest") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.update_max_debt_per_harvest(state, strategy_id, amount)

    def update_strategy_performance_fee(
        self, caller: str, strategy_id: str, fee_bps: int
    ) -> None:
        with self._transaction("update_strategy_performance_fee") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.update_performance_fee(state, strategy_id, fee_bps)

    def revoke_strategy(self, caller: str, strategy_id: str) -> None:
        """전략 비활성화 (governance, management, guardian)."""
        with self._transaction("revoke_strategy") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT, Role.GUARDIAN)
            self._registry.revoke(state, strategy_id)
        self._log.info("Strategy revoked: strategy={}", strategy_id)

    def add_strategy_to_queue(self, caller: str, strategy_id: str) -> None:
        with self._transaction("add_strategy_to_queue") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.add_to_queue(state, strategy_id)

    def remove_strategy_from_queue(self, caller: str, strategy_id: str) -> None:
        with self._transaction("remove_strategy_from_queue") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.remove_from_queue(state, strategy_id)

    def insert_strategy_to_queue(self, caller: str, strategy_id: str, index: int) -> None:
        with self._transaction("insert_strategy_to_queue") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.MANAGEMENT)
            self._registry.insert_in_queue(state, strategy_id, index)

    # ── Reporting ──────────────────────────────────────────────────

    def report(
        self,
        caller: str,
        *,
        gain: int,
        loss: int,
        debt_payment: int,
        strategy: str | None = None,
    ) -> ReportResult:
        """전략 harvest report (호출자 = 보고 전략).

        Args:
            caller: 호출 전략 id
            gain: 이익
            loss: 손실
            debt_payment: 상환 가능 자산
            strategy: 보고 대상 전략 (생략 시 caller)

        Raises:
            Unauthorized: caller가 보고 대상 전략이 아닌 경우
        """
        strategy_id = strategy or caller
        with self._transaction("report") as state:
            if caller != strategy_id:
                msg = "Only the strategy itself may report"
                raise Unauthorized(msg, context={"caller": caller, "strategy": strategy_id})
            now = self._now()
            result = self._reports.report(
                state,
                strategy_id,
                gain=gain,
                loss=loss,
                debt_payment=debt_payment,
                now=now,
            )
            record = ReportRecord(
                timestamp=now,
                result=result,
                price_per_share=self._ledger.price_per_share(state, now),
                total_assets=self._ledger.free_assets(state, now),
                total_shares=state.total_shares,
                locked_profit=self._locked_profit.current(state, now),
            )
        self._history.append(record)
        return result

    @property
    def history(self) -> tuple[ReportRecord, ...]:
        """report 기록 (시간순)."""
        return tuple(self._history)

    def history_frame(self) -> pd.DataFrame:
        """report 기록 DataFrame."""
        return reports_frame(self._history)

    # ── Governance ─────────────────────────────────────────────────

    def set_governance(self, caller: str, new_governance: str) -> None:
        """governance 이전 1단계 (수락 전까지 pending)."""
        with self._transaction("set_governance") as state:
            require_role(state, caller, Role.GOVERNANCE)
            if not new_governance:
                msg = "Governance must not be empty"
                raise InvalidParameter(msg)
            state.pending_governance = new_governance
        self._log.info("Governance transfer proposed: pending={}", new_governance)

    def accept_governance(self, caller: str) -> None:
        """pending governance가 이전을 수락."""
        with self._transaction("accept_governance") as state:
            if state.pending_governance is None or caller != state.pending_governance:
                msg = "Caller is not the pending governance"
                raise Unauthorized(msg, context={"caller": caller})
            state.governance = caller
            state.pending_governance = None
        self._log.info("Governance accepted: governance={}", caller)

    def set_management(self, caller: str, management: str) -> None:
        with self._transaction("set_management") as state:
            require_role(state, caller, Role.GOVERNANCE)
            if not management:
                msg = "Management must not be empty"
                raise InvalidParameter(msg)
            state.management = management

    def set_guardian(self, caller: str, guardian: str | None) -> None:
        """guardian 변경 (governance 또는 현재 guardian)."""
        with self._transaction("set_guardian") as state:
            require_role(state, caller, Role.GOVERNANCE, Role.GUARDIAN)
            state.guardian = guardian or None

    def set_fee_recipient(self, caller: str, fee_recipient: str) -> None:
        with self._transaction("set_fee_recipient") as state:
            require_role(state, caller, Role.GOVERNANCE)
            if not fee_recipient or fee_recipient == state.address:
                msg = "Invalid fee recipient"
                raise InvalidParameter(msg, context={"fee_recipient": fee_recipient})
            state.fee_recipient = fee_recipient

    def set_deposit_limit(self, caller: str, limit: int) -> None:
        with self._transaction("set_deposit_limit") as state:
            require_role(state, caller, Role.GOVERNANCE)
            if limit < 0:
                msg = "Deposit limit must not be negative"
                raise InvalidParameter(msg, context={"limit": limit})
            state.deposit_limit = limit
        self._log.info("Deposit limit updated: limit={}", limit)

    def set_performance_fee(self, caller: str, fee_bps: int) -> None:
        with self._transaction("set_performance_fee") as state:
            require_role(state, caller, Role.GOVERNANCE)
            _check_bps("performance_fee_bps", fee_bps)
            state.performance_fee_bps = fee_bps

    def set_management_fee(self, caller: str, fee_bps: int) -> None:
        with self._transaction("set_management_fee") as state:
            require_role(state, caller, Role.GOVERNANCE)
            _check_bps("management_fee_bps", fee_bps)
            state.management_fee_bps = fee_bps

    def set_dispense_rate(self, caller: str, rate_bps: int) -> None:
        """잠금 비율 변경 (기존 비율로 해제분 정산 후 적용)."""
        with self._transaction("set_dispense_rate") as state:
            require_role(state, caller, Role.GOVERNANCE)
            _check_bps("dispense_rate_bps", rate_bps)
            self._locked_profit.settle(state, self._now())
            state.dispense_rate_bps = rate_bps

    def set_emergency_shutdown(self, caller: str, active: bool) -> None:
        """긴급 정지 (활성: governance/guardian, 해제: governance)."""
        with self._transaction("set_emergency_shutdown") as state:
            if active:
                require_role(state, caller, Role.GOVERNANCE, Role.GUARDIAN)
            else:
                require_role(state, caller, Role.GOVERNANCE)
            state.emergency_shutdown = active
        self._log.warning("Emergency shutdown {}", "activated" if active else "lifted")

    # ── Stray Tokens ───────────────────────────────────────────────

    def receive_token(self, token: str, amount: int) -> None:
        """관리 자산이 아닌 토큰 수신 기록 (sweep 대상)."""
        with self._transaction("receive_token") as state:
            if amount <= 0:
                msg = "Received amount must be positive"
                raise InvalidParameter(msg, context={"token": token, "amount": amount})
            if token == state.asset:
                msg = "Managed asset enters the vault through deposit"
                raise InvalidParameter(msg, context={"token": token})
            state.stray_tokens[token] = state.stray_tokens.get(token, 0) + amount

    def stray_balance(self, token: str) -> int:
        return self._view().stray_tokens.get(token, 0)

    def sweep(self, caller: str, token: str, amount: int | None = None) -> int:
        """관리 자산 외 토큰을 governance로 회수하고 회수량 반환."""
        with self._transaction("sweep") as state:
            require_role(state, caller, Role.GOVERNANCE)
            if token == state.asset:
                msg = "Cannot sweep the managed asset"
                raise InvalidParameter(msg, context={"token": token})
            balance = state.stray_tokens.get(token, 0)
            value = balance if amount is None else amount
            if value < 0 or value > balance:
                msg = "Insufficient token balance"
                raise InsufficientBalance(
                    msg, context={"token": token, "balance": balance, "amount": value}
                )
            remaining = balance - value
            if remaining:
                state.stray_tokens[token] = remaining
            else:
                state.stray_tokens.pop(token, None)
        self._log.info("Swept token: token={} amount={}", token, value)
        return value
