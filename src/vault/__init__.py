"""Pooled-capital multi-strategy vault engine.

Components:
    - ShareLedger: share/asset 환산, 입금, share 원장
    - StrategyRegistry: 전략 파라미터, debt ratio 회계
    - WithdrawalQueue: 출금 우선순위 큐
    - LockedProfitTracker: harvest 이익 선형 해제
    - ReportEngine: harvest 정산
    - WithdrawalWaterfall: idle → 전략 순서 출금
    - Vault: 위 컴포넌트를 트랜잭션으로 묶는 퍼사드

Example:
    >>> from src.vault import ManualClock, Vault, VaultConfig
    >>> vault = Vault(VaultConfig(...), clock=ManualClock())
"""

from src.vault.clock import Clock, ManualClock, SystemClock
from src.vault.config import VaultConfig
from src.vault.history import ReportRecord, reports_frame, strategy_summary
from src.vault.models import (
    DepositResult,
    FeeBreakdown,
    ReportResult,
    Role,
    StrategyParams,
    VaultState,
    WithdrawResult,
)
from src.vault.queue import WithdrawalQueue
from src.vault.vault import Vault

__all__ = [
    "Clock",
    "DepositResult",
    "FeeBreakdown",
    "ManualClock",
    "ReportRecord",
    "ReportResult",
    "Role",
    "StrategyParams",
    "SystemClock",
    "Vault",
    "VaultConfig",
    "VaultState",
    "WithdrawResult",
    "WithdrawalQueue",
    "reports_frame",
    "strategy_summary",
]
