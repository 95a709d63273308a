"""Vault Domain Models.

볼트 엔진의 상태 컨테이너(VaultState, StrategyParams)와
연산 결과 레코드를 정의합니다.

VaultState는 Vault 인스턴스가 단독 소유하며, 모든 변경은
src.vault 컴포넌트의 연산을 통해서만 이루어집니다.

Rules Applied:
    - #10 Python Standards: Modern typing (StrEnum), dataclass
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum

from src.vault.queue import WithdrawalQueue


class Role(StrEnum):
    """권한(capability) 역할.

    Attributes:
        GOVERNANCE: 최상위 관리자 (수수료, 한도, 역할 변경)
        MANAGEMENT: 전략 운용 관리자 (전략 추가/비율 조정/큐 관리)
        GUARDIAN: 긴급 정지 및 전략 철회 권한
    """

    GOVERNANCE = "governance"
    MANAGEMENT = "management"
    GUARDIAN = "guardian"


@dataclass
class StrategyParams:
    """전략별 파라미터와 누적 회계 값.

    철회(revoke) 후에도 슬롯은 유지되며 activation/debt_ratio만 0이 됩니다.

    Attributes:
        strategy_id: 전략 식별자
        performance_fee_bps: 전략 성과 수수료 (볼트 수수료에 가산)
        activation: 활성화 시각 (0 = 비활성)
        debt_ratio: 목표 배분 비율 (bps)
        min_debt_per_harvest: harvest당 최소 신규 대출
        max_debt_per_harvest: harvest당 최대 신규 대출
        last_report: 마지막 report 시각
        total_debt: 전략에 배치된 자산
        total_gain: 누적 순이익
        total_loss: 누적 손실
    """

    strategy_id: str
    performance_fee_bps: int = 0
    activation: int = 0
    debt_ratio: int = 0
    min_debt_per_harvest: int = 0
    max_debt_per_harvest: int = 0
    last_report: int = 0
    total_debt: int = 0
    total_gain: int = 0
    total_loss: int = 0

    @property
    def is_active(self) -> bool:
        """activation이 설정되어 있으면 활성."""
        return self.activation != 0

    def to_dict(self) -> dict[str, object]:
        """직렬화용 dict 반환."""
        return asdict(self)


@dataclass
class VaultState:
    """볼트 전체 상태 (단일 인스턴스).

    Attributes:
        address: 볼트 식별자
        asset: 관리 자산 토큰 식별자
        decimals: 자산 소수점 자리수
        total_shares: 발행된 share 총량
        balances: holder → share 잔액
        allowances: (owner, spender) → 승인 수량
        idle_assets: 전략에 배치되지 않은 보유 자산
        total_debt: 전략들에 배치된 자산 합계
        debt_ratio: 활성 전략 debt_ratio 합계
        deposit_limit: 입금 한도 (gross 자산 기준)
        emergency_shutdown: 긴급 정지 여부
        performance_fee_bps: 볼트 성과 수수료
        management_fee_bps: 연간 운용 수수료
        dispense_rate_bps: 순이익 중 잠금 비율
        lock_full_duration: 잠금 이익 해제 기간 (초)
        locked_profit: 잠금 이익 (마지막 정산 시점 기준)
        locked_profit_updated_at: 잠금 이익 마지막 정산 시각
        last_report: 마지막 report 시각 (볼트 레벨)
        activation: 볼트 생성 시각
        governance / pending_governance / management / guardian / fee_recipient:
            역할 보유자
        strategies: 전략 id → StrategyParams
        withdrawal_queue: 출금 우선순위 큐
        stray_tokens: 관리 자산 외 수신 토큰 잔액 (sweep 대상)
    """

    address: str
    asset: str
    decimals: int
    governance: str
    management: str
    fee_recipient: str
    guardian: str | None = None
    pending_governance: str | None = None
    total_shares: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[tuple[str, str], int] = field(default_factory=dict)
    idle_assets: int = 0
    total_debt: int = 0
    debt_ratio: int = 0
    deposit_limit: int = 0
    emergency_shutdown: bool = False
    performance_fee_bps: int = 0
    management_fee_bps: int = 0
    dispense_rate_bps: int = 0
    lock_full_duration: int = 1
    locked_profit: int = 0
    locked_profit_updated_at: int = 0
    last_report: int = 0
    activation: int = 0
    strategies: dict[str, StrategyParams] = field(default_factory=dict)
    withdrawal_queue: WithdrawalQueue = field(default_factory=WithdrawalQueue)
    stray_tokens: dict[str, int] = field(default_factory=dict)

    @property
    def gross_assets(self) -> int:
        """idle + 전략 배치 자산 (입금 한도, debt 목표 기준)."""
        return self.idle_assets + self.total_debt

    @property
    def one_unit(self) -> int:
        """자산 1 단위."""
        return 10**self.decimals

    def balance_of(self, holder: str) -> int:
        """holder의 share 잔액."""
        return self.balances.get(holder, 0)

    def allowance(self, owner: str, spender: str) -> int:
        """owner가 spender에게 승인한 잔여 수량."""
        return self.allowances.get((owner, spender), 0)


# ── Operation Results ─────────────────────────────────────────────


@dataclass(frozen=True)
class DepositResult:
    """deposit/mint 결과.

    Attributes:
        receiver: share 수령자
        assets: 입금된 자산
        shares: 발행된 share
    """

    receiver: str
    assets: int
    shares: int


@dataclass(frozen=True)
class WithdrawResult:
    """withdraw/redeem 결과.

    Attributes:
        owner: share 소유자
        receiver: 자산 수령자
        assets: 실제 전달된 자산
        shares: 소각된 share
        loss: 전략 청산에서 실현된 손실
        shortfall: 큐를 모두 소진한 후에도 충족되지 못한 부족분
    """

    owner: str
    receiver: str
    assets: int
    shares: int
    loss: int = 0
    shortfall: int = 0


@dataclass(frozen=True)
class FeeBreakdown:
    """report 1회에서 부과된 수수료 (자산 단위)."""

    management: int = 0
    performance: int = 0
    strategist: int = 0

    @property
    def vault_total(self) -> int:
        """fee recipient 몫 (운용 + 볼트 성과 수수료)."""
        return self.management + self.performance

    @property
    def total(self) -> int:
        """전체 수수료."""
        return self.management + self.performance + self.strategist


@dataclass(frozen=True)
class ReportResult:
    """report 결과: 전략이 정산해야 할 지시.

    credit과 debt_payment 중 하나만 0이 아닐 수 있습니다.

    Attributes:
        strategy_id: 보고 전략
        timestamp: report 시각
        gain: 보고된 이익
        loss: 보고된 손실
        debt_payment: 전략이 볼트로 보내야 할 상환액
        credit: 볼트가 전략에 보낸 신규 자산
        debt_outstanding: 정산 후에도 남은 초과 부채
        fees: 부과된 수수료
        fee_shares: fee recipient에게 발행된 share
        strategist_shares: 전략에게 발행된 share
    """

    strategy_id: str
    timestamp: int
    gain: int
    loss: int
    debt_payment: int
    credit: int
    debt_outstanding: int
    fees: FeeBreakdown = field(default_factory=FeeBreakdown)
    fee_shares: int = 0
    strategist_shares: int = 0

    @property
    def net_profit(self) -> int:
        """수수료 차감 후 순이익."""
        return self.gain - self.fees.total
