"""시뮬레이션 시나리오 YAML 로더.

YAML 파일에서 ScenarioConfig(볼트 설정, 전략 목록, 순서 있는 스텝)를
로드하고 검증합니다.

Example YAML:
    vault:
      address: vault-usdc
      asset: usdc
      governance: gov
      management: mgmt
      fee_recipient: rewards
      deposit_limit: 1000000000000
    strategies:
      - id: strat-lending
        debt_ratio: 3000
        max_debt_per_harvest: 1000000000000
    steps:
      - {action: deposit, caller: alice, amount: 100000000}
      - {action: harvest, strategy: strat-lending}

Rules Applied:
    - #11 Pydantic Modeling: frozen=True, field/model validators
    - #10 Python Standards: Modern typing, Path
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Self

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.vault.config import VaultConfig
from src.vault.constants import MAX_BPS

if TYPE_CHECKING:
    from src.config.settings import VaultSettings

StepAction = Literal[
    "deposit",
    "mint",
    "withdraw",
    "redeem",
    "transfer",
    "transfer_from",
    "approve",
    "harvest",
    "advance",
    "earn",
    "lose",
    "set_liquidity",
    "set_liquidation_loss",
    "update_debt_ratio",
    "update_min_debt_per_harvest",
    "update_max_debt_per_harvest",
    "update_performance_fee",
    "revoke_strategy",
    "add_to_queue",
    "remove_from_queue",
    "insert_to_queue",
    "set_deposit_limit",
    "set_performance_fee",
    "set_management_fee",
    "set_dispense_rate",
    "set_emergency_shutdown",
    "receive_token",
    "sweep",
]

# 액션별 필수 필드
_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "deposit": ("caller", "amount"),
    "mint": ("caller", "amount"),
    "withdraw": ("caller", "amount"),
    "redeem": ("caller", "amount"),
    "transfer": ("caller", "receiver", "amount"),
    "transfer_from": ("caller", "owner", "receiver", "amount"),
    "approve": ("caller", "spender", "amount"),
    "harvest": ("strategy",),
    "advance": ("seconds",),
    "earn": ("strategy", "amount"),
    "lose": ("strategy", "amount"),
    "set_liquidity": ("strategy",),
    "set_liquidation_loss": ("strategy", "value"),
    "update_debt_ratio": ("strategy", "value"),
    "update_min_debt_per_harvest": ("strategy", "value"),
    "update_max_debt_per_harvest": ("strategy", "value"),
    "update_performance_fee": ("strategy", "value"),
    "revoke_strategy": ("strategy",),
    "add_to_queue": ("strategy",),
    "remove_from_queue": ("strategy",),
    "insert_to_queue": ("strategy", "index"),
    "set_deposit_limit": ("value",),
    "set_performance_fee": ("value",),
    "set_management_fee": ("value",),
    "set_dispense_rate": ("value",),
    "set_emergency_shutdown": ("active",),
    "receive_token": ("token", "amount"),
    "sweep": ("token",),
}


class VaultSection(BaseModel):
    """시나리오의 볼트 설정 (생략한 값은 VaultSettings 기본값)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    address: str = Field(min_length=1)
    asset: str = Field(min_length=1)
    governance: str = Field(min_length=1)
    management: str = Field(min_length=1)
    fee_recipient: str = Field(min_length=1)
    guardian: str | None = None
    decimals: int | None = Field(default=None, ge=0, le=36)
    deposit_limit: int | None = Field(default=None, ge=0)
    performance_fee_bps: int | None = Field(default=None, ge=0, le=MAX_BPS)
    management_fee_bps: int | None = Field(default=None, ge=0, le=MAX_BPS)
    dispense_rate_bps: int | None = Field(default=None, ge=0, le=MAX_BPS)
    lock_full_duration: int | None = Field(default=None, ge=1)
    max_queue_length: int | None = Field(default=None, ge=1, le=100)

    def to_config(self, settings: VaultSettings) -> VaultConfig:
        """settings 기본값을 채워 VaultConfig 생성."""
        overrides = self.model_dump(
            exclude={"address", "asset", "governance", "management", "fee_recipient"},
            exclude_none=True,
        )
        return VaultConfig.from_settings(
            settings,
            address=self.address,
            asset=self.asset,
            governance=self.governance,
            management=self.management,
            fee_recipient=self.fee_recipient,
            **overrides,
        )


class StrategySpec(BaseModel):
    """시나리오 전략 정의."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    kind: str = "simulated"
    debt_ratio: int = Field(ge=0, le=MAX_BPS)
    min_debt_per_harvest: int = Field(default=0, ge=0)
    max_debt_per_harvest: int = Field(ge=0)
    performance_fee_bps: int = Field(default=0, ge=0, le=MAX_BPS)
    liquidity: int | None = Field(default=None, ge=0)
    liquidation_loss_bps: int = Field(default=0, ge=0, le=MAX_BPS)

    @model_validator(mode="after")
    def validate_harvest_bounds(self) -> Self:
        if self.min_debt_per_harvest > self.max_debt_per_harvest:
            msg = (
                f"min_debt_per_harvest ({self.min_debt_per_harvest}) > "
                f"max_debt_per_harvest ({self.max_debt_per_harvest})"
            )
            raise ValueError(msg)
        return self


class ScenarioStep(BaseModel):
    """시나리오 스텝 1개.

    Attributes:
        action: 실행할 연산
        caller: 호출자 (관리 연산에서 생략하면 governance)
        strategy: 대상 전략 id
        amount: 자산 또는 share 수량
        value: bps/한도 등 설정 값
        expect_error: 발생해야 하는 예외 클래스 이름 (예: "LimitExceeded")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: StepAction
    caller: str | None = None
    strategy: str | None = None
    amount: int | None = Field(default=None, ge=0)
    receiver: str | None = None
    owner: str | None = None
    spender: str | None = None
    token: str | None = None
    max_loss_bps: int = Field(default=0, ge=0, le=MAX_BPS)
    seconds: int | None = Field(default=None, ge=0)
    value: int | None = Field(default=None, ge=0)
    index: int | None = Field(default=None, ge=0)
    active: bool | None = None
    expect_error: str | None = None
    note: str | None = None

    @model_validator(mode="after")
    def validate_required_fields(self) -> Self:
        missing = [name for name in _REQUIRED_FIELDS[self.action] if getattr(self, name) is None]
        if missing:
            msg = f"Step '{self.action}' requires: {', '.join(missing)}"
            raise ValueError(msg)
        return self

    def describe(self) -> str:
        """사람이 읽을 수 있는 요약."""
        fields = self.model_dump(
            exclude={"action", "note", "max_loss_bps"}, exclude_none=True
        )
        if self.max_loss_bps:
            fields["max_loss_bps"] = self.max_loss_bps
        return ", ".join(f"{k}={v}" for k, v in fields.items())


class ScenarioConfig(BaseModel):
    """YAML 최상위 모델."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "scenario"
    description: str = ""
    start_time: int = Field(default=1_700_000_000, gt=0)
    vault: VaultSection
    strategies: list[StrategySpec] = Field(default_factory=list)
    steps: list[ScenarioStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_strategy_refs(self) -> Self:
        ids = [spec.id for spec in self.strategies]
        if len(ids) != len(set(ids)):
            msg = f"Duplicate strategy ids: {ids}"
            raise ValueError(msg)
        known = set(ids)
        for position, step in enumerate(self.steps):
            if step.strategy is not None and step.strategy not in known:
                msg = f"Step {position} ({step.action}) references unknown strategy '{step.strategy}'"
                raise ValueError(msg)
        return self


def load_scenario(path: str | Path) -> ScenarioConfig:
    """YAML → ScenarioConfig (Pydantic 검증 포함).

    Args:
        path: YAML 시나리오 파일 경로

    Returns:
        검증된 ScenarioConfig 인스턴스

    Raises:
        FileNotFoundError: 파일이 존재하지 않을 경우
        yaml.YAMLError: YAML 파싱 실패
        pydantic.ValidationError: 검증 실패
    """
    file_path = Path(path)
    if not file_path.exists():
        msg = f"Scenario file not found: {file_path}"
        raise FileNotFoundError(msg)

    raw: Any = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    return ScenarioConfig.model_validate(raw)
