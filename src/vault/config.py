"""Vault Configuration.

Vault 생성 입력값을 정의합니다. 식별자와 역할 보유자는 명시적으로
지정해야 하며, 수수료·한도·잠금 기간은 VaultSettings에서 기본값을
가져올 수 있습니다.

Rules Applied:
    - #11 Pydantic Modeling: frozen=True, field validators
    - #10 Python Standards: Modern typing (Self)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.vault.constants import (
    DEFAULT_LOCK_FULL_DURATION,
    DEFAULT_MANAGEMENT_FEE_BPS,
    DEFAULT_PERFORMANCE_FEE_BPS,
    MAX_BPS,
    MAXIMUM_STRATEGIES,
)

if TYPE_CHECKING:
    from src.config.settings import VaultSettings


class VaultConfig(BaseModel):
    """Vault 생성 설정.

    Attributes:
        address: 볼트 식별자 (share 토큰 주소 역할)
        asset: 관리 자산 토큰 식별자
        decimals: 자산 소수점 자리수
        governance: 최상위 관리자
        management: 전략 운용 관리자
        guardian: 긴급 정지 권한자 (None이면 governance만 가능)
        fee_recipient: 볼트 수수료 share 수령자
        deposit_limit: 입금 한도 (gross 자산 기준)
        performance_fee_bps: 볼트 성과 수수료
        management_fee_bps: 연간 운용 수수료
        dispense_rate_bps: 순이익 중 잠금 비율
        lock_full_duration: 잠금 이익 해제 기간 (초)
        max_queue_length: 출금 큐 최대 길이

    Example:
        >>> config = VaultConfig(
        ...     address="vault-usdc",
        ...     asset="usdc",
        ...     governance="gov",
        ...     management="mgmt",
        ...     fee_recipient="rewards",
        ...     deposit_limit=1_000_000 * 10**6,
        ... )
    """

    model_config = ConfigDict(frozen=True)

    # ==========================================================================
    # Identity
    # ==========================================================================
    address: str = Field(min_length=1)
    asset: str = Field(min_length=1)
    decimals: int = Field(default=6, ge=0, le=36)

    # ==========================================================================
    # Roles
    # ==========================================================================
    governance: str = Field(min_length=1)
    management: str = Field(min_length=1)
    guardian: str | None = None
    fee_recipient: str = Field(min_length=1)

    # ==========================================================================
    # Economics
    # ==========================================================================
    deposit_limit: int = Field(default=0, ge=0)
    performance_fee_bps: int = Field(default=DEFAULT_PERFORMANCE_FEE_BPS, ge=0, le=MAX_BPS)
    management_fee_bps: int = Field(default=DEFAULT_MANAGEMENT_FEE_BPS, ge=0, le=MAX_BPS)
    dispense_rate_bps: int = Field(default=0, ge=0, le=MAX_BPS)
    lock_full_duration: int = Field(default=DEFAULT_LOCK_FULL_DURATION, ge=1)
    max_queue_length: int = Field(default=MAXIMUM_STRATEGIES, ge=1, le=100)

    @model_validator(mode="after")
    def validate_identity(self) -> Self:
        """볼트 주소와 관리 자산이 같은 식별자를 쓰지 않는지 확인.

        Raises:
            ValueError: address == asset
        """
        if self.address == self.asset:
            msg = f"Vault address and asset must differ (both '{self.address}')"
            raise ValueError(msg)
        return self

    @classmethod
    def from_settings(
        cls,
        settings: VaultSettings,
        *,
        address: str,
        asset: str,
        governance: str,
        management: str,
        fee_recipient: str,
        **overrides: Any,
    ) -> VaultConfig:
        """VaultSettings 기본값으로 VaultConfig 생성.

        Args:
            settings: 기본값 소스
            address: 볼트 식별자
            asset: 관리 자산 식별자
            governance: 최상위 관리자
            management: 전략 운용 관리자
            fee_recipient: 수수료 수령자
            **overrides: settings 값 대신 사용할 필드

        Returns:
            검증된 VaultConfig
        """
        values: dict[str, Any] = {
            "address": address,
            "asset": asset,
            "governance": governance,
            "management": management,
            "fee_recipient": fee_recipient,
            "decimals": settings.asset_decimals,
            "deposit_limit": settings.deposit_limit,
            "performance_fee_bps": settings.performance_fee_bps,
            "management_fee_bps": settings.management_fee_bps,
            "dispense_rate_bps": settings.dispense_rate_bps,
            "lock_full_duration": settings.lock_full_duration,
            "max_queue_length": settings.max_queue_length,
        }
        values.update(overrides)
        return cls.model_validate(values)
