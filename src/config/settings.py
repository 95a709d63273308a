"""Pydantic Settings for configuration management.

This module provides centralized configuration management using
pydantic-settings. All settings are loaded from environment variables
and/or .env files with type validation.

Features:
    - Default vault economics (fees, dispense rate, lock duration)
    - Withdrawal queue capacity
    - Scenario / log directory configuration
    - Environment variable loading from .env

Rules Applied:
    - #11 Pydantic Modeling: BaseSettings, Field bounds
    - #19 Git Security: No secrets in code
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.vault.constants import (
    DEFAULT_LOCK_FULL_DURATION,
    DEFAULT_MANAGEMENT_FEE_BPS,
    DEFAULT_PERFORMANCE_FEE_BPS,
    MAX_BPS,
    MAXIMUM_STRATEGIES,
)


class VaultSettings(BaseSettings):
    """볼트 엔진 기본 설정.

    환경 변수 또는 .env 파일에서 설정을 로드합니다.
    VaultConfig 생성 시 명시되지 않은 값의 기본값으로 사용됩니다.

    Environment Variables:
        - VAULT_ASSET_DECIMALS: 관리 자산 소수점 자리수 (기본: 6)
        - VAULT_DEPOSIT_LIMIT: 기본 입금 한도 (최소 단위, 기본: 0)
        - VAULT_PERFORMANCE_FEE_BPS: 성과 수수료 (기본: 1000)
        - VAULT_MANAGEMENT_FEE_BPS: 운용 수수료 (기본: 200)
        - VAULT_DISPENSE_RATE_BPS: locked profit 비율 (기본: 0)
        - VAULT_LOCK_FULL_DURATION: locked profit 해제 기간 (초)
        - VAULT_MAX_QUEUE_LENGTH: 출금 큐 최대 길이 (기본: 20)

    Example:
        >>> settings = get_settings()
        >>> settings.performance_fee_bps
        1000
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 알 수 없는 환경 변수 무시
    )

    # ==========================================================================
    # Asset
    # ==========================================================================
    asset_decimals: int = Field(
        default=6,
        ge=0,
        le=36,
        description="관리 자산 소수점 자리수",
    )
    deposit_limit: int = Field(
        default=0,
        ge=0,
        description="기본 입금 한도 (최소 단위, 0 = 입금 불가)",
    )

    # ==========================================================================
    # Fees (basis points)
    # ==========================================================================
    performance_fee_bps: int = Field(
        default=DEFAULT_PERFORMANCE_FEE_BPS,
        ge=0,
        le=MAX_BPS,
        description="볼트 성과 수수료 (bps)",
    )
    management_fee_bps: int = Field(
        default=DEFAULT_MANAGEMENT_FEE_BPS,
        ge=0,
        le=MAX_BPS,
        description="연간 운용 수수료 (bps)",
    )

    # ==========================================================================
    # Locked Profit
    # ==========================================================================
    dispense_rate_bps: int = Field(
        default=0,
        ge=0,
        le=MAX_BPS,
        description="순이익 중 잠금 비율 (bps, 0 = 즉시 반영)",
    )
    lock_full_duration: int = Field(
        default=DEFAULT_LOCK_FULL_DURATION,
        ge=1,
        description="잠금 이익이 완전히 해제되는 기간 (초)",
    )

    # ==========================================================================
    # Withdrawal Queue
    # ==========================================================================
    max_queue_length: int = Field(
        default=MAXIMUM_STRATEGIES,
        ge=1,
        le=100,
        description="출금 큐 최대 길이",
    )

    # ==========================================================================
    # Paths
    # ==========================================================================
    log_dir: Path = Field(
        default=Path("logs"),
        description="로그 파일 저장 경로",
    )
    scenario_dir: Path = Field(
        default=Path("scenarios"),
        description="시뮬레이션 시나리오 YAML 경로",
    )

    @field_validator("log_dir", "scenario_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: str | Path) -> Path:
        """문자열을 Path 객체로 변환."""
        return Path(v) if isinstance(v, str) else v

    def one_unit(self) -> int:
        """자산 1 단위 (10 ** decimals)."""
        return 10**self.asset_decimals


@lru_cache
def get_settings() -> VaultSettings:
    """설정 싱글톤 인스턴스 반환.

    lru_cache를 사용하여 설정 객체를 캐싱합니다.

    Returns:
        VaultSettings 인스턴스
    """
    return VaultSettings()


def clear_settings_cache() -> None:
    """설정 캐시 초기화 (테스트용)."""
    get_settings.cache_clear()
