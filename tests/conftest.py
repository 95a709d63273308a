"""Shared fixtures for tests.

이 모듈은 테스트에서 공통으로 사용되는 픽스처를 제공합니다.

Rules Applied:
    - #17 Testing Standards: Pytest fixtures
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from src.strategies.simulated import SimulatedStrategy
from src.vault.clock import ManualClock
from src.vault.config import VaultConfig
from src.vault.vault import Vault

# ---------------------------------------------------------------------------
# 디렉토리 경로 → pytest 마커 자동 매핑
# ---------------------------------------------------------------------------
_DIR_MARKER_MAP: dict[str, str] = {
    "/vault/": "vault",
    "/strategies/": "strategy",
    "/simulation/": "integration",
    "/cli/": "integration",
    "/core/": "unit",
    "/config/": "unit",
    "/logging/": "unit",
}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """디렉토리 경로 기반 자동 마커 부여."""
    for item in items:
        fspath = str(item.fspath)
        for dir_pattern, marker_name in _DIR_MARKER_MAP.items():
            if dir_pattern in fspath:
                item.add_marker(getattr(pytest.mark, marker_name))
                break


START_TIME = 1_700_000_000
UNIT = 10**6  # 6 decimals (USDC 형식)


@pytest.fixture
def clock() -> ManualClock:
    """고정 시작 시각의 수동 시계."""
    return ManualClock(start=START_TIME)


@pytest.fixture
def vault_config() -> VaultConfig:
    """수수료 없는 기본 볼트 설정 (입금 한도 1,000,000 단위)."""
    return VaultConfig(
        address="vault-usdc",
        asset="usdc",
        decimals=6,
        governance="gov",
        management="mgmt",
        guardian="guardian",
        fee_recipient="rewards",
        deposit_limit=1_000_000 * UNIT,
        performance_fee_bps=0,
        management_fee_bps=0,
        dispense_rate_bps=0,
        lock_full_duration=21_600,
    )


@pytest.fixture
def vault(vault_config: VaultConfig, clock: ManualClock) -> Vault:
    """빈 볼트."""
    return Vault(vault_config, clock=clock)


@pytest.fixture
def add_strategy(vault: Vault) -> Callable[..., SimulatedStrategy]:
    """SimulatedStrategy를 만들어 governance로 등록하는 팩토리."""

    def _add(
        strategy_id: str,
        debt_ratio: int,
        *,
        min_debt_per_harvest: int = 0,
        max_debt_per_harvest: int = 10**18,
        performance_fee_bps: int = 0,
        **kwargs: int,
    ) -> SimulatedStrategy:
        strategy = SimulatedStrategy(strategy_id, vault, **kwargs)
        vault.add_strategy(
            "gov",
            strategy,
            debt_ratio=debt_ratio,
            min_debt_per_harvest=min_debt_per_harvest,
            max_debt_per_harvest=max_debt_per_harvest,
            performance_fee_bps=performance_fee_bps,
        )
        return strategy

    return _add
