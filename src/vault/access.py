"""Capability checks for privileged vault operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.core.exceptions import Unauthorized
from src.vault.models import Role

if TYPE_CHECKING:
    from src.vault.models import VaultState


def role_holder(state: VaultState, role: Role) -> str | None:
    """역할의 현재 보유자 반환 (미지정이면 None)."""
    match role:
        case Role.GOVERNANCE:
            return state.governance
        case Role.MANAGEMENT:
            return state.management
        case Role.GUARDIAN:
            return state.guardian


def has_role(state: VaultState, caller: str, *roles: Role) -> bool:
    """caller가 roles 중 하나라도 보유하면 True."""
    return any(
        (holder := role_holder(state, role)) is not None and holder == caller
        for role in roles
    )


def require_role(state: VaultState, caller: str, *roles: Role) -> None:
    """caller가 roles 중 하나를 보유하는지 검사.

    Args:
        state: 볼트 상태
        caller: 호출자 식별자
        *roles: 허용 역할 (하나라도 일치하면 통과)

    Raises:
        Unauthorized: 어떤 역할도 보유하지 않은 경우
    """
    if has_role(state, caller, *roles):
        return
    msg = "Caller lacks required role"
    raise Unauthorized(
        msg,
        context={"caller": caller, "required": "|".join(str(r) for r in roles)},
    )
