"""Custom exception hierarchy for the vault engine.

This module defines a domain-driven exception hierarchy following
Rules #23 (Exception Handling Standards). Every error raised by a vault
operation aborts the whole operation: the vault restores its pre-call
state before the exception reaches the caller.

Exception Categories:
    - Capability: Unauthorized
    - Limits: LimitExceeded, RatioExceeded, SlippageExceeded
    - Ledger: InsufficientBalance, InsufficientAllowance
    - Registry: InvalidStrategy
    - Validation: InvalidParameter
    - Simulation: ScenarioError

Rules Applied:
    - #23 Exception Handling: Domain-driven hierarchy, add_note()
"""


class VaultError(Exception):
    """모든 볼트 관련 예외의 기본 클래스.

    이 예외를 직접 발생시키지 말고, 하위 클래스를 사용하세요.

    Attributes:
        message: 에러 메시지
        context: 추가 컨텍스트 정보 (디버깅용)
    """

    def __init__(
        self, message: str, *, context: dict[str, object] | None = None
    ) -> None:
        """VaultError 초기화.

        Args:
            message: 에러 메시지
            context: 추가 컨텍스트 정보 (선택)
        """
        super().__init__(message)
        self.message = message
        self.context: dict[str, object] = context or {}

    def __str__(self) -> str:
        """에러 메시지와 컨텍스트를 포함한 문자열 반환."""
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


# =============================================================================
# Capability Errors
# =============================================================================


class Unauthorized(VaultError):
    """권한 검사 실패 (역할 불일치, 재진입 호출 등).

    Example:
        >>> raise Unauthorized(
        ...     "caller lacks required role",
        ...     context={"caller": "0xabc", "required": "governance"}
        ... )
    """


# =============================================================================
# Limit Errors
# =============================================================================


class LimitExceeded(VaultError):
    """입금 한도 초과 또는 긴급 정지 상태에서의 입금 시도."""


class RatioExceeded(VaultError):
    """debt ratio 합계 초과 또는 min/max harvest 범위 위반.

    Example:
        >>> raise RatioExceeded(
        ...     "debt ratio sum exceeds 10000 bps",
        ...     context={"current": 8000, "requested": 3000}
        ... )
    """


class SlippageExceeded(VaultError):
    """출금 시 실현 손실이 호출자의 max_loss_bps 허용치를 초과.

    Attributes:
        loss: 실현 손실 + 미충족 부족분
        tolerance: 허용 손실 한도
    """

    def __init__(
        self,
        message: str,
        *,
        loss: int = 0,
        tolerance: int = 0,
        context: dict[str, object] | None = None,
    ) -> None:
        """SlippageExceeded 초기화.

        Args:
            message: 에러 메시지
            loss: 실현 손실 + 미충족 부족분
            tolerance: 허용 손실 한도
            context: 추가 컨텍스트 정보
        """
        super().__init__(message, context=context)
        self.loss = loss
        self.tolerance = tolerance


# =============================================================================
# Ledger Errors
# =============================================================================


class InsufficientBalance(VaultError):
    """보유 share 또는 토큰 잔액 부족."""


class InsufficientAllowance(VaultError):
    """승인된 allowance가 요청 수량보다 작음."""


# =============================================================================
# Registry Errors
# =============================================================================


class InvalidStrategy(VaultError):
    """전략 식별 불일치, 비활성, 중복, 큐 가득 참 등.

    Example:
        >>> raise InvalidStrategy(
        ...     "strategy belongs to another vault",
        ...     context={"strategy": "strat-a", "vault": "vault-1"}
        ... )
    """


# =============================================================================
# Validation Errors
# =============================================================================


class InvalidParameter(VaultError):
    """인자 검증 오류 (음수 수량, 10000 bps 초과, 관리 자산 sweep 등)."""


# =============================================================================
# Simulation Errors
# =============================================================================


class ScenarioError(VaultError):
    """시나리오 스텝의 기대 결과 불일치 (expect_error 미발생 또는 다른 예외).

    Example:
        >>> raise ScenarioError(
        ...     "expected LimitExceeded",
        ...     context={"step": 3, "action": "deposit"}
        ... )
    """


# =============================================================================
# Utility Functions
# =============================================================================


def add_context_note(exc: Exception, note: str) -> None:
    """예외에 컨텍스트 노트 추가 (Python 3.11+ add_note).

    원본 Traceback을 보존하면서 디버깅 정보를 추가합니다.

    Args:
        exc: 예외 객체
        note: 추가할 노트 문자열

    Example:
        >>> try:
        ...     vault.report("strat-a", gain=10, loss=0, debt_payment=0)
        ... except Exception as e:
        ...     add_context_note(e, "Failed while harvesting strat-a")
        ...     raise
    """
    exc.add_note(note)
