"""ScenarioRunner — YAML 시나리오를 볼트 위에서 순서대로 실행.

ManualClock으로 시간을 제어하며, 각 스텝을 Vault / SimulatedStrategy
연산으로 변환합니다. expect_error가 지정된 스텝은 해당 예외가
발생해야 통과하며, 그 외 예외는 스텝 정보를 노트로 붙여 전파합니다.

Rules Applied:
    - #10 Python Standards: match statement, dataclass
    - #15 Logging Standards: context-bound loguru logger
    - #23 Exception Handling: add_note() 후 재발생
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from src.config.settings import get_settings
from src.core.exceptions import ScenarioError, VaultError, add_context_note
from src.strategies.registry import get_strategy_class
from src.vault.clock import ManualClock
from src.vault.vault import Vault

if TYPE_CHECKING:
    from src.config.scenario_loader import ScenarioConfig, ScenarioStep
    from src.config.settings import VaultSettings
    from src.strategies.simulated import SimulatedStrategy


@dataclass(frozen=True)
class StepOutcome:
    """스텝 실행 결과.

    Attributes:
        index: 스텝 순번 (0부터)
        action: 실행한 연산
        timestamp: 실행 시각
        detail: 결과 요약
        error: 기대대로 발생한 예외 이름
    """

    index: int
    action: str
    timestamp: int
    detail: str
    error: str | None = None


@dataclass
class SimulationResult:
    """시나리오 실행 결과."""

    scenario: ScenarioConfig
    vault: Vault
    clock: ManualClock
    strategies: dict[str, SimulatedStrategy] = field(default_factory=dict)
    steps: list[StepOutcome] = field(default_factory=list)

    @property
    def expected_errors(self) -> int:
        return sum(1 for outcome in self.steps if outcome.error is not None)


class ScenarioRunner:
    """시나리오 실행기.

    Args:
        scenario: 검증된 시나리오
        settings: 볼트 기본값 (None이면 get_settings())

    Example:
        >>> result = ScenarioRunner(load_scenario("scenarios/basic.yaml")).run()
        >>> result.vault.price_per_share()
    """

    def __init__(
        self, scenario: ScenarioConfig, settings: VaultSettings | None = None
    ) -> None:
        self._scenario = scenario
        self._settings = settings or get_settings()

    def build(self) -> SimulationResult:
        """볼트와 전략을 만들고 등록 (스텝은 실행하지 않음)."""
        scenario = self._scenario
        clock = ManualClock(start=scenario.start_time)
        vault = Vault(scenario.vault.to_config(self._settings), clock=clock)
        result = SimulationResult(scenario=scenario, vault=vault, clock=clock)

        for spec in scenario.strategies:
            adapter_cls = get_strategy_class(spec.kind)
            strategy = adapter_cls(
                spec.id,
                vault,
                liquidity=spec.liquidity,
                liquidation_loss_bps=spec.liquidation_loss_bps,
            )
            vault.add_strategy(
                vault.governance,
                strategy,
                debt_ratio=spec.debt_ratio,
                min_debt_per_harvest=spec.min_debt_per_harvest,
                max_debt_per_harvest=spec.max_debt_per_harvest,
                performance_fee_bps=spec.performance_fee_bps,
            )
            result.strategies[spec.id] = strategy
        return result

    def run(self) -> SimulationResult:
        """모든 스텝 실행.

        Raises:
            ScenarioError: expect_error 스텝이 기대와 다르게 끝난 경우
            VaultError: 기대하지 않은 볼트 오류
        """
        result = self.build()
        logger.info(
            "Running scenario '{}': {} strategies, {} steps",
            self._scenario.name,
            len(result.strategies),
            len(self._scenario.steps),
        )
        for index, step in enumerate(self._scenario.steps):
            result.steps.append(self._run_step(result, index, step))
        return result

    def _run_step(
        self, result: SimulationResult, index: int, step: ScenarioStep
    ) -> StepOutcome:
        timestamp = result.clock.now()
        try:
            detail = self._dispatch(result, step)
        except VaultError as exc:
            if step.expect_error == type(exc).__name__:
                logger.debug("Step {} raised expected {}", index, step.expect_error)
                return StepOutcome(
                    index=index,
                    action=step.action,
                    timestamp=timestamp,
                    detail=str(exc),
                    error=type(exc).__name__,
                )
            add_context_note(exc, f"Scenario step {index} ({step.action}: {step.describe()})")
            if step.expect_error is not None:
                msg = f"Expected {step.expect_error}, got {type(exc).__name__}"
                raise ScenarioError(msg, context={"step": index, "action": step.action}) from exc
            raise

        if step.expect_error is not None:
            msg = f"Expected {step.expect_error}, but step succeeded"
            raise ScenarioError(msg, context={"step": index, "action": step.action})
        return StepOutcome(index=index, action=step.action, timestamp=timestamp, detail=detail)

    def _dispatch(self, result: SimulationResult, step: ScenarioStep) -> str:  # noqa: PLR0911, PLR0912, C901
        vault = result.vault
        admin = step.caller or vault.governance
        amount = step.amount or 0
        value = step.value or 0

        match step.action:
            case "deposit":
                deposited = vault.deposit(admin, amount, step.receiver)
                return f"shares={deposited.shares}"
            case "mint":
                minted = vault.mint(admin, amount, step.receiver)
                return f"assets={minted.assets}"
            case "withdraw":
                withdrawn = vault.withdraw(
                    admin, amount, step.receiver, step.owner, step.max_loss_bps
                )
                return f"assets={withdrawn.assets} shares={withdrawn.shares} loss={withdrawn.loss}"
            case "redeem":
                redeemed = vault.redeem(
                    admin, amount, step.receiver, step.owner, step.max_loss_bps
                )
                return f"assets={redeemed.assets} shares={redeemed.shares} loss={redeemed.loss}"
            case "transfer":
                vault.transfer(admin, step.receiver or "", amount)
                return f"to={step.receiver}"
            case "transfer_from":
                vault.transfer_from(admin, step.owner or "", step.receiver or "", amount)
                return f"from={step.owner} to={step.receiver}"
            case "approve":
                vault.approve(admin, step.spender or "", amount)
                return f"spender={step.spender}"
            case "harvest":
                report = self._strategy(result, step).harvest()
                return (
                    f"gain={report.gain} loss={report.loss} credit={report.credit} "
                    f"debt_payment={report.debt_payment} fees={report.fees.total}"
                )
            case "advance":
                return f"now={result.clock.advance(step.seconds or 0)}"
            case "earn":
                self._strategy(result, step).earn(amount)
                return f"pending_gain={self._strategy(result, step).pending_gain}"
            case "lose":
                self._strategy(result, step).lose(amount)
                return f"pending_loss={self._strategy(result, step).pending_loss}"
            case "set_liquidity":
                self._strategy(result, step).set_liquidity(step.amount)
                return f"liquidity={step.amount}"
            case "set_liquidation_loss":
                self._strategy(result, step).set_liquidation_loss(value)
                return f"loss_bps={value}"
            case "update_debt_ratio":
                vault.update_strategy_debt_ratio(admin, step.strategy or "", value)
                return f"debt_ratio={value}"
            case "update_min_debt_per_harvest":
                vault.update_strategy_min_debt_per_harvest(admin, step.strategy or "", value)
                return f"min_debt_per_harvest={value}"
            case "update_max_debt_per_harvest":
                vault.update_strategy_max_debt_per_harvest(admin, step.strategy or "", value)
                return f"max_debt_per_harvest={value}"
            case "update_performance_fee":
                vault.update_strategy_performance_fee(admin, step.strategy or "", value)
                return f"performance_fee={value}"
            case "revoke_strategy":
                vault.revoke_strategy(admin, step.strategy or "")
                return "revoked"
            case "add_to_queue":
                vault.add_strategy_to_queue(admin, step.strategy or "")
                return f"queue={vault.queue()}"
            case "remove_from_queue":
                vault.remove_strategy_from_queue(admin, step.strategy or "")
                return f"queue={vault.queue()}"
            case "insert_to_queue":
                vault.insert_strategy_to_queue(admin, step.strategy or "", step.index or 0)
                return f"queue={vault.queue()}"
            case "set_deposit_limit":
                vault.set_deposit_limit(admin, value)
                return f"deposit_limit={value}"
            case "set_performance_fee":
                vault.set_performance_fee(admin, value)
                return f"performance_fee={value}"
            case "set_management_fee":
                vault.set_management_fee(admin, value)
                return f"management_fee={value}"
            case "set_dispense_rate":
                vault.set_dispense_rate(admin, value)
                return f"dispense_rate={value}"
            case "set_emergency_shutdown":
                vault.set_emergency_shutdown(admin, bool(step.active))
                return f"emergency_shutdown={bool(step.active)}"
            case "receive_token":
                vault.receive_token(step.token or "", amount)
                return f"{step.token}={vault.stray_balance(step.token or '')}"
            case "sweep":
                swept = vault.sweep(admin, step.token or "", step.amount)
                return f"swept={swept}"
        msg = f"Unsupported action: {step.action}"
        raise ValueError(msg)

    @staticmethod
    def _strategy(result: SimulationResult, step: ScenarioStep) -> SimulatedStrategy:
        return result.strategies[step.strategy or ""]
