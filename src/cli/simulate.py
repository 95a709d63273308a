"""Typer CLI for vault scenario simulation.

Commands:
    - run: YAML 시나리오 실행 후 볼트/전략/harvest 요약 출력
    - show: 시나리오 계획(볼트 설정, 전략, 스텝) 출력

Rules Applied:
    - #18 Typer CLI: Annotated syntax, Rich UI
    - #15 Logging Standards: Loguru structured logging
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from src.config.scenario_loader import load_scenario
from src.config.settings import get_settings
from src.core.exceptions import VaultError
from src.core.logger import setup_logger
from src.simulation.runner import ScenarioRunner
from src.vault.history import annualized_return, strategy_summary

if TYPE_CHECKING:
    from src.config.scenario_loader import ScenarioConfig
    from src.simulation.runner import SimulationResult

console = Console()
app = typer.Typer(help="Vault scenario simulation", no_args_is_help=True)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def _fmt_units(amount: int, decimals: int) -> str:
    """최소 단위 → 자산 단위 문자열."""
    unit = 10**decimals
    whole, frac = divmod(amount, unit)
    if decimals == 0:
        return f"{whole:,}"
    return f"{whole:,}.{frac:0{decimals}d}"


def _display_vault_summary(result: SimulationResult) -> None:
    """볼트 최종 상태를 Rich Table로 출력."""
    vault = result.vault
    decimals = vault.decimals
    table = Table(title=f"Vault: {vault.address} ({vault.asset})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Total Assets", _fmt_units(vault.total_assets(), decimals))
    table.add_row("Idle Assets", _fmt_units(vault.total_idle, decimals))
    table.add_row("Total Debt", _fmt_units(vault.total_debt, decimals))
    table.add_row("Locked Profit", _fmt_units(vault.locked_profit(), decimals))
    table.add_row("Total Supply", _fmt_units(vault.total_supply(), decimals))
    table.add_row("Price Per Share", _fmt_units(vault.price_per_share(), decimals))
    table.add_row("Debt Ratio", f"{vault.debt_ratio} bps")
    table.add_row("Emergency Shutdown", "yes" if vault.emergency_shutdown else "no")
    table.add_row("Reports", str(len(vault.history)))
    if vault.history:
        table.add_row("Annualized Return", f"{annualized_return(vault.history_frame()):.2f}%")

    console.print(table)


def _display_strategies(result: SimulationResult) -> None:
    """전략별 파라미터/누적 값 테이블 출력."""
    vault = result.vault
    if not vault.strategy_ids():
        return

    decimals = vault.decimals
    table = Table(title="Strategies")
    table.add_column("Strategy", style="cyan")
    table.add_column("Active")
    table.add_column("Ratio", justify="right")
    table.add_column("Debt", justify="right")
    table.add_column("Gain", style="green", justify="right")
    table.add_column("Loss", style="red", justify="right")
    table.add_column("Queue", justify="right")

    queue = vault.queue()
    for strategy_id in vault.strategy_ids():
        params = vault.strategies(strategy_id)
        position = str(queue.index(strategy_id)) if strategy_id in queue else "-"
        table.add_row(
            strategy_id,
            "yes" if params.is_active else "no",
            f"{params.debt_ratio} bps",
            _fmt_units(params.total_debt, decimals),
            _fmt_units(params.total_gain, decimals),
            _fmt_units(params.total_loss, decimals),
            position,
        )

    console.print(table)


def _display_harvests(result: SimulationResult) -> None:
    """전략별 harvest 요약 출력."""
    frame = result.vault.history_frame()
    if frame.empty:
        return

    decimals = result.vault.decimals
    summary = strategy_summary(frame)
    table = Table(title="Harvest Summary")
    table.add_column("Strategy", style="cyan")
    table.add_column("Reports", justify="right")
    table.add_column("Gain", style="green", justify="right")
    table.add_column("Loss", style="red", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("Net Profit", justify="right")

    for strategy_id, row in summary.iterrows():
        table.add_row(
            str(strategy_id),
            str(row["reports"]),
            _fmt_units(int(row["gain"]), decimals),
            _fmt_units(int(row["loss"]), decimals),
            _fmt_units(int(row["total_fees"]), decimals),
            _fmt_units(int(row["net_profit"]), decimals),
        )

    console.print(table)


def _display_steps(result: SimulationResult) -> None:
    """스텝 실행 로그 출력."""
    table = Table(title="Steps")
    table.add_column("#", justify="right")
    table.add_column("Action", style="cyan")
    table.add_column("Time", justify="right")
    table.add_column("Result")

    for outcome in result.steps:
        detail = outcome.detail
        if outcome.error is not None:
            detail = f"[yellow]{outcome.error}[/yellow] (expected)"
        table.add_row(str(outcome.index), outcome.action, str(outcome.timestamp), detail)

    console.print(table)


def _display_plan(scenario: ScenarioConfig) -> None:
    """시나리오 계획 출력."""
    vault_table = Table(title=f"Scenario: {scenario.name}")
    vault_table.add_column("Setting", style="cyan")
    vault_table.add_column("Value", style="green")
    for key, value in scenario.vault.model_dump(exclude_none=True).items():
        vault_table.add_row(key, str(value))
    vault_table.add_row("start_time", str(scenario.start_time))
    console.print(vault_table)

    if scenario.strategies:
        strategy_table = Table(title="Strategies")
        strategy_table.add_column("Strategy", style="cyan")
        strategy_table.add_column("Kind")
        strategy_table.add_column("Ratio", justify="right")
        strategy_table.add_column("Min Debt", justify="right")
        strategy_table.add_column("Max Debt", justify="right")
        strategy_table.add_column("Fee", justify="right")
        for spec in scenario.strategies:
            strategy_table.add_row(
                spec.id,
                spec.kind,
                f"{spec.debt_ratio} bps",
                str(spec.min_debt_per_harvest),
                str(spec.max_debt_per_harvest),
                f"{spec.performance_fee_bps} bps",
            )
        console.print(strategy_table)

    step_table = Table(title="Steps")
    step_table.add_column("#", justify="right")
    step_table.add_column("Action", style="cyan")
    step_table.add_column("Arguments")
    step_table.add_column("Expect")
    for index, step in enumerate(scenario.steps):
        step_table.add_row(str(index), step.action, step.describe(), step.expect_error or "")
    console.print(step_table)


def _load_or_exit(scenario_path: Path) -> ScenarioConfig:
    try:
        return load_scenario(scenario_path)
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        console.print(f"[red]Invalid scenario:[/red] {exc}")
        raise typer.Exit(code=1) from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def run(
    scenario_path: Annotated[Path, typer.Argument(help="Scenario YAML file path")],
    history_csv: Annotated[
        Path | None,
        typer.Option("--history-csv", help="Write harvest history to CSV"),
    ] = None,
    show_steps: Annotated[
        bool, typer.Option("--steps/--no-steps", help="Print the per-step log")
    ] = True,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Enable verbose output")] = False,
) -> None:
    """Run a vault scenario and print the resulting state."""
    settings = get_settings()
    setup_logger(
        log_dir=settings.log_dir,
        console_level="DEBUG" if verbose else "WARNING",
        enable_file=False,
    )

    scenario = _load_or_exit(scenario_path)
    logger.info("Loaded scenario '{}' from {}", scenario.name, scenario_path)

    try:
        result = ScenarioRunner(scenario, settings).run()
    except VaultError as exc:
        console.print(f"[red]Scenario failed:[/red] {exc}")
        for note in getattr(exc, "__notes__", []):
            console.print(f"  [dim]{note}[/dim]")
        raise typer.Exit(code=1) from exc

    if show_steps:
        _display_steps(result)
    _display_vault_summary(result)
    _display_strategies(result)
    _display_harvests(result)

    if history_csv is not None:
        history_csv.parent.mkdir(parents=True, exist_ok=True)
        result.vault.history_frame().to_csv(history_csv)
        console.print(f"[green]History saved: {history_csv}[/green]")


@app.command()
def show(
    scenario_path: Annotated[Path, typer.Argument(help="Scenario YAML file path")],
) -> None:
    """Print the parsed scenario plan without running it."""
    scenario = _load_or_exit(scenario_path)
    _display_plan(scenario)
