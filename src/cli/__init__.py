"""CLI interface using Typer.

Available subcommands:
    - simulate: Vault scenario simulation (YAML)

Usage:
    uv run vaultsim simulate show scenarios/basic.yaml
    uv run vaultsim simulate run scenarios/basic.yaml --history-csv out/history.csv
"""

import typer


def create_app() -> typer.Typer:
    """Create the main CLI application with all sub-commands.

    Lazy import를 사용하여 각 서브커맨드 모듈을 필요할 때만 로드합니다.
    """
    from src.cli.simulate import app as simulate_app

    main_app = typer.Typer(
        name="vaultsim",
        help="Multi-strategy vault engine",
        no_args_is_help=True,
    )

    main_app.add_typer(simulate_app, name="simulate", help="Vault scenario simulation (YAML)")

    return main_app


def main() -> None:
    """Entry point for the ``vaultsim`` console script."""
    app = create_app()
    app()
