"""Vault Engine - Entry Point.

Usage:
    python main.py simulate show scenarios/basic.yaml
    python main.py simulate run scenarios/basic.yaml
    python main.py simulate run scenarios/basic.yaml --history-csv out/history.csv
"""

from src.cli import create_app

# Main Typer Application
app = create_app()


if __name__ == "__main__":
    app()
