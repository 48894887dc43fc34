#!/usr/bin/env python3
"""
Run the CompoundSim test suites.

    python run_tests.py                 # everything
    python run_tests.py engine          # schedule, trade and payout math
    python run_tests.py service cli -p -x  # several suites, extra pytest args
    python run_tests.py --list
"""
import subprocess
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

SUITES = {
    "engine": [
        "test_rates.py", "test_volatility.py", "test_trades.py", "test_positions.py",
        "test_plan_builder.py", "test_reconciler.py", "test_payout.py",
    ],
    "service": ["test_service.py", "test_portfolio.py", "test_db.py", "test_end_to_end.py"],
    "workers": ["test_scheduler.py", "test_event_bus.py"],
    "cli": ["test_cli.py", "test_reporting.py"],
    "support": ["test_config.py", "test_logging.py", "test_market_hours.py", "test_random_provider.py"],
}

console = Console()


def main(
    suites: Optional[List[str]] = typer.Argument(None, help=f"Suites to run: {', '.join(SUITES)}"),
    list_suites: bool = typer.Option(False, "--list", help="Show the suites and exit"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Less verbose output"),
    pytest_args: Optional[List[str]] = typer.Option(None, "--pytest", "-p", help="Extra pytest argument"),
):
    if list_suites:
        table = Table(title="Test Suites", show_header=True, header_style="bold magenta")
        table.add_column("Suite", style="cyan")
        table.add_column("Modules")
        for name, modules in SUITES.items():
            table.add_row(name, ", ".join(modules))
        console.print(table)
        raise typer.Exit()

    unknown = [s for s in suites or [] if s not in SUITES]
    if unknown:
        console.print(f"[red]Unknown suite(s): {', '.join(unknown)}[/red]")
        raise typer.Exit(2)

    paths = [f"tests/{m}" for s in suites or [] for m in SUITES[s]] or ["tests/"]
    cmd = ["pytest", *paths, "-q" if quiet else "-v", *(pytest_args or [])]
    console.print(f"[dim]{' '.join(cmd)}[/dim]")
    raise typer.Exit(subprocess.run(cmd).returncode)


if __name__ == "__main__":
    typer.run(main)
