"""
Commands package - CLI command modules for CompoundSim.

Each module contains Typer apps for a group of commands.
"""

from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from src.config import load_config
from src.db.database import init_db
from src.engine.errors import SimulationError
from src.engine.service import SimulationService

# Shared console instance
console = Console()

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
EXPORTS_DIR = PROJECT_ROOT / "exports"
LOGS_DIR = PROJECT_ROOT / "logs"


def parse_date(value: Optional[str]) -> date:
    """Parse YYYY-MM-DD, defaulting to today."""
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date '{value}', expected YYYY-MM-DD")


def get_service() -> SimulationService:
    """Service bound to the configured database."""
    config = load_config()
    db = init_db(config.database_url)
    return SimulationService(db, config)


@contextmanager
def simulation_errors() -> Iterator[None]:
    """Print engine errors as a red panel and exit non-zero."""
    try:
        yield
    except SimulationError as e:
        lines = [f"[red]{e.message}[/red]"]
        for key, value in e.details.items():
            lines.append(f"[dim]{key}:[/dim] {value}")
        console.print(Panel("\n".join(lines), title="Error", border_style="red"))
        raise typer.Exit(1)
