"""
Payout and ledger commands for CompoundSim CLI.

Commands for paying daily targets, viewing the ledger and running the
daily payout scheduler.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.table import Table

from commands import LOGS_DIR, console, get_service, parse_date, simulation_errors
from src.engine.types import PayoutStatus
from src.reporting.summary import ledger_table, monthly_ledger
from src.utils.logger import setup_logging
from src.workers.event_bus import EventBus
from src.workers.scheduler import DAILY_PAYOUT_JOB, JobScheduler, create_payout_job

payouts_app = typer.Typer(help="Pay daily targets")
ledger_app = typer.Typer(help="Inspect ledger transactions", invoke_without_command=True)
scheduler_app = typer.Typer(help="Run the daily payout scheduler")

STATUS_STYLES = {
    PayoutStatus.PROCESSED: "green",
    PayoutStatus.ALREADY_PROCESSED: "yellow",
    PayoutStatus.NO_TARGET: "dim",
}


@ledger_app.callback()
def ledger_callback(ctx: typer.Context):
    """Inspect ledger transactions. Run without subcommand to show all."""
    if ctx.invoked_subcommand is None:
        ledger_show()


# =============================================================================
# PAYOUTS Commands
# =============================================================================


@payouts_app.command("run")
def payouts_run(
    account_id: str = typer.Argument(..., help="Account identifier"),
    payout_date: Optional[str] = typer.Option(None, "--date", "-d", help="Date to pay (YYYY-MM-DD, default today)"),
):
    """Pay one day's target. Re-running for a paid date credits nothing."""
    day = parse_date(payout_date)
    service = get_service()

    with simulation_errors():
        result = service.process_payout(account_id, day)

    style = STATUS_STYLES[result.status]
    if result.processed:
        console.print(
            f"[{style}]Credited ${result.amount:+,.2f} to '{account_id}' for {day} "
            f"(period {result.period_ordinal}, from {result.source.value})[/{style}]"
        )
        if result.period_completed:
            console.print(f"[green]Period {result.period_ordinal} completed.[/green]")
    else:
        console.print(f"[{style}]{result.status.value}: nothing credited for {day}[/{style}]")


@payouts_app.command("due")
def payouts_due(
    account_id: Optional[str] = typer.Option(None, "--account", "-a", help="Only this account (default all active)"),
    through: Optional[str] = typer.Option(None, "--through", "-t", help="Pay through this date (YYYY-MM-DD, default today)"),
):
    """Pay every outstanding day up to a date.

    Examples:
        python manage.py payouts due --through 2024-01-31
        python manage.py payouts due -a acct-1
    """
    day = parse_date(through)
    service = get_service()

    with simulation_errors():
        if account_id:
            results = service.process_due(account_id, day)
        else:
            results = service.process_all_due(day)

    transactions = [r.transaction for r in results if r.processed]
    if not transactions:
        console.print(f"[yellow]Nothing due through {day}.[/yellow]")
        return

    console.print(ledger_table(transactions, title=f"Payouts through {day}"))
    for result in results:
        if result.period_completed:
            console.print(f"[green]{result.account_id}: period {result.period_ordinal} completed.[/green]")


# =============================================================================
# LEDGER Commands
# =============================================================================


@ledger_app.command("show")
def ledger_show(
    account_id: Optional[str] = typer.Option(None, "--account", "-a", help="Only this account"),
    start_date: Optional[str] = typer.Option(None, "--start-date", "-s", help="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, "--end-date", "-e", help="End date (YYYY-MM-DD)"),
    monthly: bool = typer.Option(False, "--monthly", "-m", help="Group credits by month"),
):
    """Show credited payouts."""
    service = get_service()
    start = parse_date(start_date) if start_date else None
    end = parse_date(end_date) if end_date else None

    with simulation_errors():
        transactions = service.list_transactions(account_id, start, end)

    if not transactions:
        console.print("[yellow]No ledger transactions found.[/yellow]")
        return

    if not monthly:
        console.print(ledger_table(transactions))
        return

    table = Table(title="Monthly Credits", box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Account", style="bold")
    table.add_column("Month")
    table.add_column("Days", justify="right")
    table.add_column("Total $", justify="right")
    table.add_column("Best $", justify="right")
    table.add_column("Worst $", justify="right")

    for row in monthly_ledger(transactions).itertuples(index=False):
        table.add_row(
            row.account_id,
            row.month,
            str(row.days),
            f"{row.total:+,.2f}",
            f"{row.best_day:+,.2f}",
            f"{row.worst_day:+,.2f}",
        )
    console.print(table)


# =============================================================================
# SCHEDULER Commands
# =============================================================================


@scheduler_app.command("run")
def scheduler_run(
    once: bool = typer.Option(False, "--once", help="Run the jobs one time and exit"),
    run_date: Optional[str] = typer.Option(None, "--date", "-d", help="Run date for --once (YYYY-MM-DD)"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level"),
    log_dir: Path = typer.Option(LOGS_DIR, "--log-dir", help="Directory for log files"),
):
    """Run the daily payout job on its schedule.

    Examples:
        python manage.py scheduler run
        python manage.py scheduler run --once --date 2024-01-31
    """
    setup_logging(log_dir=str(log_dir), level=log_level, console_output=not once)

    service = get_service()
    bus = EventBus()
    scheduler = JobScheduler(service.config.scheduler, event_bus=bus)
    scheduler.register(DAILY_PAYOUT_JOB, create_payout_job(service, bus), "Daily payout processing")

    if once:
        day = parse_date(run_date)
        outcome = asyncio.run(scheduler.run_all(day))
        results = outcome.get(DAILY_PAYOUT_JOB) or []
        credited = [r for r in results if r.processed]
        console.print(f"[green]Daily payout for {day}: {len(credited)} days credited[/green]")
        job = scheduler.get_job(DAILY_PAYOUT_JOB)
        if job.last_error:
            console.print(f"[red]Job failed: {job.last_error}[/red]")
            raise typer.Exit(1)
        return

    console.print(
        f"[cyan]Scheduler running: payouts daily at {scheduler.config.payout_time} "
        f"{scheduler.config.timezone}. Ctrl+C to stop.[/cyan]"
    )

    async def main():
        try:
            await asyncio.gather(bus.run(), scheduler.run())
        finally:
            scheduler.stop()
            bus.stop()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        console.print("[dim]Scheduler stopped.[/dim]")
