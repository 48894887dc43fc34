"""
Plan commands for CompoundSim CLI.

Commands for activating accounts, inspecting plans, adding deposits and
viewing the synthetic trades behind a day.
"""

from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.panel import Panel
from rich.table import Table

from commands import EXPORTS_DIR, console, get_service, parse_date, simulation_errors
from src.reporting.summary import (
    days_table,
    export_plan,
    periods_table,
    status_color,
    summary_panel,
    timeline_table,
    trades_frame,
    trades_table,
)

plans_app = typer.Typer(help="Create and inspect simulation plans", invoke_without_command=True)
deposits_app = typer.Typer(help="Add capital to an account")
trades_app = typer.Typer(help="Show synthetic trades")


@plans_app.callback()
def plans_callback(ctx: typer.Context):
    """Create and inspect simulation plans. Run without subcommand to list all."""
    if ctx.invoked_subcommand is None:
        plans_list()


# =============================================================================
# PLANS Commands
# =============================================================================


@plans_app.command("list")
def plans_list(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status (active/finished)"),
):
    """List all accounts with a plan."""
    service = get_service()
    records = service.db.list_plans(status=status)

    if not records:
        console.print(Panel(
            "[dim]No plans found. Create one with:[/dim]\n"
            "[cyan]python manage.py plans create <account> --principal 10000[/cyan]",
            title="Plans",
            border_style="dim",
        ))
        return

    table = Table(
        title="Simulation Plans",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Account", style="bold")
    table.add_column("Activated")
    table.add_column("Deposited $", justify="right")
    table.add_column("Credited $", justify="right")
    table.add_column("Projected $", justify="right")
    table.add_column("Period", justify="right")
    table.add_column("Status")

    for record in records:
        info = record.to_dict()
        color = status_color(info["status"])
        table.add_row(
            info["account_id"],
            info["activation_date"],
            f"{info['total_deposited']:,.2f}",
            f"{info['interest_credited']:,.2f}",
            f"{info['compounded_balance']:,.2f}",
            str(info["active_period"] or "-"),
            f"[{color}]{info['status']}[/{color}]",
        )

    console.print(table)


@plans_app.command("create")
def plans_create(
    account_id: str = typer.Argument(..., help="Account identifier"),
    principal: float = typer.Option(..., "--principal", "-p", help="Initial deposit"),
    activation_date: Optional[str] = typer.Option(None, "--date", "-d", help="Activation date (YYYY-MM-DD, default today)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for a reproducible plan"),
):
    """Activate an account and build its twelve-period plan.

    Examples:
        python manage.py plans create acct-1 --principal 10000 --date 2024-01-01
        python manage.py plans create acct-2 -p 25000 --seed 42
    """
    day = parse_date(activation_date)
    service = get_service()

    with simulation_errors():
        result = service.activate(account_id, principal, day, seed=seed)

    if result.created:
        console.print(f"[green]Created plan for '{account_id}'[/green]")
    else:
        console.print(f"[yellow]Account '{account_id}' already has a plan; nothing changed.[/yellow]")

    console.print(summary_panel(result.plan))
    console.print(periods_table(result.plan))


@plans_app.command("show")
def plans_show(
    account_id: str = typer.Argument(..., help="Account identifier"),
    period: Optional[int] = typer.Option(None, "--period", "-n", help="Show daily targets for one period"),
):
    """Show an account's plan and period progress."""
    service = get_service()

    with simulation_errors():
        plan = service.get_plan(account_id)

    console.print(summary_panel(plan))
    console.print(periods_table(plan))

    if period is not None:
        if not 1 <= period <= len(plan.periods):
            console.print(f"[red]Period must be between 1 and {len(plan.periods)}.[/red]")
            raise typer.Exit(1)
        console.print(days_table(plan, period))


@plans_app.command("today")
def plans_today(
    account_id: str = typer.Argument(..., help="Account identifier"),
    on_date: Optional[str] = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD, default today)"),
):
    """Show the daily target and its status for a date."""
    day = parse_date(on_date)
    service = get_service()

    with simulation_errors():
        view = service.daily_target(account_id, day)
        progress = service.current_progress(account_id)

    if view is None:
        console.print(f"[yellow]No daily target for '{account_id}' on {day}.[/yellow]")
    else:
        color = "green" if view.amount >= 0 else "red"
        console.print(Panel(
            f"[dim]period:[/dim] {view.period_ordinal}\n"
            f"[dim]target:[/dim] [{color}]{view.amount:+,.2f}[/{color}] ({view.percentage * 100:+.3f}%)\n"
            f"[dim]variance:[/dim] {view.variance_class}\n"
            f"[dim]status:[/dim] {view.status}",
            title=f"{account_id} on {day}",
            border_style="cyan",
        ))

    if progress is not None:
        console.print(
            f"[dim]Period {progress.ordinal}: ${progress.paid_amount:,.2f} of "
            f"${progress.target_amount:,.2f} paid ({progress.progress_pct:.1f}%), "
            f"{progress.remaining_days} days left[/dim]"
        )


@plans_app.command("export")
def plans_export(
    account_id: str = typer.Argument(..., help="Account identifier"),
    output: Path = typer.Option(EXPORTS_DIR, "--output", "-o", help="Output directory"),
):
    """Export periods, daily targets and ledger to CSV."""
    service = get_service()

    with simulation_errors():
        plan = service.get_plan(account_id)
        transactions = service.list_transactions(account_id)

    written = export_plan(plan, output, transactions)
    for name, path in written.items():
        console.print(f"[green]Wrote {name}:[/green] {path}")


# =============================================================================
# DEPOSITS Commands
# =============================================================================


@deposits_app.command("add")
def deposits_add(
    account_id: str = typer.Argument(..., help="Account identifier"),
    amount: float = typer.Argument(..., help="Deposit amount"),
    deposit_date: Optional[str] = typer.Option(None, "--date", "-d", help="Deposit date (YYYY-MM-DD, default today)"),
):
    """Add capital mid-period and reprice the plan.

    Examples:
        python manage.py deposits add acct-1 5000 --date 2024-01-12
    """
    day = parse_date(deposit_date)
    service = get_service()

    with simulation_errors():
        injection = service.inject_capital(account_id, amount, day)
        plan = service.get_plan(account_id)

    console.print(
        f"[green]Deposited ${injection.amount:,.2f} into period {injection.period_ordinal} "
        f"(prorated return ${injection.prorated_amount:,.2f})[/green]"
    )
    console.print(summary_panel(plan))


# =============================================================================
# TRADES Commands
# =============================================================================


@trades_app.command("show")
def trades_show(
    account_id: str = typer.Argument(..., help="Account identifier"),
    trade_date: Optional[str] = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD, default today)"),
    limit: Optional[int] = typer.Option(25, "--limit", "-l", help="Rows to show (0 for all)"),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Also write the trades to a CSV file"),
):
    """Show the trades behind a day's target, generating them on first view."""
    day = parse_date(trade_date)
    service = get_service()

    with simulation_errors():
        trades = service.get_trades(account_id, day)

    if not trades:
        console.print(f"[yellow]No trades for '{account_id}' on {day}.[/yellow]")
        return

    net = sum(t.profit_loss for t in trades)
    winners = sum(1 for t in trades if t.is_winner)
    console.print(trades_table(trades, title=f"{account_id} trades on {day}", limit=limit or None))
    console.print(f"[dim]{len(trades)} trades, {winners} winners, net ${net:+,.2f}[/dim]")

    if csv_path:
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        trades_frame(trades).to_csv(csv_path, index=False)
        console.print(f"[green]Wrote trades:[/green] {csv_path}")


@trades_app.command("timeline")
def trades_timeline(
    account_id: str = typer.Argument(..., help="Account identifier"),
    trade_date: Optional[str] = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD, default today)"),
    limit: Optional[int] = typer.Option(40, "--limit", "-l", help="Rows to show (0 for all)"),
):
    """Replay a day's positions into a cash/invested balance timeline."""
    day = parse_date(trade_date)
    service = get_service()

    with simulation_errors():
        points = service.balance_timeline(account_id, day)
        locks = service.capital_locks(account_id, day)

    if len(points) == 1:
        console.print(f"[yellow]No trades for '{account_id}' on {day}.[/yellow]")
        return

    console.print(timeline_table(points, title=f"{account_id} balance on {day}", limit=limit or None))
    last = points[-1]
    console.print(
        f"[dim]Start ${points[0].total_value:,.2f}, end ${last.total_value:,.2f} "
        f"(realized ${last.realized_pnl:+,.2f})[/dim]"
    )
    console.print(
        f"[dim]{len(locks)} lock windows keep "
        f"${sum(t.position_size for t in locks if not t.replacement):,.2f} locked[/dim]"
    )
