"""
Plan and ledger reporting.

Flattens plans, trades and ledger rows into pandas DataFrames for CSV
export, and renders them as rich tables for the CLI.
"""
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from rich import box
from rich.panel import Panel
from rich.table import Table

from src.engine.queries import BalancePoint, account_summary, all_period_progress, period_days
from src.engine.types import LedgerTransaction, PeriodStatus, SimulationPlan, Trade

PERIOD_COLUMNS = [
    "period", "start_date", "end_date", "rate", "win_rate", "starting_balance",
    "target_amount", "ending_balance", "paid_amount", "remaining_amount",
    "day_count", "paid_days", "status",
]
DAY_COLUMNS = [
    "date", "period", "amount", "percentage", "winning", "variance_class",
    "status", "paid_amount", "trade_count",
]
TRADE_COLUMNS = [
    "id", "timestamp", "symbol", "name", "direction", "profit_loss",
    "duration_minutes", "position_size", "lock_start", "lock_end",
]
LEDGER_COLUMNS = ["id", "account_id", "date", "amount", "source", "period_ordinal", "rate", "created_at"]
TIMELINE_COLUMNS = [
    "time", "event", "trade_id", "symbol", "amount", "cash", "invested",
    "realized_pnl", "total_value", "open_positions",
]

STATUS_COLORS = {
    PeriodStatus.ACTIVE.value: "yellow",
    PeriodStatus.COMPLETED.value: "green",
    PeriodStatus.SCHEDULED.value: "dim",
    "pending": "blue",
    "paid": "green",
    "skipped": "red",
}


def status_color(status: str) -> str:
    return STATUS_COLORS.get(status, "white")


# =============================================================================
# DataFrames
# =============================================================================


def periods_frame(plan: SimulationPlan) -> pd.DataFrame:
    """One row per period."""
    rows = []
    for progress, period in zip(all_period_progress(plan), plan.periods):
        rows.append({
            "period": progress.ordinal,
            "start_date": progress.start_date,
            "end_date": progress.end_date,
            "rate": progress.rate,
            "win_rate": period.win_rate,
            "starting_balance": progress.starting_balance,
            "target_amount": progress.target_amount,
            "ending_balance": period.ending_balance,
            "paid_amount": progress.paid_amount,
            "remaining_amount": progress.remaining_amount,
            "day_count": progress.day_count,
            "paid_days": progress.paid_days,
            "status": progress.status.value,
        })
    return pd.DataFrame(rows, columns=PERIOD_COLUMNS)


def days_frame(plan: SimulationPlan, ordinal: Optional[int] = None) -> pd.DataFrame:
    """One row per daily target, for one period or the whole plan."""
    ordinals = [ordinal] if ordinal is not None else [p.ordinal for p in plan.periods]
    rows = []
    for number in ordinals:
        for view in period_days(plan, number):
            rows.append({
                "date": view.date,
                "period": view.period_ordinal,
                "amount": view.amount,
                "percentage": view.percentage,
                "winning": view.winning,
                "variance_class": view.variance_class,
                "status": view.status,
                "paid_amount": view.paid_amount,
                "trade_count": view.trade_count,
            })
    return pd.DataFrame(rows, columns=DAY_COLUMNS)


def trades_frame(trades: Sequence[Trade]) -> pd.DataFrame:
    return pd.DataFrame([t.to_dict() for t in trades], columns=TRADE_COLUMNS)


def ledger_frame(transactions: Sequence[LedgerTransaction]) -> pd.DataFrame:
    return pd.DataFrame([t.to_dict() for t in transactions], columns=LEDGER_COLUMNS)


def monthly_ledger(transactions: Sequence[LedgerTransaction]) -> pd.DataFrame:
    """Credits grouped by account and calendar month."""
    df = ledger_frame(transactions)
    if df.empty:
        return pd.DataFrame(columns=["account_id", "month", "days", "total", "best_day", "worst_day"])

    df["month"] = pd.to_datetime(df["date"]).dt.to_period("M").astype(str)
    grouped = df.groupby(["account_id", "month"])["amount"]
    return (
        grouped.agg(days="count", total="sum", best_day="max", worst_day="min")
        .reset_index()
    )


def export_plan(
    plan: SimulationPlan,
    output_dir: Path,
    transactions: Sequence[LedgerTransaction] = (),
) -> Dict[str, Path]:
    """
    Write periods.csv, days.csv and ledger.csv for one account.

    Returns:
        Mapping of report name to written path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    prefix = plan.account_id

    frames = {
        "periods": periods_frame(plan),
        "days": days_frame(plan),
        "ledger": ledger_frame(transactions),
    }
    written = {}
    for name, frame in frames.items():
        path = output_dir / f"{prefix}_{name}.csv"
        frame.to_csv(path, index=False)
        written[name] = path
    return written


# =============================================================================
# Rich rendering
# =============================================================================


def summary_panel(plan: SimulationPlan) -> Panel:
    summary = account_summary(plan)
    active = f"Period {summary.active_period}" if summary.active_period else "Finished"
    body = (
        f"[dim]principal:[/dim] ${summary.principal:,.2f}\n"
        f"[dim]activated:[/dim] {summary.activation_date.isoformat()}\n"
        f"[dim]deposited:[/dim] ${summary.total_deposited:,.2f} ({summary.injection_count} injections)\n"
        f"[dim]credited:[/dim] ${summary.interest_credited:,.2f}\n"
        f"[dim]capital:[/dim] ${summary.capital:,.2f}\n"
        f"[dim]projected:[/dim] ${summary.compounded_balance:,.2f}\n"
        f"[dim]status:[/dim] {active}"
    )
    return Panel(body, title=f"Account: {summary.account_id}", border_style="cyan")


def periods_table(plan: SimulationPlan) -> Table:
    table = Table(
        title=f"Periods for {plan.account_id}",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", justify="right", style="bold")
    table.add_column("Dates")
    table.add_column("Rate", justify="right")
    table.add_column("Start $", justify="right")
    table.add_column("Target $", justify="right")
    table.add_column("Paid $", justify="right")
    table.add_column("Days", justify="right")
    table.add_column("Status")

    for progress in all_period_progress(plan):
        color = status_color(progress.status.value)
        table.add_row(
            str(progress.ordinal),
            f"{progress.start_date} - {progress.end_date}",
            f"{progress.rate * 100:.2f}%",
            f"{progress.starting_balance:,.2f}",
            f"{progress.target_amount:,.2f}",
            f"{progress.paid_amount:,.2f}",
            f"{progress.paid_days}/{progress.day_count}",
            f"[{color}]{progress.status.value}[/{color}]",
        )
    return table


def days_table(plan: SimulationPlan, ordinal: int) -> Table:
    table = Table(
        title=f"Period {ordinal} daily targets",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold green",
    )
    table.add_column("Date", style="bold")
    table.add_column("Amount $", justify="right")
    table.add_column("Move", justify="right")
    table.add_column("Variance")
    table.add_column("Status")
    table.add_column("Trades", justify="right")

    for view in period_days(plan, ordinal):
        amount_color = "green" if view.amount >= 0 else "red"
        color = status_color(view.status)
        table.add_row(
            view.date.isoformat(),
            f"[{amount_color}]{view.amount:+,.2f}[/{amount_color}]",
            f"{view.percentage * 100:+.3f}%",
            view.variance_class,
            f"[{color}]{view.status}[/{color}]",
            str(view.trade_count) if view.trade_count is not None else "-",
        )
    return table


def trades_table(trades: Sequence[Trade], title: str = "Trades", limit: Optional[int] = None) -> Table:
    table = Table(title=title, box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("Time (UTC)")
    table.add_column("Symbol", style="bold")
    table.add_column("Side")
    table.add_column("P&L $", justify="right")
    table.add_column("Size $", justify="right")
    table.add_column("Minutes", justify="right")

    shown: List[Trade] = list(trades)[:limit] if limit else list(trades)
    for trade in shown:
        color = "green" if trade.is_winner else "red"
        table.add_row(
            trade.timestamp.strftime("%H:%M:%S"),
            trade.symbol,
            trade.direction.value,
            f"[{color}]{trade.profit_loss:+,.2f}[/{color}]",
            f"{trade.position_size:,.2f}",
            str(trade.duration_minutes),
        )
    if limit and len(trades) > limit:
        table.caption = f"{len(trades) - limit} more trades not shown"
    return table


def ledger_table(transactions: Sequence[LedgerTransaction], title: str = "Ledger") -> Table:
    table = Table(title=title, box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold")
    table.add_column("Account")
    table.add_column("Period", justify="right")
    table.add_column("Amount $", justify="right")
    table.add_column("Source")

    total = 0.0
    for txn in transactions:
        color = "green" if txn.amount >= 0 else "red"
        table.add_row(
            txn.date.isoformat(),
            txn.account_id,
            str(txn.period_ordinal),
            f"[{color}]{txn.amount:+,.2f}[/{color}]",
            txn.source.value,
        )
        total += txn.amount
    if transactions:
        table.caption = f"{len(transactions)} credits, net ${total:,.2f}"
    return table


def timeline_frame(points: Sequence[BalancePoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "time": p.time,
                "event": p.event,
                "trade_id": p.trade_id,
                "symbol": p.symbol,
                "amount": p.amount,
                "cash": p.cash,
                "invested": p.invested,
                "realized_pnl": p.realized_pnl,
                "total_value": p.total_value,
                "open_positions": p.open_count,
            }
            for p in points
        ],
        columns=TIMELINE_COLUMNS,
    )


def timeline_table(
    points: Sequence[BalancePoint],
    title: str = "Balance Timeline",
    limit: Optional[int] = None,
) -> Table:
    table = Table(title=title, box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("Time (UTC)")
    table.add_column("Event")
    table.add_column("Symbol", style="bold")
    table.add_column("Amount $", justify="right")
    table.add_column("Cash $", justify="right")
    table.add_column("Invested $", justify="right")
    table.add_column("Realized $", justify="right")
    table.add_column("Open", justify="right")

    shown: List[BalancePoint] = list(points)[:limit] if limit else list(points)
    for point in shown:
        amount = f"{point.amount:+,.2f}" if point.event == "close" else f"{point.amount:,.2f}"
        table.add_row(
            point.time.strftime("%H:%M:%S"),
            point.event,
            point.symbol or "-",
            amount,
            f"{point.cash:,.2f}",
            f"{point.invested:,.2f}",
            f"{point.realized_pnl:+,.2f}",
            str(point.open_count),
        )
    if limit and len(points) > limit:
        table.caption = f"{len(points) - limit} more events not shown"
    return table
