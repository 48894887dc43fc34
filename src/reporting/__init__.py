"""
Reporting for simulation plans and ledgers.
"""

from src.reporting.summary import (
    periods_frame,
    days_frame,
    trades_frame,
    ledger_frame,
    timeline_frame,
    monthly_ledger,
    export_plan,
    summary_panel,
    periods_table,
    days_table,
    trades_table,
    ledger_table,
    timeline_table,
)

__all__ = [
    # DataFrames
    "periods_frame",
    "days_frame",
    "trades_frame",
    "ledger_frame",
    "timeline_frame",
    "monthly_ledger",
    "export_plan",
    # Rich
    "summary_panel",
    "periods_table",
    "days_table",
    "trades_table",
    "ledger_table",
    "timeline_table",
]
