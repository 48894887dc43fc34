#!/usr/bin/env python3
"""
CompoundSim CLI - Management interface for simulation plans, payouts and the ledger.

Usage:
    python manage.py plans list
    python manage.py plans create <account> --principal 10000 --date 2024-01-01
    python manage.py plans show <account> --period 1
    python manage.py plans export <account>
    python manage.py deposits add <account> 5000 --date 2024-01-12
    python manage.py trades show <account> --date 2024-01-05
    python manage.py trades timeline <account> --date 2024-01-05
    python manage.py payouts run <account> --date 2024-01-05
    python manage.py payouts due --through 2024-01-31
    python manage.py ledger show --account <account>
    python manage.py scheduler run
"""

import typer

# Import command apps from commands package
from commands.plans import plans_app, deposits_app, trades_app
from commands.ledger import payouts_app, ledger_app, scheduler_app

# Initialize
app = typer.Typer(
    name="compoundsim",
    help="CompoundSim CLI - Manage simulation plans, payouts and the ledger",
    no_args_is_help=True,
)

app.add_typer(plans_app, name="plans")
app.add_typer(deposits_app, name="deposits")
app.add_typer(trades_app, name="trades")
app.add_typer(payouts_app, name="payouts")
app.add_typer(ledger_app, name="ledger")
app.add_typer(scheduler_app, name="scheduler")


if __name__ == "__main__":
    app()
