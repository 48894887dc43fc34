"""
Database layer for CompoundSim.

Provides SQLite/PostgreSQL-compatible storage for:
- Simulation plans (one JSON plan per account, replaced atomically)
- Ledger transactions (one row per credited payout)

Usage:
    from src.db import get_db

    db = get_db()
    db.save_plan(plan)
    plan = db.get_plan("acct-1")
"""

from src.db.database import (
    Database,
    get_db,
    init_db,
)
from src.db.models import (
    LedgerTransactionRecord,
    SimulationPlanRecord,
)

__all__ = [
    "Database",
    "get_db",
    "init_db",
    "LedgerTransactionRecord",
    "SimulationPlanRecord",
]
