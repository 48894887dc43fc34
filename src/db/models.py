"""
SQLAlchemy models for the CompoundSim database.

These models are compatible with both SQLite and PostgreSQL.
"""

from datetime import date, datetime
from typing import Any, Dict

from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    DateTime,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from src.engine.types import LedgerTransaction, PayoutSource, SimulationPlan

Base = declarative_base()


class SimulationPlanRecord(Base):
    """
    One simulation plan per account.

    The whole plan (periods -> daily targets -> trades) lives in plan_json
    and is replaced in a single write; the scalar columns are copies kept
    for listing and filtering without decoding the JSON.
    """
    __tablename__ = "simulation_plans"

    account_id = Column(String(100), primary_key=True)
    principal = Column(Float, nullable=False)
    activation_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    status = Column(String(20), nullable=False, default="active")  # active / finished
    active_period = Column(Integer, nullable=True)
    total_deposited = Column(Float, nullable=False, default=0.0)
    interest_credited = Column(Float, nullable=False, default=0.0)
    compounded_balance = Column(Float, nullable=False, default=0.0)
    seed = Column(Integer, nullable=True)
    plan_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def to_plan(self) -> SimulationPlan:
        """Decode the stored plan."""
        return SimulationPlan.from_dict(self.plan_json)

    def apply(self, plan: SimulationPlan) -> None:
        """Overwrite this record from a plan."""
        active = plan.active_period()
        self.principal = plan.account.principal
        self.activation_date = plan.account.activation_date.isoformat()
        self.status = "finished" if plan.is_finished else "active"
        self.active_period = active.ordinal if active else None
        self.total_deposited = plan.account.total_deposited
        self.interest_credited = plan.account.interest_credited
        self.compounded_balance = plan.account.compounded_balance
        self.seed = plan.seed
        self.plan_json = plan.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the plan body."""
        return {
            "account_id": self.account_id,
            "principal": self.principal,
            "activation_date": self.activation_date,
            "status": self.status,
            "active_period": self.active_period,
            "total_deposited": self.total_deposited,
            "interest_credited": self.interest_credited,
            "compounded_balance": self.compounded_balance,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class LedgerTransactionRecord(Base):
    """
    Ledger row for one credited daily payout.

    The (account_id, date) constraint backs the period marker: a day can be
    credited once.
    """
    __tablename__ = "ledger_transactions"
    __table_args__ = (UniqueConstraint("account_id", "date", name="uq_ledger_account_date"),)

    id = Column(String(36), primary_key=True)
    account_id = Column(String(100), nullable=False, index=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    amount = Column(Float, nullable=False)
    source = Column(String(20), nullable=False)  # trades / schedule
    period_ordinal = Column(Integer, nullable=False)
    rate = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    @classmethod
    def from_transaction(cls, txn: LedgerTransaction) -> "LedgerTransactionRecord":
        return cls(
            id=txn.transaction_id,
            account_id=txn.account_id,
            date=txn.date.isoformat(),
            amount=txn.amount,
            source=txn.source.value,
            period_ordinal=txn.period_ordinal,
            rate=txn.rate,
            created_at=txn.created_at,
        )

    def to_transaction(self) -> LedgerTransaction:
        return LedgerTransaction(
            transaction_id=self.id,
            account_id=self.account_id,
            date=date.fromisoformat(self.date),
            amount=self.amount,
            source=PayoutSource(self.source),
            period_ordinal=self.period_ordinal,
            rate=self.rate,
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "date": self.date,
            "amount": self.amount,
            "source": self.source,
            "period_ordinal": self.period_ordinal,
            "rate": self.rate,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
