"""Tests for the SQLAlchemy plan store and ledger."""
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from src.db.database import Database
from src.engine.errors import PlanNotFoundError
from src.engine.payout import PayoutProcessor
from src.engine.plan_builder import PlanBuilder
from src.engine.types import LedgerTransaction, PayoutSource
from src.utils.random_provider import RandomProvider


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.create_tables()
    return database


@pytest.fixture
def plan():
    return PlanBuilder(rng=RandomProvider(6)).build("acct-1", 10_000.0, date(2024, 1, 1), seed=6)


def make_txn(day: date, amount: float = 10.0) -> LedgerTransaction:
    return LedgerTransaction(
        account_id="acct-1",
        date=day,
        amount=amount,
        source=PayoutSource.SCHEDULE,
        period_ordinal=1,
        rate=0.21,
    )


class TestPlans:

    def test_round_trip(self, db, plan):
        db.save_plan(plan)
        loaded = db.get_plan("acct-1")
        assert loaded.to_dict() == plan.to_dict()

    def test_missing_plan(self, db):
        assert db.get_plan("nobody") is None
        with pytest.raises(PlanNotFoundError):
            db.load_plan("nobody")

    def test_save_replaces_whole_plan(self, db, plan):
        db.save_plan(plan)
        PayoutProcessor().process(plan, date(2024, 1, 1))
        db.save_plan(plan)

        loaded = db.load_plan("acct-1")
        assert loaded.account.interest_credited == pytest.approx(plan.account.interest_credited)
        assert loaded.periods[0].last_paid_date == date(2024, 1, 1)

    def test_summary_columns(self, db, plan):
        db.save_plan(plan)
        records = db.list_plans()
        assert len(records) == 1
        info = records[0].to_dict()
        assert info["status"] == "active"
        assert info["active_period"] == 1
        assert info["compounded_balance"] == pytest.approx(plan.account.compounded_balance)

    def test_list_account_ids(self, db, plan):
        db.save_plan(plan)
        other = PlanBuilder().build("acct-0", 500.0, date(2024, 1, 1), seed=1)
        db.save_plan(other)
        assert db.list_account_ids() == ["acct-0", "acct-1"]
        assert db.plan_exists("acct-0")
        assert not db.plan_exists("acct-9")

    def test_delete(self, db, plan):
        db.save_plan(plan, transactions=[make_txn(date(2024, 1, 1))])
        assert db.delete_plan("acct-1")
        assert db.get_plan("acct-1") is None
        assert db.list_transactions("acct-1") == []
        assert not db.delete_plan("acct-1")


class TestLedger:

    def test_transactions_saved_with_plan(self, db, plan):
        db.save_plan(plan, transactions=[make_txn(date(2024, 1, 2)), make_txn(date(2024, 1, 1))])
        txns = db.list_transactions("acct-1")
        assert [t.date for t in txns] == [date(2024, 1, 1), date(2024, 1, 2)]
        assert txns[0].source == PayoutSource.SCHEDULE

    def test_date_filters(self, db):
        for day in range(1, 6):
            db.record_transaction(make_txn(date(2024, 1, day)))
        txns = db.list_transactions("acct-1", date(2024, 1, 2), date(2024, 1, 4))
        assert [t.date.day for t in txns] == [2, 3, 4]

    def test_one_credit_per_day(self, db):
        db.record_transaction(make_txn(date(2024, 1, 1)))
        with pytest.raises(IntegrityError):
            db.record_transaction(make_txn(date(2024, 1, 1)))

    def test_failed_save_rolls_back_plan(self, db, plan):
        db.save_plan(plan, transactions=[make_txn(date(2024, 1, 1))])
        plan.account.interest_credited = 999.0
        with pytest.raises(IntegrityError):
            db.save_plan(plan, transactions=[make_txn(date(2024, 1, 1))])
        assert db.load_plan("acct-1").account.interest_credited == 0.0
