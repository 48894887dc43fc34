"""Tests for pandas summaries, CSV export and rich tables."""
from datetime import date, datetime

import pandas as pd
import pytest
from rich.console import Console

from src.engine.payout import PayoutProcessor
from src.engine.plan_builder import PlanBuilder
from src.engine.positions import PositionSizer
from src.engine.queries import balance_timeline
from src.engine.trades import TradeSynthesizer
from src.reporting.summary import (
    days_frame,
    export_plan,
    ledger_frame,
    ledger_table,
    monthly_ledger,
    periods_frame,
    periods_table,
    summary_panel,
    timeline_frame,
    timeline_table,
    trades_frame,
    trades_table,
)
from src.utils.random_provider import RandomProvider


@pytest.fixture
def plan():
    return PlanBuilder(rng=RandomProvider(12)).build("acct-1", 10_000.0, date(2024, 1, 1), seed=12)


@pytest.fixture
def transactions(plan):
    results = PayoutProcessor().process_due(plan, date(2024, 2, 3))
    return [r.transaction for r in results if r.processed]


def render(renderable) -> str:
    console = Console(width=200, record=True)
    console.print(renderable)
    return console.export_text()


class TestFrames:

    def test_periods_frame(self, plan):
        df = periods_frame(plan)
        assert len(df) == 12
        assert df["period"].tolist() == list(range(1, 13))
        assert df.loc[0, "status"] == "active"
        assert df["target_amount"].sum() == pytest.approx(plan.account.compounded_balance - 10_000.0)

    def test_days_frame(self, plan):
        assert len(days_frame(plan, 1)) == 31
        df = days_frame(plan)
        assert len(df) == 366
        first = df[df["period"] == 1]
        assert first["amount"].sum() == pytest.approx(plan.periods[0].target_amount, abs=0.01)

    def test_trades_frame(self):
        trades = TradeSynthesizer(rng=RandomProvider(1)).synthesize(50.0, 10_000.0, 30, date(2024, 1, 5))
        df = trades_frame(trades)
        assert len(df) == 30
        assert df["profit_loss"].sum() == pytest.approx(50.0, abs=0.01)

    def test_ledger_frame(self, transactions):
        df = ledger_frame(transactions)
        assert len(df) == 34
        assert set(df["source"]) == {"schedule"}

    def test_monthly_ledger(self, transactions):
        df = monthly_ledger(transactions)
        assert df["month"].tolist() == ["2024-01", "2024-02"]
        assert df["days"].tolist() == [31, 3]

    def test_monthly_ledger_empty(self):
        assert monthly_ledger([]).empty


class TestExport:

    def test_writes_csv_files(self, plan, transactions, tmp_path):
        written = export_plan(plan, tmp_path / "out", transactions)
        assert set(written) == {"periods", "days", "ledger"}
        periods = pd.read_csv(written["periods"])
        assert len(periods) == 12
        ledger = pd.read_csv(written["ledger"])
        assert len(ledger) == len(transactions)
        assert written["days"].name == "acct-1_days.csv"


class TestRendering:

    def test_summary_panel(self, plan):
        text = render(summary_panel(plan))
        assert "acct-1" in text
        assert "10,000.00" in text

    def test_periods_table(self, plan):
        text = render(periods_table(plan))
        assert "active" in text
        assert "scheduled" in text

    def test_trades_table_limit(self):
        trades = TradeSynthesizer(rng=RandomProvider(1)).synthesize(50.0, 10_000.0, 30, date(2024, 1, 5))
        text = render(trades_table(trades, limit=10))
        assert "20 more trades not shown" in text

    def test_ledger_table(self, transactions):
        text = render(ledger_table(transactions))
        assert "34 credits" in text


class TestTimeline:

    @pytest.fixture
    def points(self):
        trades = TradeSynthesizer(rng=RandomProvider(1)).synthesize(50.0, 10_000.0, 30, date(2024, 1, 5))
        trades = PositionSizer(rng=RandomProvider(2)).assign(trades, 10_000.0)
        return balance_timeline(trades, 10_000.0, datetime(2024, 1, 5))

    def test_timeline_frame(self, points):
        df = timeline_frame(points)
        assert len(df) == 61
        assert df.loc[0, "event"] == "session_open"
        assert df["event"].value_counts()["close"] == 30
        assert df["realized_pnl"].iloc[-1] == pytest.approx(50.0, abs=0.01)

    def test_timeline_table_limit(self, points):
        text = render(timeline_table(points, limit=20))
        assert "41 more events not shown" in text
        assert "session_open" in text
