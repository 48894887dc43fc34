"""
End-to-end scenario: one account through its first period.

$10,000 activated on 2024-01-01, every January day paid, then the plan
carries on into February.
"""
from datetime import date, timedelta

import pytest

from src.engine.payout import PayoutProcessor
from src.engine.plan_builder import PlanBuilder
from src.engine.reconciler import Reconciler
from src.engine.types import PayoutStatus, PeriodStatus
from src.utils.random_provider import RandomProvider


@pytest.mark.parametrize("seed", [1, 42, 2024])
def test_first_period_end_to_end(seed) -> None:
    builder = PlanBuilder(rng=RandomProvider(seed))
    processor = PayoutProcessor()

    plan = builder.build("acct-e2e", 10_000.0, date(2024, 1, 1), seed=seed)
    first = plan.periods[0]

    assert 0.20 <= first.rate <= 0.22
    assert first.day_count == 31
    assert abs(sum(t.amount for t in first.daily_targets) - first.target_amount) <= 0.01

    for offset in range(31):
        result = processor.process(plan, date(2024, 1, 1) + timedelta(days=offset))
        assert result.status == PayoutStatus.PROCESSED

    assert abs(plan.account.interest_credited - first.target_amount) <= 0.01
    assert first.paid_amount == pytest.approx(plan.account.interest_credited)
    assert first.status == PeriodStatus.COMPLETED
    assert plan.periods[1].status == PeriodStatus.ACTIVE
    assert all(p.status == PeriodStatus.SCHEDULED for p in plan.periods[2:])


def test_injection_then_payouts() -> None:
    """A mid-period deposit flows through to what gets paid."""
    builder = PlanBuilder(rng=RandomProvider(5))
    reconciler = Reconciler(builder)
    processor = PayoutProcessor()

    plan = builder.build("acct-e2e", 10_000.0, date(2024, 1, 1), seed=5)
    processor.process_due(plan, date(2024, 1, 10))

    injection = reconciler.apply_injection(plan, 5_000.0, date(2024, 1, 11))
    processor.process_due(plan, date(2024, 1, 31))

    first = plan.periods[0]
    assert first.status == PeriodStatus.COMPLETED
    assert abs(first.paid_amount - first.target_amount) <= 0.01
    assert first.target_amount == pytest.approx(10_000.0 * first.rate + injection.prorated_amount)
    assert plan.periods[1].starting_balance == pytest.approx(15_000.0 + first.target_amount)


@pytest.mark.slow
def test_full_year() -> None:
    """Pay every day of all twelve periods."""
    plan = PlanBuilder(rng=RandomProvider(9)).build("acct-year", 10_000.0, date(2024, 1, 1), seed=9)
    results = PayoutProcessor().process_due(plan, date(2024, 12, 31))

    assert len(results) == 366
    assert plan.is_finished
    assert plan.active_period() is None
    expected = sum(p.target_amount for p in plan.periods)
    assert abs(plan.account.interest_credited - expected) <= 0.01 * 12
    assert 10_000.0 + plan.account.interest_credited == pytest.approx(plan.account.compounded_balance, abs=0.12)
