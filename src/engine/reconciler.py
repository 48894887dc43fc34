"""
Mid-Period Reconciler.

Reprices a plan after a capital injection on date D inside the active period:

    prorated   = amount * rate * (days remaining / days in period)
    new target = old target + prorated

Pending days that payouts can still reach (after the last-paid marker) are
redistributed against (old target - paid + prorated) on the new balance,
keeping the period's win rate. Pending days already passed over by the
marker are marked skipped and zeroed. Paid days are left untouched.
Every later period is then rebuilt from the new compounded balance (full
regeneration, never patched).
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from src.engine.errors import InvalidAmountError, NoActivePeriodError
from src.engine.plan_builder import PlanBuilder
from src.engine.types import CapitalInjection, DailyTarget, DayStatus, SimulationPlan, VarianceClass
from src.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)


@dataclass
class Proration:
    """Breakdown of an injection's effect on the active period."""
    days_remaining: int
    days_elapsed: int
    day_count: int
    already_paid: float
    original_remaining: float
    prorated: float

    @property
    def combined_remaining(self) -> float:
        return self.original_remaining + self.prorated


def prorate(amount: float, rate: float, days_remaining: int, day_count: int) -> float:
    """Share of a full period's return earned by capital arriving mid-period."""
    if day_count <= 0:
        return 0.0
    return amount * rate * (days_remaining / day_count)


class Reconciler:
    """Applies capital injections to a plan in place."""

    def __init__(self, builder: Optional[PlanBuilder] = None):
        self.builder = builder or PlanBuilder()

    def apply_injection(
        self,
        plan: SimulationPlan,
        amount: float,
        injection_date: date,
        rng: Optional[RandomProvider] = None,
    ) -> CapitalInjection:
        """
        Apply a deposit to the plan.

        Args:
            plan: Plan to mutate
            amount: Deposit amount, must be positive
            injection_date: Deposit date, must fall in the active period
            rng: Random source for the regenerated schedules

        Returns:
            The appended CapitalInjection record

        Raises:
            InvalidAmountError: amount <= 0
            NoActivePeriodError: date outside the active period
        """
        if amount <= 0:
            raise InvalidAmountError(f"Injection amount must be positive, got {amount}", amount=amount)

        period = plan.active_period()
        if period is None or not period.contains(injection_date):
            raise NoActivePeriodError(
                plan.account_id,
                injection_date,
                active_period=period.ordinal if period else None,
            )

        rng = rng or RandomProvider(plan.seed).spawn(
            plan.account_id, "injection", len(plan.injections)
        )

        remaining = [t for t in period.daily_targets if t.date >= injection_date]
        paid = [t for t in period.daily_targets if t.is_paid]
        proration = Proration(
            days_remaining=len(remaining),
            days_elapsed=period.day_count - len(remaining),
            day_count=period.day_count,
            already_paid=sum(t.paid_amount for t in paid),
            original_remaining=period.target_amount - sum(t.paid_amount for t in paid),
            prorated=prorate(amount, period.rate, len(remaining), period.day_count),
        )

        period.starting_balance += amount
        period.target_amount += proration.prorated

        # Days skipped behind the marker can never be paid; their share moves
        # onto the days payouts can still reach, lagging ones before D included
        payable = period.payable_targets()
        payable_dates = {t.date for t in payable}
        for target in period.daily_targets:
            if target.status == DayStatus.PENDING and target.date not in payable_dates:
                self._skip(target)

        allocations = self.builder.volatility.regenerate_remaining(
            remaining_target=proration.combined_remaining,
            dates=[t.date for t in payable],
            balance=period.starting_balance,
            win_rate=period.win_rate,
            rng=rng,
        )
        regenerated = {a.date: DailyTarget.from_allocation(a) for a in allocations}
        period.daily_targets = [regenerated.get(t.date, t) for t in period.daily_targets]
        period.remaining_days = len(payable)
        period.trade_count_hint = self.builder.synthesizer.trade_count_hint(
            period.starting_balance, rng
        )

        compounded = self.builder.regenerate_future(plan, period.ordinal, rng)

        injection = CapitalInjection(
            amount=amount,
            date=injection_date,
            period_ordinal=period.ordinal,
            prorated_amount=proration.prorated,
        )
        plan.injections.append(injection)
        plan.account.total_deposited += amount
        plan.account.compounded_balance = compounded
        plan.touch()

        logger.info(
            f"Reconciled {plan.account_id} after injection",
            extra={
                "account_id": plan.account_id,
                "period": period.ordinal,
                "days_remaining": proration.days_remaining,
                "days_elapsed": proration.days_elapsed,
                "original_remaining": proration.original_remaining,
                "prorated": proration.prorated,
                "compounded_balance": compounded,
            },
        )
        return injection

    @staticmethod
    def _skip(target: DailyTarget) -> None:
        target.status = DayStatus.SKIPPED
        target.amount = 0.0
        target.percentage = 0.0
        target.winning = False
        target.variance_class = VarianceClass.MINIMAL
        target.trades = None
