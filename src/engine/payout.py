"""
Payout Processor.

Advances a plan one day at a time:

- Period lifecycle: scheduled -> active -> completed
- Daily target lifecycle: pending -> paid

The only idempotence guard is the active period's last_paid_date marker:
any date on or before it is reported as ALREADY_PROCESSED and credits
nothing.
"""
import logging
from datetime import date
from typing import List, Optional

from src.engine.errors import NoActivePeriodError
from src.engine.types import (
    DayStatus,
    LedgerTransaction,
    PayoutResult,
    PayoutSource,
    PayoutStatus,
    Period,
    PeriodStatus,
    SimulationPlan,
)
from src.utils.logger import SimulationLogger

logger = logging.getLogger(__name__)
sim_logger = SimulationLogger(logger)


class PayoutProcessor:
    """Credits daily targets to the account and moves period state forward."""

    def process(self, plan: SimulationPlan, payout_date: date) -> PayoutResult:
        """
        Pay the daily target for one date.

        Args:
            plan: Plan to mutate
            payout_date: Date being paid

        Returns:
            PayoutResult; its transaction is set when something was credited

        Raises:
            NoActivePeriodError: plan finished, or date outside the active period
        """
        account_id = plan.account_id
        period = plan.active_period()

        # Dates in a completed period are checked against that period's marker
        owner = plan.period_for(payout_date)
        guard = owner if owner is not None and owner.status == PeriodStatus.COMPLETED else period
        if guard is not None and guard.last_paid_date is not None and payout_date <= guard.last_paid_date:
            sim_logger.payout_skipped(account_id, payout_date.isoformat(), "already processed")
            return PayoutResult(
                status=PayoutStatus.ALREADY_PROCESSED,
                account_id=account_id,
                date=payout_date,
                period_ordinal=guard.ordinal,
            )

        if period is None or not period.contains(payout_date):
            raise NoActivePeriodError(
                account_id, payout_date, active_period=period.ordinal if period else None
            )

        target = period.target_for(payout_date)
        if target is None or target.is_paid:
            sim_logger.payout_skipped(account_id, payout_date.isoformat(), "no target")
            return PayoutResult(
                status=PayoutStatus.NO_TARGET,
                account_id=account_id,
                date=payout_date,
                period_ordinal=period.ordinal,
            )

        if target.has_trades:
            amount = sum(t.profit_loss for t in target.trades)
            source = PayoutSource.TRADES
        else:
            amount = target.amount
            source = PayoutSource.SCHEDULE

        target.status = DayStatus.PAID
        target.paid_amount = amount
        period.paid_amount += amount
        period.remaining_days = max(0, period.remaining_days - 1)
        period.last_paid_date = payout_date
        plan.account.interest_credited += amount

        transaction = LedgerTransaction(
            account_id=account_id,
            date=payout_date,
            amount=amount,
            source=source,
            period_ordinal=period.ordinal,
            rate=period.rate,
        )
        sim_logger.payout_processed(
            account_id, payout_date.isoformat(), amount, source.value, period.ordinal
        )

        completed = not self._payable(period)
        if completed:
            self._complete(plan, period)

        plan.touch()
        return PayoutResult(
            status=PayoutStatus.PROCESSED,
            account_id=account_id,
            date=payout_date,
            amount=amount,
            source=source,
            period_ordinal=period.ordinal,
            transaction=transaction,
            period_completed=completed,
        )

    def process_due(self, plan: SimulationPlan, through_date: date) -> List[PayoutResult]:
        """
        Pay every pending day up to and including through_date, oldest first.

        Lets a missed scheduler run catch up. Walks across period boundaries
        as periods complete.
        """
        results = []
        while True:
            period = plan.active_period()
            if period is None:
                break
            due = self._next_due(period, through_date)
            if due is None:
                break
            results.append(self.process(plan, due))
        return results

    @staticmethod
    def _payable(period: Period) -> List[date]:
        return [t.date for t in period.payable_targets()]

    def _next_due(self, period: Period, through_date: date) -> Optional[date]:
        payable = self._payable(period)
        if payable and payable[0] <= through_date:
            return payable[0]
        return None

    @staticmethod
    def _complete(plan: SimulationPlan, period: Period) -> None:
        """Close a period and activate the next one (skipping empty periods)."""
        period.status = PeriodStatus.COMPLETED
        logger.info(
            f"Period {period.ordinal} completed for {plan.account_id}",
            extra={
                "account_id": plan.account_id,
                "period": period.ordinal,
                "paid_amount": period.paid_amount,
                "target_amount": period.target_amount,
            },
        )

        for following in plan.periods[period.ordinal:]:
            if following.daily_targets:
                following.status = PeriodStatus.ACTIVE
                return
            following.status = PeriodStatus.COMPLETED

        logger.info(f"Plan finished for {plan.account_id}", extra={"account_id": plan.account_id})
