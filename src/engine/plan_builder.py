"""
Period Plan Builder.

Builds the twelve-period plan at activation: one rate draw and one daily
schedule per period, compounding the starting balance forward.

    period[i + 1].starting_balance == period[i].starting_balance + period[i].target_amount

Also used by the reconciler to regenerate every period after the active one
once an injection changes the compounding chain.
"""
import logging
from datetime import date
from typing import List, Optional

from src.config import EngineConfig
from src.engine.errors import InvalidAmountError
from src.engine.rates import RateGenerator
from src.engine.trades import TradeSynthesizer
from src.engine.types import Account, DailyTarget, Period, PeriodStatus, SimulationPlan
from src.engine.volatility import VolatilityDistributor
from src.utils.market_hours import period_bounds, trading_days
from src.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)

MAX_SEED = 2**31 - 1


class PlanBuilder:
    """Creates and regenerates simulation plans."""

    def __init__(self, config: Optional[EngineConfig] = None, rng: Optional[RandomProvider] = None):
        self.config = config or EngineConfig()
        self.rng = rng or RandomProvider(self.config.seed)
        self.rates = RateGenerator(self.config.rates)
        self.volatility = VolatilityDistributor(self.config.volatility)
        self.synthesizer = TradeSynthesizer(self.config.trades, self.config.calendar)

    def period_days(self, activation_date: date, ordinal: int) -> List[date]:
        """Trading days of one period, per the calendar config."""
        start, end = period_bounds(activation_date, ordinal)
        return trading_days(
            start,
            end,
            weekend_trading=self.config.calendar.weekend_trading,
            holidays=self.config.calendar.holidays,
        )

    def build(
        self,
        account_id: str,
        principal: float,
        activation_date: date,
        seed: Optional[int] = None,
    ) -> SimulationPlan:
        """
        Build a full plan for a new account.

        Args:
            account_id: Account identifier
            principal: Initial deposit
            activation_date: First day of period 1
            seed: Plan seed; drawn when None. Stored on the plan so lazily
                generated trades replay identically.

        Returns:
            SimulationPlan with period 1 active and the rest scheduled
        """
        if principal < self.config.minimum_principal:
            raise InvalidAmountError(
                f"Principal must be at least {self.config.minimum_principal:,.2f}",
                amount=principal,
                minimum=self.config.minimum_principal,
            )

        if seed is None:
            seed = self.rng.integer(0, MAX_SEED)
        rng = RandomProvider(seed).spawn(account_id, "plan")

        periods = []
        balance = principal
        for ordinal in range(1, self.config.rates.period_count + 1):
            rate = self.rates.generate(ordinal, rng=rng)
            period = self.build_period(ordinal, activation_date, balance, rate, rng)
            periods.append(period)
            balance = period.ending_balance

        periods[0].status = PeriodStatus.ACTIVE

        account = Account(
            account_id=account_id,
            principal=principal,
            activation_date=activation_date,
            total_deposited=principal,
            compounded_balance=balance,
        )
        plan = SimulationPlan(account=account, periods=periods, seed=seed)

        logger.info(
            f"Built plan for {account_id}",
            extra={
                "account_id": account_id,
                "principal": principal,
                "first_rate": periods[0].rate,
                "compounded_balance": balance,
            },
        )
        return plan

    def build_period(
        self,
        ordinal: int,
        activation_date: date,
        starting_balance: float,
        rate: float,
        rng: RandomProvider,
        win_rate: Optional[float] = None,
    ) -> Period:
        """Build one period: dates, target, daily schedule and trade-count hint."""
        start, end = period_bounds(activation_date, ordinal)
        days = self.period_days(activation_date, ordinal)
        target = starting_balance * rate
        if win_rate is None:
            win_rate = self.volatility.random_win_rate(rng)

        allocations = self.volatility.distribute(
            target=target,
            day_count=len(days),
            balance=starting_balance,
            win_rate=win_rate,
            dates=days,
            rng=rng,
        )

        return Period(
            ordinal=ordinal,
            rate=rate,
            start_date=start,
            end_date=end,
            starting_balance=starting_balance,
            target_amount=target,
            win_rate=win_rate,
            trade_count_hint=self.synthesizer.trade_count_hint(starting_balance, rng),
            daily_targets=[DailyTarget.from_allocation(a) for a in allocations],
            remaining_days=len(days),
        )

    def regenerate_future(
        self,
        plan: SimulationPlan,
        after_ordinal: int,
        rng: RandomProvider,
    ) -> float:
        """
        Rebuild every period after after_ordinal from the current compounding chain.

        Rates and win rates are kept; balances, targets, schedules and
        trade-count hints are regenerated from scratch.

        Returns:
            New compounded balance (ending balance of the last period)
        """
        balance = plan.period(after_ordinal).ending_balance
        activation = plan.account.activation_date

        for ordinal in range(after_ordinal + 1, len(plan.periods) + 1):
            old = plan.period(ordinal)
            rebuilt = self.build_period(
                ordinal, activation, balance, old.rate, rng, win_rate=old.win_rate
            )
            rebuilt.status = old.status
            plan.periods[ordinal - 1] = rebuilt
            balance = rebuilt.ending_balance

        return balance
