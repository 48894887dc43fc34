"""
Daily Volatility Distributor.

Turns a flat period target into a day-by-day pattern: most days win, a
minority lose, daily moves vary in size, and the amounts still add up to the
period target.

Algorithm:
    1. round(N * win_rate) winning days, the rest losing
    2. Raw winning moves in (0.1%, 3.0%], losing moves in [-1.5%, -0.1%)
    3. Shuffle
    4. Scale every move by (target / balance) / sum(raw moves)
    5. Add the remaining residual to the last day

A negative target draws the pattern for |target| and mirrors the signs.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from src.config import VolatilityConfig
from src.engine.errors import InvalidDayCountError, InvalidParameterError
from src.engine.types import DailyAllocation, VarianceClass
from src.utils.logger import SimulationLogger
from src.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)
sim_logger = SimulationLogger(logger)

# Raw sums closer to zero than this would blow the scale factor up
DEGENERATE_SUM = 1e-9


def classify_variance(percentage: float) -> VarianceClass:
    """Bucket a daily move by magnitude."""
    magnitude = abs(percentage)
    if magnitude >= 0.025:
        return VarianceClass.HIGH
    if magnitude >= 0.015:
        return VarianceClass.MEDIUM
    if magnitude >= 0.005:
        return VarianceClass.LOW
    return VarianceClass.MINIMAL


def winning_day_count(day_count: int, win_rate: float) -> int:
    """round(N * w), rounding halves up."""
    return int(math.floor(day_count * win_rate + 0.5))


@dataclass
class ScheduleSummary:
    """Aggregate view of a generated schedule."""
    target: float
    total: float
    difference: float
    day_count: int
    winning_days: int
    losing_days: int
    win_rate: float
    largest_gain: float
    largest_loss: float
    within_tolerance: bool


class VolatilityDistributor:
    """Splits a period target into signed daily allocations."""

    def __init__(
        self,
        config: Optional[VolatilityConfig] = None,
        rng: Optional[RandomProvider] = None,
    ):
        self.config = config or VolatilityConfig()
        self.rng = rng or RandomProvider()

    def random_win_rate(self, rng: Optional[RandomProvider] = None) -> float:
        return (rng or self.rng).uniform(self.config.min_win_rate, self.config.max_win_rate)

    def distribute(
        self,
        target: float,
        day_count: int,
        balance: float,
        win_rate: Optional[float] = None,
        dates: Optional[Sequence[date]] = None,
        rng: Optional[RandomProvider] = None,
    ) -> List[DailyAllocation]:
        """
        Generate the daily pattern for a period (or the rest of one).

        Args:
            target: Signed amount the days must add up to
            day_count: Number of days (N)
            balance: Balance the percentages are expressed against
            win_rate: Fraction of winning days; drawn from the configured range if None
            dates: Optional dates to stamp on the allocations, len == day_count
            rng: Random source for this call

        Returns:
            List of DailyAllocation in date order
        """
        if day_count < 0:
            raise InvalidDayCountError(day_count)
        if day_count == 0:
            return []
        if balance <= 0:
            raise InvalidParameterError(f"Balance must be positive, got {balance}", balance=balance)
        if dates is not None and len(dates) != day_count:
            raise InvalidParameterError(
                f"Expected {day_count} dates, got {len(dates)}", day_count=day_count, dates=len(dates)
            )

        rng = rng or self.rng
        if win_rate is None:
            win_rate = self.random_win_rate(rng)

        sign = -1.0 if target < 0 else 1.0
        required_pct = abs(target) / balance

        pattern = self._scaled_pattern(required_pct, day_count, win_rate, rng)

        amounts = [sign * pct * balance for pct in pattern]
        # Residual goes to the last day so the amounts reconcile exactly
        amounts[-1] += target - sum(amounts)

        allocations = []
        for i, amount in enumerate(amounts):
            percentage = amount / balance
            allocations.append(
                DailyAllocation(
                    amount=amount,
                    percentage=percentage,
                    winning=amount > 0,
                    variance_class=classify_variance(percentage),
                    date=dates[i] if dates is not None else None,
                )
            )

        total = sum(a.amount for a in allocations)
        if abs(total - target) > self.config.tolerance:
            sim_logger.precision_warning("volatility", target, total)

        logger.debug(
            f"Distributed {target:.2f} over {day_count} days",
            extra={"day_count": day_count, "win_rate": win_rate, "target": target},
        )
        return allocations

    def _raw_pattern(self, day_count: int, win_rate: float, rng: RandomProvider) -> List[float]:
        winners = winning_day_count(day_count, win_rate)
        losers = day_count - winners
        cfg = self.config

        pattern = [rng.uniform(cfg.min_daily_move, cfg.max_daily_gain) for _ in range(winners)]
        pattern += [rng.uniform(cfg.max_daily_loss, -cfg.min_daily_move) for _ in range(losers)]
        return rng.shuffle(pattern)

    def _scaled_pattern(
        self,
        required_pct: float,
        day_count: int,
        win_rate: float,
        rng: RandomProvider,
    ) -> List[float]:
        """Draw a raw pattern with a usable (positive) sum and scale it."""
        if required_pct == 0:
            return [0.0] * day_count

        for _ in range(self.config.max_redraws):
            raw = self._raw_pattern(day_count, win_rate, rng)
            raw_sum = sum(raw)
            if raw_sum > DEGENERATE_SUM:
                factor = required_pct / raw_sum
                return [pct * factor for pct in raw]

        # Every draw netted out negative; fall back to an even split
        logger.warning(
            "Volatility pattern degenerate after redraws, using even split",
            extra={"day_count": day_count, "win_rate": win_rate},
        )
        return [required_pct / day_count] * day_count

    def regenerate_remaining(
        self,
        remaining_target: float,
        dates: Sequence[date],
        balance: float,
        win_rate: float,
        rng: Optional[RandomProvider] = None,
    ) -> List[DailyAllocation]:
        """Redistribute the rest of a period after an injection, keeping its win rate."""
        return self.distribute(
            target=remaining_target,
            day_count=len(dates),
            balance=balance,
            win_rate=win_rate,
            dates=dates,
            rng=rng,
        )

    def validate_schedule(
        self,
        allocations: Sequence[DailyAllocation],
        target: float,
    ) -> ScheduleSummary:
        """Summarize a schedule and check it against its target."""
        amounts = [a.amount for a in allocations]
        total = sum(amounts)
        winning = sum(1 for a in allocations if a.winning)
        count = len(allocations)
        return ScheduleSummary(
            target=target,
            total=total,
            difference=total - target,
            day_count=count,
            winning_days=winning,
            losing_days=count - winning,
            win_rate=winning / count if count else 0.0,
            largest_gain=max(amounts, default=0.0),
            largest_loss=min(amounts, default=0.0),
            within_tolerance=abs(total - target) <= self.config.tolerance,
        )
