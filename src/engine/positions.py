"""
Capital lock and position sizing.

Assigns a notional position size and a lock window to each synthetic trade
so that the day's positions together tie up the target utilization of the
account (80% by default).

Sizing rules:
- Positions are drawn one after another, each at 0.8%-1.5% of capital
- Each draw is clamped so the positions still to come can finish the job
  inside the same band
- The last position takes exactly what is left, so sizes sum to
  utilization * capital

Lock rules:
- A trade locks its position at the trade timestamp for 20-60 minutes, and
  the trade's duration never outlasts its lock
- Each position is a slot that stays locked for the whole session: when a
  window rolls off, a replacement window opens immediately. The trade sits
  somewhere in its slot's chain, so unlocks are staggered across the day
"""
import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence

from src.config import PositionConfig
from src.engine.errors import InvalidParameterError
from src.engine.types import CapitalLock, Trade
from src.utils.logger import SimulationLogger
from src.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)
sim_logger = SimulationLogger(logger)


@dataclass
class AllocationSummary:
    """Result of checking position sizes against the utilization target."""
    capital: float
    target_locked: float
    total_allocated: float
    difference: float
    variance_pct: float
    position_count: int
    average_position: float
    largest_position: float
    within_tolerance: bool


class PositionSizer:
    """
    Sizes positions and schedules capital locks for a day's trades.

    The trade count hint from the synthesizer is moved into the range where
    every position can sit inside the band: at 1.5% per position it takes
    at least ceil(0.80 / 0.015) = 54 positions to reach 80%, and at 0.8% no
    more than 0.80 / 0.008 = 100 fit.
    """

    def __init__(self, config: Optional[PositionConfig] = None, rng: Optional[RandomProvider] = None):
        self.config = config or PositionConfig()
        self.rng = rng or RandomProvider()

    @property
    def minimum_trade_count(self) -> int:
        return int(math.ceil(self.config.target_utilization / self.config.max_position_pct - 1e-9))

    @property
    def maximum_trade_count(self) -> int:
        return int(math.floor(self.config.target_utilization / self.config.min_position_pct + 1e-9))

    def target_locked(self, capital: float) -> float:
        return capital * self.config.target_utilization

    def resolve_trade_count(self, hint: int) -> int:
        """Move a hint into the range where every size can land in the band."""
        count = max(hint, self.minimum_trade_count)
        return max(min(count, self.maximum_trade_count), self.minimum_trade_count)

    def allocate(
        self,
        count: int,
        capital: float,
        rng: Optional[RandomProvider] = None,
    ) -> List[float]:
        """
        Draw position sizes that sum to the utilization target.

        Args:
            count: Number of positions
            capital: Account capital
            rng: Random source

        Returns:
            List of position sizes in currency units
        """
        if count < 1:
            return []
        rng = rng or self.rng
        cfg = self.config

        min_size = capital * cfg.min_position_pct
        max_size = capital * cfg.max_position_pct
        remaining = self.target_locked(capital)

        sizes = []
        for i in range(count - 1):
            still_to_place = count - 1 - i
            size = rng.uniform(min_size, max_size)
            # Leave the rest enough to reach the minimum, but no more than they can carry
            size = min(size, remaining - still_to_place * min_size)
            size = max(size, remaining - still_to_place * max_size)
            size = min(max(size, min_size), max_size)
            sizes.append(size)
            remaining -= size

        # Outside the feasible count range the last position cannot balance
        # exactly; validate_allocation reports the shortfall
        sizes.append(max(remaining, min_size))
        return sizes

    def assign(
        self,
        trades: Sequence[Trade],
        capital: float,
        rng: Optional[RandomProvider] = None,
    ) -> List[Trade]:
        """
        Annotate trades with position sizes and lock windows.

        Trades are not modified in place; annotated copies are returned.
        """
        rng = rng or self.rng
        sizes = self.allocate(len(trades), capital, rng)

        annotated = []
        for trade, size in zip(trades, sizes):
            lock = self._lock_length(rng)
            annotated.append(
                replace(
                    trade,
                    position_size=size,
                    lock_start=trade.timestamp,
                    lock_end=trade.timestamp + lock,
                    duration_minutes=min(trade.duration_minutes, int(lock.total_seconds() // 60)),
                )
            )

        summary = self.validate_allocation(annotated, capital)
        if not summary.within_tolerance:
            sim_logger.precision_warning("positions", summary.target_locked, summary.total_allocated)
        return annotated

    def rolling_locks(
        self,
        trades: Sequence[Trade],
        window_open: datetime,
        window_close: datetime,
        rng: Optional[RandomProvider] = None,
    ) -> List[CapitalLock]:
        """
        Chain lock windows around each sized trade to cover the session.

        Every trade's slot is locked from window_open to window_close: the
        trade's own window plus 20-60 minute windows before and after it,
        each opening as the previous one rolls off. Windows touching the
        session edges are cut at the edge.

        Returns:
            Lock windows ordered by start time
        """
        rng = rng or self.rng
        locks = []
        for slot, trade in enumerate(trades):
            if trade.lock_start is None or trade.lock_end is None:
                raise InvalidParameterError(
                    f"Trade {trade.trade_id} has no lock window; assign sizes first",
                    trade_id=trade.trade_id,
                )

            def window(start: datetime, end: datetime, own: bool = False) -> CapitalLock:
                return CapitalLock(
                    slot=slot,
                    trade_id=trade.trade_id,
                    position_size=trade.position_size,
                    lock_start=start,
                    lock_end=end,
                    replacement=not own,
                )

            locks.append(window(trade.lock_start, trade.lock_end, own=True))

            end = trade.lock_start
            while end > window_open:
                start = max(end - self._lock_length(rng), window_open)
                locks.append(window(start, end))
                end = start

            start = trade.lock_end
            while start < window_close:
                end = min(start + self._lock_length(rng), window_close)
                locks.append(window(start, end))
                start = end

        locks.sort(key=lambda lock: (lock.lock_start, lock.slot))
        logger.debug(
            f"Chained {len(locks)} lock windows over {len(trades)} slots",
            extra={"slots": len(trades), "windows": len(locks)},
        )
        return locks

    def _lock_length(self, rng: RandomProvider) -> timedelta:
        minutes = rng.uniform(self.config.min_lock_minutes, self.config.max_lock_minutes)
        return timedelta(seconds=int(minutes * 60))

    def validate_allocation(self, trades: Sequence[Trade], capital: float) -> AllocationSummary:
        """Check that position sizes add up to the utilization target."""
        sizes = [t.position_size for t in trades]
        target = self.target_locked(capital)
        total = sum(sizes)
        return AllocationSummary(
            capital=capital,
            target_locked=target,
            total_allocated=total,
            difference=total - target,
            variance_pct=abs(total - target) / target * 100 if target else 0.0,
            position_count=len(sizes),
            average_position=total / len(sizes) if sizes else 0.0,
            largest_position=max(sizes, default=0.0),
            within_tolerance=abs(total - target) <= self.config.tolerance,
        )


def locked_capital_at(positions: Sequence[Any], instant: datetime) -> float:
    """Capital tied up in trades or lock windows whose window covers the instant."""
    return sum(
        p.position_size
        for p in positions
        if p.lock_start is not None and p.lock_end is not None and p.lock_start <= instant < p.lock_end
    )
