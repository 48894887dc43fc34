"""
Intraday Trade Synthesizer.

Splits one signed daily amount into a list of trade records whose P&L adds
up to that amount. Mirrors the daily distributor at a finer grain:

- Winning days: 60-75% of trades win, winners are larger than losers
- Losing days: 30-40% of trades win, losers are larger than winners
- Raw amounts are proportional to account capital, then scaled to the
  daily amount with the residual on the final trade
- Timestamps cluster inside the session window (busy middle, quiet open)

A day whose amount is (near) zero still trades: it gets offsetting pairs of
equal-magnitude trades instead of an empty list.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from src.config import CalendarConfig, TradeConfig
from src.engine.errors import InvalidParameterError
from src.engine.types import Direction, Trade
from src.utils.logger import SimulationLogger
from src.utils.market_hours import get_trading_window_utc
from src.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)
sim_logger = SimulationLogger(logger)

DEGENERATE_SUM = 1e-9


@dataclass
class TradeSummary:
    """Aggregate view of one day's trades."""
    expected: float
    total: float
    difference: float
    trade_count: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    max_win: float
    max_loss: float
    within_tolerance: bool


class TradeSynthesizer:
    """Generates the trade detail behind a daily target."""

    def __init__(
        self,
        config: Optional[TradeConfig] = None,
        calendar: Optional[CalendarConfig] = None,
        rng: Optional[RandomProvider] = None,
    ):
        self.config = config or TradeConfig()
        self.calendar = calendar or CalendarConfig()
        self.rng = rng or RandomProvider()

    def trade_count_hint(self, capital: float, rng: Optional[RandomProvider] = None) -> int:
        """Trades per day scale with account size."""
        rng = rng or self.rng
        for floor, low, high in self.config.trade_count_tiers:
            if capital >= floor:
                return rng.integer(low, high)
        _, low, high = self.config.trade_count_tiers[-1]
        return rng.integer(low, high)

    def synthesize(
        self,
        amount: float,
        capital: float,
        trade_count: int,
        trade_date: date,
        rng: Optional[RandomProvider] = None,
    ) -> List[Trade]:
        """
        Generate the trades for one day.

        Args:
            amount: Signed daily amount the trades must add up to
            capital: Account capital used to size raw amounts
            trade_count: Number of trades (rounded up to even for zero days)
            trade_date: Day the trades happen on
            rng: Random source for this day

        Returns:
            Trades ordered by timestamp
        """
        if trade_count < 1:
            raise InvalidParameterError(
                f"Trade count must be >= 1, got {trade_count}", trade_count=trade_count
            )
        if capital <= 0:
            raise InvalidParameterError(f"Capital must be positive, got {capital}", capital=capital)

        rng = rng or self.rng

        if abs(amount) < self.config.zero_amount_epsilon:
            amounts = self._offsetting_amounts(amount, capital, trade_count, rng)
        else:
            amounts = self._scaled_amounts(amount, capital, trade_count, rng)

        timestamps = self._timestamps(len(amounts), trade_date, rng)
        largest = max(abs(a) for a in amounts) or 1.0

        trades = []
        for i, (timestamp, pnl) in enumerate(zip(timestamps, amounts)):
            instrument = self.config.instruments[
                rng.weighted_index([inst.weight for inst in self.config.instruments])
            ]
            trades.append(
                Trade(
                    trade_id=f"{trade_date:%Y%m%d}-{i:04d}-{rng.integer(0, 0xFFFFFF):06x}",
                    timestamp=timestamp,
                    symbol=instrument.symbol,
                    name=instrument.name,
                    direction=Direction.LONG if rng.coin() else Direction.SHORT,
                    profit_loss=pnl,
                    duration_minutes=self._duration(abs(pnl) / largest, rng),
                )
            )

        summary = self.validate_trades(trades, amount)
        if not summary.within_tolerance:
            sim_logger.precision_warning("trades", amount, summary.total)

        return trades

    def _raw_amounts(
        self,
        winning_day: bool,
        capital: float,
        trade_count: int,
        rng: RandomProvider,
    ) -> List[float]:
        """Capital-proportional raw P&L per trade, before scaling."""
        cfg = self.config
        low_rate, high_rate = cfg.winning_day_win_rate if winning_day else cfg.losing_day_win_rate
        winners = int(math.floor(trade_count * rng.uniform(low_rate, high_rate)))
        losers = trade_count - winners

        def draw(base_pct: float, margin_low: float, margin_high: float) -> float:
            variance = rng.uniform(*cfg.size_variance)
            return capital * base_pct * variance * rng.uniform(margin_low, margin_high)

        if winning_day:
            amounts = [draw(0.015, 0.01, 0.04) for _ in range(winners)]
            amounts += [-draw(0.01, 0.005, 0.02) for _ in range(losers)]
        else:
            amounts = [draw(0.01, 0.005, 0.02) for _ in range(winners)]
            amounts += [-draw(0.015, 0.01, 0.035) for _ in range(losers)]
        return rng.shuffle(amounts)

    def _scaled_amounts(
        self,
        amount: float,
        capital: float,
        trade_count: int,
        rng: RandomProvider,
    ) -> List[float]:
        winning_day = amount > 0
        sign = 1.0 if winning_day else -1.0

        scaled = None
        for _ in range(self.config.max_redraws):
            raw = self._raw_amounts(winning_day, capital, trade_count, rng)
            raw_sum = sum(raw)
            # Scale factor must be positive or winners turn into losers
            if sign * raw_sum > DEGENERATE_SUM:
                factor = amount / raw_sum
                scaled = [a * factor for a in raw]
                break

        if scaled is None:
            logger.warning(
                "Trade amounts degenerate after redraws, using even split",
                extra={"amount": amount, "trade_count": trade_count},
            )
            scaled = [amount / trade_count] * trade_count

        scaled[-1] += amount - sum(scaled)
        return scaled

    def _offsetting_amounts(
        self,
        amount: float,
        capital: float,
        trade_count: int,
        rng: RandomProvider,
    ) -> List[float]:
        """Equal-magnitude win/loss pairs, plus the sub-epsilon amount on the last trade."""
        pairs = max(1, (trade_count + 1) // 2)
        amounts = []
        for _ in range(pairs):
            magnitude = capital * 0.01 * rng.uniform(*self.config.size_variance) * rng.uniform(0.005, 0.02)
            amounts.extend([magnitude, -magnitude])
        amounts = rng.shuffle(amounts)
        amounts[-1] += amount
        return amounts

    def _timestamps(self, count: int, trade_date: date, rng: RandomProvider) -> List[datetime]:
        """Clustered, jittered timestamps inside the session window, sorted."""
        window_open, window_close = get_trading_window_utc(
            trade_date,
            session_open=self.calendar.session_open,
            session_minutes=self.calendar.session_minutes,
            timezone=self.calendar.timezone,
        )
        window_seconds = (window_close - window_open).total_seconds()
        weights = self.config.cluster_weights
        bucket_seconds = window_seconds / len(weights)

        timestamps = []
        for _ in range(count):
            bucket = rng.weighted_index(weights)
            offset = bucket * bucket_seconds + rng.uniform(0, bucket_seconds)
            # Jitter can push across bucket edges but never out of the window
            offset += rng.uniform(-300, 300)
            offset = min(max(offset, 0.0), window_seconds - 1)
            timestamps.append(window_open + timedelta(seconds=int(offset)))
        return sorted(timestamps)

    def _duration(self, relative_size: float, rng: RandomProvider) -> int:
        """10-240 minutes, larger trades tend to run longer."""
        low = self.config.min_duration_minutes
        high = self.config.max_duration_minutes
        weight = 0.5 * rng.random() + 0.5 * relative_size
        return int(round(low + (high - low) * weight))

    def validate_trades(self, trades: Sequence[Trade], expected: float) -> TradeSummary:
        """Summarize a day's trades and check them against the daily amount."""
        pnl = [t.profit_loss for t in trades]
        total = sum(pnl)
        winners = sum(1 for p in pnl if p > 0)
        count = len(pnl)
        return TradeSummary(
            expected=expected,
            total=total,
            difference=total - expected,
            trade_count=count,
            winning_trades=winners,
            losing_trades=count - winners,
            win_rate=winners / count if count else 0.0,
            max_win=max(pnl, default=0.0),
            max_loss=min(pnl, default=0.0),
            within_tolerance=abs(total - expected) <= self.config.tolerance,
        )
