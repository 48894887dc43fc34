"""
Read-only views over a simulation plan.

Nothing here mutates a plan; trade materialization lives in the service.
The intraday views replay a materialized day's trades: a position takes
cash when it opens and hands back size plus P&L when it closes.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from src.engine.types import DailyTarget, Period, PeriodStatus, SimulationPlan, Trade


@dataclass
class PeriodProgress:
    """How far a period has been paid out."""
    ordinal: int
    rate: float
    status: PeriodStatus
    start_date: date
    end_date: date
    starting_balance: float
    target_amount: float
    paid_amount: float
    remaining_amount: float
    day_count: int
    paid_days: int
    remaining_days: int
    last_paid_date: Optional[date]

    @property
    def progress_pct(self) -> float:
        if self.target_amount == 0:
            return 0.0
        return self.paid_amount / self.target_amount * 100


@dataclass
class DayView:
    """One daily target and its payout state."""
    date: date
    period_ordinal: int
    amount: float
    percentage: float
    winning: bool
    variance_class: str
    status: str
    paid_amount: float
    trade_count: Optional[int]  # None until trades are materialized


@dataclass
class AccountSummary:
    """Top-level account figures."""
    account_id: str
    principal: float
    activation_date: date
    total_deposited: float
    interest_credited: float
    capital: float
    compounded_balance: float
    active_period: Optional[int]
    injection_count: int
    finished: bool


def period_progress(period: Period) -> PeriodProgress:
    paid_days = sum(1 for t in period.daily_targets if t.is_paid)
    return PeriodProgress(
        ordinal=period.ordinal,
        rate=period.rate,
        status=period.status,
        start_date=period.start_date,
        end_date=period.end_date,
        starting_balance=period.starting_balance,
        target_amount=period.target_amount,
        paid_amount=period.paid_amount,
        remaining_amount=period.remaining_amount,
        day_count=period.day_count,
        paid_days=paid_days,
        remaining_days=period.remaining_days,
        last_paid_date=period.last_paid_date,
    )


def current_period_progress(plan: SimulationPlan) -> Optional[PeriodProgress]:
    """Progress of the active period, None once the plan is finished."""
    period = plan.active_period()
    return period_progress(period) if period else None


def all_period_progress(plan: SimulationPlan) -> List[PeriodProgress]:
    return [period_progress(p) for p in plan.periods]


def _day_view(period: Period, target: DailyTarget) -> DayView:
    return DayView(
        date=target.date,
        period_ordinal=period.ordinal,
        amount=target.amount,
        percentage=target.percentage,
        winning=target.winning,
        variance_class=target.variance_class.value,
        status=target.status.value,
        paid_amount=target.paid_amount,
        trade_count=len(target.trades) if target.trades is not None else None,
    )


def daily_target_view(plan: SimulationPlan, on_date: date) -> Optional[DayView]:
    """The daily target for a date and its status, None on non-trading days."""
    period = plan.period_for(on_date)
    if period is None:
        return None
    target = period.target_for(on_date)
    return _day_view(period, target) if target else None


def period_days(plan: SimulationPlan, ordinal: int) -> List[DayView]:
    period = plan.period(ordinal)
    return [_day_view(period, t) for t in period.daily_targets]


def account_summary(plan: SimulationPlan) -> AccountSummary:
    account = plan.account
    active = plan.active_period()
    return AccountSummary(
        account_id=account.account_id,
        principal=account.principal,
        activation_date=account.activation_date,
        total_deposited=account.total_deposited,
        interest_credited=account.interest_credited,
        capital=account.capital,
        compounded_balance=account.compounded_balance,
        active_period=active.ordinal if active else None,
        injection_count=len(plan.injections),
        finished=plan.is_finished,
    )


# =============================================================================
# Intraday portfolio
# =============================================================================


@dataclass
class OpenPosition:
    """A trade whose position is still open at some instant."""
    trade_id: str
    symbol: str
    direction: str
    position_size: float
    opened_at: datetime
    closes_at: datetime


@dataclass
class PortfolioState:
    """Cash, invested capital and realized P&L at one instant of a day."""
    at: datetime
    starting_balance: float
    cash: float
    invested: float
    realized_pnl: float
    open_positions: List[OpenPosition]

    @property
    def total_value(self) -> float:
        return self.cash + self.invested

    @property
    def change(self) -> float:
        return self.total_value - self.starting_balance

    @property
    def change_pct(self) -> float:
        if self.starting_balance == 0:
            return 0.0
        return self.change / self.starting_balance * 100


@dataclass
class BalancePoint:
    """Portfolio figures right after one open or close event."""
    time: datetime
    event: str  # session_open, open or close
    trade_id: Optional[str]
    symbol: Optional[str]
    amount: float  # position size on open, P&L on close
    cash: float
    invested: float
    realized_pnl: float
    open_count: int

    @property
    def total_value(self) -> float:
        return self.cash + self.invested


def trade_close(trade: Trade) -> datetime:
    return trade.timestamp + timedelta(minutes=trade.duration_minutes)


def start_of_day_balance(plan: SimulationPlan, on_date: date) -> float:
    """Deposits made by the date plus interest credited on earlier days."""
    deposits = plan.account.principal + sum(
        i.amount for i in plan.injections if i.date <= on_date
    )
    credited = sum(
        t.paid_amount
        for period in plan.periods
        for t in period.daily_targets
        if t.is_paid and t.date < on_date
    )
    return deposits + credited


def portfolio_state(trades: Sequence[Trade], starting_balance: float, at: datetime) -> PortfolioState:
    """
    Replay a day's trades up to an instant.

    A trade takes its position size out of cash when it opens and returns
    size plus P&L when it closes (timestamp + duration).
    """
    cash = starting_balance
    invested = 0.0
    realized = 0.0
    open_positions = []

    for trade in sorted(trades, key=lambda t: t.timestamp):
        if trade.timestamp > at:
            break
        closes_at = trade_close(trade)
        if closes_at > at:
            cash -= trade.position_size
            invested += trade.position_size
            open_positions.append(
                OpenPosition(
                    trade_id=trade.trade_id,
                    symbol=trade.symbol,
                    direction=trade.direction.value,
                    position_size=trade.position_size,
                    opened_at=trade.timestamp,
                    closes_at=closes_at,
                )
            )
        else:
            cash += trade.profit_loss
            realized += trade.profit_loss

    return PortfolioState(
        at=at,
        starting_balance=starting_balance,
        cash=cash,
        invested=invested,
        realized_pnl=realized,
        open_positions=open_positions,
    )


def balance_timeline(
    trades: Sequence[Trade],
    starting_balance: float,
    session_open: datetime,
) -> List[BalancePoint]:
    """One point for the session open, then one per position open and close, in time order."""
    events = []
    for trade in trades:
        events.append((trade.timestamp, 1, "open", trade))
        events.append((trade_close(trade), 0, "close", trade))
    # Closes sort ahead of opens at the same instant
    events.sort(key=lambda e: (e[0], e[1], e[3].trade_id))

    cash = starting_balance
    invested = 0.0
    realized = 0.0
    open_count = 0
    timeline = [
        BalancePoint(session_open, "session_open", None, None, 0.0, cash, invested, realized, open_count)
    ]

    for time, _, event, trade in events:
        if event == "open":
            cash -= trade.position_size
            invested += trade.position_size
            open_count += 1
            amount = trade.position_size
        else:
            cash += trade.position_size + trade.profit_loss
            invested -= trade.position_size
            realized += trade.profit_loss
            open_count -= 1
            amount = trade.profit_loss
        timeline.append(
            BalancePoint(
                time, event, trade.trade_id, trade.symbol, amount, cash, invested, realized, open_count
            )
        )
    return timeline
