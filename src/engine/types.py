"""
Simulation data types.

Contains Account, Period, DailyTarget, Trade and the SimulationPlan that owns
them. A plan is the unit of persistence: to_dict()/from_dict() round-trip it
through plain JSON-compatible structures.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


def _generate_id() -> str:
    return uuid.uuid4().hex[:12]


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class PeriodStatus(str, Enum):
    """Period lifecycle: scheduled -> active -> completed."""
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"


class DayStatus(str, Enum):
    """Daily target lifecycle: pending -> paid, or pending -> skipped once payouts moved past it."""
    PENDING = "pending"
    PAID = "paid"
    SKIPPED = "skipped"


class VarianceClass(str, Enum):
    """Magnitude bucket of a daily move."""
    MINIMAL = "minimal"  # < 0.5%
    LOW = "low"          # >= 0.5%
    MEDIUM = "medium"    # >= 1.5%
    HIGH = "high"        # >= 2.5%


class Direction(str, Enum):
    """Trade direction."""
    LONG = "long"
    SHORT = "short"


class PayoutSource(str, Enum):
    """Where a credited amount came from."""
    TRADES = "trades"
    SCHEDULE = "schedule"


class PayoutStatus(str, Enum):
    """Outcome of a payout attempt."""
    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"
    NO_TARGET = "no_target"


@dataclass
class DailyAllocation:
    """One day produced by the volatility distributor."""
    amount: float
    percentage: float  # fraction of balance, 0.012 == 1.2%
    winning: bool
    variance_class: VarianceClass
    date: Optional[date] = None


@dataclass
class Trade:
    """Synthetic trade record. Immutable once generated."""
    trade_id: str
    timestamp: datetime
    symbol: str
    name: str
    direction: Direction
    profit_loss: float
    duration_minutes: int
    position_size: float = 0.0
    lock_start: Optional[datetime] = None
    lock_end: Optional[datetime] = None

    @property
    def is_winner(self) -> bool:
        return self.profit_loss > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.trade_id,
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "name": self.name,
            "direction": self.direction.value,
            "profit_loss": self.profit_loss,
            "duration_minutes": self.duration_minutes,
            "position_size": self.position_size,
            "lock_start": _iso(self.lock_start),
            "lock_end": _iso(self.lock_end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trade":
        return cls(
            trade_id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            symbol=data["symbol"],
            name=data.get("name", data["symbol"]),
            direction=Direction(data["direction"]),
            profit_loss=float(data["profit_loss"]),
            duration_minutes=int(data["duration_minutes"]),
            position_size=float(data.get("position_size", 0.0)),
            lock_start=_parse_datetime(data.get("lock_start")),
            lock_end=_parse_datetime(data.get("lock_end")),
        )


@dataclass
class CapitalLock:
    """One lock window of a position slot. Slots roll from window to window all session."""
    slot: int
    trade_id: str
    position_size: float
    lock_start: datetime
    lock_end: datetime
    replacement: bool = True  # False for the window opened by the trade itself

    @property
    def minutes(self) -> float:
        return (self.lock_end - self.lock_start).total_seconds() / 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot,
            "trade_id": self.trade_id,
            "position_size": self.position_size,
            "lock_start": self.lock_start.isoformat(),
            "lock_end": self.lock_end.isoformat(),
            "replacement": self.replacement,
        }


@dataclass
class DailyTarget:
    """The share of a period's return allocated to one trading day."""
    date: date
    amount: float
    percentage: float
    winning: bool
    variance_class: VarianceClass
    status: DayStatus = DayStatus.PENDING
    paid_amount: float = 0.0
    trades: Optional[List[Trade]] = None  # None until materialized

    @property
    def is_paid(self) -> bool:
        return self.status == DayStatus.PAID

    @property
    def has_trades(self) -> bool:
        return self.trades is not None

    @classmethod
    def from_allocation(cls, allocation: DailyAllocation) -> "DailyTarget":
        return cls(
            date=allocation.date,
            amount=allocation.amount,
            percentage=allocation.percentage,
            winning=allocation.winning,
            variance_class=allocation.variance_class,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "amount": self.amount,
            "percentage": self.percentage,
            "winning": self.winning,
            "variance_class": self.variance_class.value,
            "status": self.status.value,
            "paid_amount": self.paid_amount,
            "trades": [t.to_dict() for t in self.trades] if self.trades is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyTarget":
        trades = data.get("trades")
        return cls(
            date=date.fromisoformat(data["date"]),
            amount=float(data["amount"]),
            percentage=float(data["percentage"]),
            winning=bool(data["winning"]),
            variance_class=VarianceClass(data["variance_class"]),
            status=DayStatus(data.get("status", DayStatus.PENDING.value)),
            paid_amount=float(data.get("paid_amount", 0.0)),
            trades=[Trade.from_dict(t) for t in trades] if trades is not None else None,
        )


@dataclass
class Period:
    """One of the twelve compounding periods of a plan."""
    ordinal: int
    rate: float
    start_date: date
    end_date: date
    starting_balance: float
    target_amount: float
    win_rate: float
    trade_count_hint: int
    daily_targets: List[DailyTarget] = field(default_factory=list)
    status: PeriodStatus = PeriodStatus.SCHEDULED
    paid_amount: float = 0.0
    remaining_days: int = 0
    last_paid_date: Optional[date] = None

    @property
    def ending_balance(self) -> float:
        return self.starting_balance + self.target_amount

    @property
    def day_count(self) -> int:
        return len(self.daily_targets)

    @property
    def remaining_amount(self) -> float:
        return self.target_amount - self.paid_amount

    def contains(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date

    def target_for(self, on_date: date) -> Optional[DailyTarget]:
        for target in self.daily_targets:
            if target.date == on_date:
                return target
        return None

    def payable_targets(self) -> List[DailyTarget]:
        """Pending targets after the last-paid marker. Pending days behind it can no longer be paid."""
        return [
            t
            for t in self.daily_targets
            if t.status == DayStatus.PENDING
            and (self.last_paid_date is None or t.date > self.last_paid_date)
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "rate": self.rate,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "starting_balance": self.starting_balance,
            "target_amount": self.target_amount,
            "ending_balance": self.ending_balance,
            "day_count": self.day_count,
            "win_rate": self.win_rate,
            "trade_count_hint": self.trade_count_hint,
            "status": self.status.value,
            "paid_amount": self.paid_amount,
            "remaining_days": self.remaining_days,
            "last_paid_date": _iso(self.last_paid_date),
            "daily_targets": [t.to_dict() for t in self.daily_targets],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Period":
        return cls(
            ordinal=int(data["ordinal"]),
            rate=float(data["rate"]),
            start_date=date.fromisoformat(data["start_date"]),
            end_date=date.fromisoformat(data["end_date"]),
            starting_balance=float(data["starting_balance"]),
            target_amount=float(data["target_amount"]),
            win_rate=float(data["win_rate"]),
            trade_count_hint=int(data["trade_count_hint"]),
            daily_targets=[DailyTarget.from_dict(t) for t in data.get("daily_targets", [])],
            status=PeriodStatus(data.get("status", PeriodStatus.SCHEDULED.value)),
            paid_amount=float(data.get("paid_amount", 0.0)),
            remaining_days=int(data.get("remaining_days", 0)),
            last_paid_date=_parse_date(data.get("last_paid_date")),
        )


@dataclass
class CapitalInjection:
    """Append-only record of a deposit made after activation."""
    amount: float
    date: date
    period_ordinal: int
    prorated_amount: float
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "date": self.date.isoformat(),
            "period_ordinal": self.period_ordinal,
            "prorated_amount": self.prorated_amount,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapitalInjection":
        return cls(
            amount=float(data["amount"]),
            date=date.fromisoformat(data["date"]),
            period_ordinal=int(data["period_ordinal"]),
            prorated_amount=float(data["prorated_amount"]),
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(),
        )


@dataclass
class Account:
    """Account state owned by the simulation."""
    account_id: str
    principal: float
    activation_date: date
    total_deposited: float
    compounded_balance: float = 0.0  # projected ending balance of the last period
    interest_credited: float = 0.0

    @property
    def capital(self) -> float:
        """Deposits plus credited interest, used for trade and position sizing."""
        return self.total_deposited + self.interest_credited

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "principal": self.principal,
            "activation_date": self.activation_date.isoformat(),
            "total_deposited": self.total_deposited,
            "compounded_balance": self.compounded_balance,
            "interest_credited": self.interest_credited,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            account_id=data["account_id"],
            principal=float(data["principal"]),
            activation_date=date.fromisoformat(data["activation_date"]),
            total_deposited=float(data.get("total_deposited", data["principal"])),
            compounded_balance=float(data.get("compounded_balance", 0.0)),
            interest_credited=float(data.get("interest_credited", 0.0)),
        )


@dataclass
class LedgerTransaction:
    """One credit emitted by the payout processor."""
    account_id: str
    date: date
    amount: float
    source: PayoutSource
    period_ordinal: int
    rate: float
    transaction_id: str = field(default_factory=_generate_id)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.transaction_id,
            "account_id": self.account_id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "source": self.source.value,
            "period_ordinal": self.period_ordinal,
            "rate": self.rate,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class SimulationPlan:
    """Full twelve-period plan for one account."""
    account: Account
    periods: List[Period]
    injections: List[CapitalInjection] = field(default_factory=list)
    seed: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def account_id(self) -> str:
        return self.account.account_id

    @property
    def is_finished(self) -> bool:
        return all(p.status == PeriodStatus.COMPLETED for p in self.periods)

    def active_period(self) -> Optional[Period]:
        for period in self.periods:
            if period.status == PeriodStatus.ACTIVE:
                return period
        return None

    def period(self, ordinal: int) -> Period:
        return self.periods[ordinal - 1]

    def period_for(self, on_date: date) -> Optional[Period]:
        for period in self.periods:
            if period.contains(on_date):
                return period
        return None

    def target_for(self, on_date: date) -> Optional[DailyTarget]:
        period = self.period_for(on_date)
        return period.target_for(on_date) if period else None

    def touch(self) -> None:
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.account.to_dict(),
            "periods": [p.to_dict() for p in self.periods],
            "injections": [i.to_dict() for i in self.injections],
            "seed": self.seed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationPlan":
        return cls(
            account=Account.from_dict(data["account"]),
            periods=[Period.from_dict(p) for p in data["periods"]],
            injections=[CapitalInjection.from_dict(i) for i in data.get("injections", [])],
            seed=data.get("seed"),
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(),
            updated_at=_parse_datetime(data.get("updated_at")) or datetime.now(),
        )


@dataclass
class PayoutResult:
    """Result of one payout attempt."""
    status: PayoutStatus
    account_id: str
    date: date
    amount: float = 0.0
    source: Optional[PayoutSource] = None
    period_ordinal: Optional[int] = None
    transaction: Optional[LedgerTransaction] = None
    period_completed: bool = False

    @property
    def processed(self) -> bool:
        return self.status == PayoutStatus.PROCESSED


@dataclass
class ActivationResult:
    """Plan returned by activation; created is False when it already existed."""
    plan: SimulationPlan
    created: bool
