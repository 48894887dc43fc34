"""
Simulation engine.

Pure, synchronous components that operate on one plan at a time. The
database-backed entry points live in src.engine.service.
"""

from src.engine.errors import (
    SimulationError,
    AccountNotFoundError,
    PlanNotFoundError,
    NoActivePeriodError,
    InvalidDayCountError,
    InvalidAmountError,
    InvalidParameterError,
)
from src.engine.types import (
    PeriodStatus,
    DayStatus,
    VarianceClass,
    Direction,
    PayoutSource,
    PayoutStatus,
    DailyAllocation,
    Trade,
    DailyTarget,
    Period,
    CapitalInjection,
    Account,
    LedgerTransaction,
    SimulationPlan,
    PayoutResult,
    CapitalLock,
    ActivationResult,
)
from src.engine.rates import RateGenerator
from src.engine.volatility import VolatilityDistributor
from src.engine.trades import TradeSynthesizer
from src.engine.positions import PositionSizer, locked_capital_at
from src.engine.plan_builder import PlanBuilder
from src.engine.reconciler import Reconciler, prorate
from src.engine.payout import PayoutProcessor

__all__ = [
    # Errors
    "SimulationError",
    "AccountNotFoundError",
    "PlanNotFoundError",
    "NoActivePeriodError",
    "InvalidDayCountError",
    "InvalidAmountError",
    "InvalidParameterError",
    # Types
    "PeriodStatus",
    "DayStatus",
    "VarianceClass",
    "Direction",
    "PayoutSource",
    "PayoutStatus",
    "DailyAllocation",
    "Trade",
    "DailyTarget",
    "Period",
    "CapitalInjection",
    "Account",
    "LedgerTransaction",
    "SimulationPlan",
    "PayoutResult",
    "CapitalLock",
    "ActivationResult",
    # Components
    "RateGenerator",
    "VolatilityDistributor",
    "TradeSynthesizer",
    "PositionSizer",
    "locked_capital_at",
    "PlanBuilder",
    "Reconciler",
    "prorate",
    "PayoutProcessor",
]
