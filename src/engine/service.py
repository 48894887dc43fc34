"""
Simulation service.

Entry points used by external triggers (CLI, scheduler). Each mutating
operation loads the account's plan, runs the engine component under a
per-account lock and writes the whole plan back together with any ledger
rows it produced.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Dict, Iterator, List, Optional, Tuple

from src.config import EngineConfig
from src.db.database import Database
from src.engine.errors import AccountNotFoundError, SimulationError
from src.engine.payout import PayoutProcessor
from src.engine.plan_builder import PlanBuilder
from src.engine.positions import PositionSizer
from src.engine.queries import (
    AccountSummary,
    BalancePoint,
    DayView,
    PeriodProgress,
    PortfolioState,
    account_summary,
    all_period_progress,
    balance_timeline,
    current_period_progress,
    daily_target_view,
    portfolio_state,
    start_of_day_balance,
)
from src.engine.reconciler import Reconciler
from src.engine.types import (
    ActivationResult,
    CapitalInjection,
    CapitalLock,
    DailyTarget,
    LedgerTransaction,
    PayoutResult,
    Period,
    SimulationPlan,
    Trade,
)
from src.utils.logger import SimulationLogger
from src.utils.market_hours import get_trading_window_utc
from src.utils.random_provider import RandomProvider

logger = logging.getLogger(__name__)
sim_logger = SimulationLogger(logger)


class SimulationService:
    """
    Per-account facade over the simulation engine.

    Usage:
        service = SimulationService(get_db(), load_config())
        service.activate("acct-1", 10_000, date(2024, 1, 1))
        service.inject_capital("acct-1", 5_000, date(2024, 1, 12))
        service.process_all_due(date.today())
    """

    def __init__(self, db: Database, config: Optional[EngineConfig] = None):
        self.db = db
        self.config = config or EngineConfig()
        self.builder = PlanBuilder(self.config)
        self.reconciler = Reconciler(self.builder)
        self.payouts = PayoutProcessor()
        self.sizer = PositionSizer(self.config.positions)
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.Lock()
            return lock

    @contextmanager
    def _locked(self, account_id: str) -> Iterator[None]:
        with self._lock_for(account_id):
            yield

    def _load(self, account_id: str) -> SimulationPlan:
        plan = self.db.get_plan(account_id)
        if plan is None:
            raise AccountNotFoundError(account_id)
        return plan

    # =========================================================================
    # Mutations
    # =========================================================================

    def activate(
        self,
        account_id: str,
        principal: float,
        activation_date: date,
        seed: Optional[int] = None,
    ) -> ActivationResult:
        """
        Build and store the plan for a new account.

        Activating an account that already has a plan returns the stored plan
        with created=False and changes nothing.
        """
        with self._locked(account_id):
            existing = self.db.get_plan(account_id)
            if existing is not None:
                logger.info(f"Account {account_id} already activated", extra={"account_id": account_id})
                return ActivationResult(plan=existing, created=False)

            plan = self.builder.build(account_id, principal, activation_date, seed=seed)
            self.db.save_plan(plan)

        sim_logger.plan_created(
            account_id,
            principal,
            activation_date.isoformat(),
            len(plan.periods),
            plan.account.compounded_balance,
        )
        return ActivationResult(plan=plan, created=True)

    def inject_capital(self, account_id: str, amount: float, injection_date: date) -> CapitalInjection:
        """Reconcile a deposit into the account's plan."""
        with self._locked(account_id):
            plan = self._load(account_id)
            injection = self.reconciler.apply_injection(plan, amount, injection_date)
            self.db.save_plan(plan)

        sim_logger.capital_injected(
            account_id,
            amount,
            injection_date.isoformat(),
            injection.period_ordinal,
            injection.prorated_amount,
        )
        return injection

    def process_payout(self, account_id: str, payout_date: date) -> PayoutResult:
        """Pay one day. Repeated calls for a paid date credit nothing."""
        with self._locked(account_id):
            plan = self._load(account_id)
            result = self.payouts.process(plan, payout_date)
            if result.processed:
                self.db.save_plan(plan, transactions=[result.transaction])
        return result

    def process_due(self, account_id: str, through_date: date) -> List[PayoutResult]:
        """Pay every outstanding day up to through_date for one account."""
        with self._locked(account_id):
            plan = self._load(account_id)
            results = self.payouts.process_due(plan, through_date)
            transactions = [r.transaction for r in results if r.processed]
            if transactions:
                self.db.save_plan(plan, transactions=transactions)
        return results

    def process_all_due(self, through_date: date) -> List[PayoutResult]:
        """
        Catch up every active account. Used by the daily-payout job.

        An account that fails is logged and skipped; the rest still run.
        """
        results = []
        for account_id in self.db.list_account_ids(active_only=True):
            try:
                results.extend(self.process_due(account_id, through_date))
            except SimulationError as e:
                logger.error(
                    f"Payout failed for {account_id}: {e}",
                    extra={"account_id": account_id, "through_date": through_date.isoformat(), **e.details},
                )
        return results

    # =========================================================================
    # Trades
    # =========================================================================

    def get_trades(self, account_id: str, trade_date: date) -> List[Trade]:
        """
        Trades behind one day's target, generated on first request and stored.

        Returns an empty list for dates without a daily target.
        """
        with self._locked(account_id):
            plan = self._load(account_id)
            period = plan.period_for(trade_date)
            target = period.target_for(trade_date) if period else None
            if target is None:
                return []
            if target.has_trades:
                return target.trades

            trades = self._materialize(plan, period, target)
            plan.touch()
            self.db.save_plan(plan)

        sim_logger.trades_materialized(
            account_id,
            trade_date.isoformat(),
            len(trades),
            sum(t.profit_loss for t in trades),
        )
        return trades

    def _materialize(self, plan: SimulationPlan, period: Period, target: DailyTarget) -> List[Trade]:
        # Seeded per day so the same plan always yields the same trades
        rng = RandomProvider(plan.seed).spawn(plan.account_id, target.date.isoformat())
        capital = plan.account.capital
        count = self.sizer.resolve_trade_count(period.trade_count_hint)

        trades = self.builder.synthesizer.synthesize(target.amount, capital, count, target.date, rng)
        trades = self.sizer.assign(trades, capital, rng)
        target.trades = trades
        return trades

    def capital_locks(self, account_id: str, on_date: date) -> List[CapitalLock]:
        """Rolling lock windows that keep the day's positions locked all session."""
        trades = self.get_trades(account_id, on_date)
        if not trades:
            return []
        plan = self._load(account_id)
        window_open, window_close = self._session(on_date)
        rng = RandomProvider(plan.seed).spawn(account_id, on_date.isoformat(), "locks")
        return self.sizer.rolling_locks(trades, window_open, window_close, rng)

    def _session(self, on_date: date) -> Tuple[datetime, datetime]:
        calendar = self.config.calendar
        return get_trading_window_utc(
            on_date,
            session_open=calendar.session_open,
            session_minutes=calendar.session_minutes,
            timezone=calendar.timezone,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_plan(self, account_id: str) -> SimulationPlan:
        return self._load(account_id)

    def summary(self, account_id: str) -> AccountSummary:
        return account_summary(self._load(account_id))

    def current_progress(self, account_id: str) -> Optional[PeriodProgress]:
        """Active period progress, None once every period is completed."""
        return current_period_progress(self._load(account_id))

    def progress(self, account_id: str) -> List[PeriodProgress]:
        return all_period_progress(self._load(account_id))

    def daily_target(self, account_id: str, on_date: date) -> Optional[DayView]:
        """Target and status for a date (typically today)."""
        return daily_target_view(self._load(account_id), on_date)

    def portfolio_state(self, account_id: str, at: datetime) -> PortfolioState:
        """Cash, invested capital and open positions at a naive UTC instant."""
        trades = self.get_trades(account_id, at.date())
        plan = self._load(account_id)
        return portfolio_state(trades, start_of_day_balance(plan, at.date()), at)

    def balance_timeline(self, account_id: str, on_date: date) -> List[BalancePoint]:
        """Portfolio figures after every position open and close of a day."""
        trades = self.get_trades(account_id, on_date)
        plan = self._load(account_id)
        window_open, _ = self._session(on_date)
        return balance_timeline(trades, start_of_day_balance(plan, on_date), window_open)

    def list_transactions(
        self,
        account_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[LedgerTransaction]:
        if account_id is not None:
            self._load(account_id)
        return self.db.list_transactions(account_id, start_date, end_date)
