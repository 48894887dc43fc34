"""
Simulation engine exceptions.

Every precondition violation raised by the engine is a SimulationError, so
callers (CLI, scheduler) can catch one type. Idempotent no-ops are never
raised; they come back as PayoutStatus values.
"""
from datetime import date
from typing import Any, Dict, Optional


class SimulationError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class AccountNotFoundError(SimulationError):
    """No account with the given id."""

    def __init__(self, account_id: str):
        super().__init__(f"Account not found: {account_id}", {"account_id": account_id})
        self.account_id = account_id


class PlanNotFoundError(SimulationError):
    """Account exists but has no simulation plan."""

    def __init__(self, account_id: str):
        super().__init__(f"No simulation plan for account: {account_id}", {"account_id": account_id})
        self.account_id = account_id


class NoActivePeriodError(SimulationError):
    """The date does not fall inside the plan's active period."""

    def __init__(self, account_id: str, on_date: date, active_period: Optional[int] = None):
        super().__init__(
            f"No active period for {account_id} on {on_date.isoformat()}",
            {"account_id": account_id, "date": on_date.isoformat(), "active_period": active_period},
        )
        self.account_id = account_id
        self.on_date = on_date
        self.active_period = active_period


class InvalidDayCountError(SimulationError):
    """Negative day count passed to a distributor."""

    def __init__(self, day_count: int):
        super().__init__(f"Day count must be >= 0, got {day_count}", {"day_count": day_count})
        self.day_count = day_count


class InvalidAmountError(SimulationError):
    """Principal below minimum, or a non-positive deposit."""

    def __init__(self, message: str, amount: float, minimum: Optional[float] = None):
        details: Dict[str, Any] = {"amount": amount}
        if minimum is not None:
            details["minimum"] = minimum
        super().__init__(message, details)
        self.amount = amount
        self.minimum = minimum


class InvalidParameterError(SimulationError):
    """Engine component called with an out-of-range argument."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, details)
