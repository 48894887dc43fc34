"""
Trading Calendar Utilities.

DST-aware session windows, period boundaries and trading-day selection.
"""
from datetime import datetime, date as date_type, timedelta
from typing import Iterable, List, Tuple, Union

import arrow

# Crypto venues trade around the clock
DEFAULT_SESSION_OPEN = "00:00"
DEFAULT_SESSION_MINUTES = 24 * 60
DEFAULT_TIMEZONE = "UTC"

DateLike = Union[str, date_type, datetime]


def to_date(date_input: DateLike) -> date_type:
    """
    Normalize a date string (YYYY-MM-DD), date or datetime to a date.

    Args:
        date_input: Date string, date object, or datetime

    Returns:
        datetime.date
    """
    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date_type):
        return date_input
    return arrow.get(date_input, "YYYY-MM-DD").date()


def add_months(start: DateLike, months: int) -> date_type:
    """
    Shift a date by whole months, clamping to the end of shorter months.

    2024-01-31 + 1 month -> 2024-02-29.
    """
    return arrow.get(to_date(start)).shift(months=months).date()


def period_bounds(activation_date: DateLike, ordinal: int) -> Tuple[date_type, date_type]:
    """
    Get the inclusive (start, end) dates of a monthly period.

    Period 1 starts on the activation date; period N starts N-1 months
    later and ends the day before period N+1 starts.

    Args:
        activation_date: Account activation date
        ordinal: Period number (1-based)

    Returns:
        Tuple of (start_date, end_date)
    """
    if ordinal < 1:
        raise ValueError(f"Period ordinal must be >= 1, got {ordinal}")
    start = add_months(activation_date, ordinal - 1)
    end = add_months(activation_date, ordinal) - timedelta(days=1)
    return start, end


def trading_days(
    start: DateLike,
    end: DateLike,
    weekend_trading: bool = True,
    holidays: Iterable[DateLike] = (),
) -> List[date_type]:
    """
    List trading days in the inclusive range [start, end].

    Args:
        start: First date
        end: Last date
        weekend_trading: Include Saturdays and Sundays
        holidays: Dates excluded from trading

    Returns:
        Sorted list of dates
    """
    start_date = to_date(start)
    end_date = to_date(end)
    excluded = {to_date(h) for h in holidays}

    days = []
    current = start_date
    while current <= end_date:
        is_weekend = current.weekday() >= 5
        if (weekend_trading or not is_weekend) and current not in excluded:
            days.append(current)
        current += timedelta(days=1)
    return days


def get_trading_window_utc(
    date_input: DateLike,
    session_open: str = DEFAULT_SESSION_OPEN,
    session_minutes: int = DEFAULT_SESSION_MINUTES,
    timezone: str = DEFAULT_TIMEZONE,
) -> Tuple[datetime, datetime]:
    """
    Get the session open and close times in UTC for a given date.

    Uses arrow for DST handling, so a 09:30 US/Eastern open maps to
    13:30 UTC in summer and 14:30 UTC in winter.

    Args:
        date_input: Date string (YYYY-MM-DD), date object, or datetime
        session_open: Local open time (HH:mm)
        session_minutes: Session length in minutes
        timezone: IANA timezone of the session

    Returns:
        Tuple of (open_utc, close_utc) as naive datetime objects in UTC
    """
    date_str = to_date(date_input).strftime("%Y-%m-%d")

    open_local = arrow.get(f"{date_str} {session_open}", "YYYY-MM-DD HH:mm", tzinfo=timezone)
    close_local = open_local.shift(minutes=session_minutes)

    return open_local.to("UTC").naive, close_local.to("UTC").naive
