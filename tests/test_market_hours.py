"""Tests for trading calendar utilities."""
from datetime import date, datetime

import pytest

from src.utils.market_hours import (
    add_months,
    get_trading_window_utc,
    period_bounds,
    to_date,
    trading_days,
)


class TestDates:

    def test_to_date_accepts_strings_and_datetimes(self):
        assert to_date("2024-01-05") == date(2024, 1, 5)
        assert to_date(datetime(2024, 1, 5, 13, 0)) == date(2024, 1, 5)
        assert to_date(date(2024, 1, 5)) == date(2024, 1, 5)

    def test_add_months_clamps_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 1, 15), 12) == date(2025, 1, 15)


class TestPeriodBounds:

    def test_first_period_of_january(self):
        start, end = period_bounds(date(2024, 1, 1), 1)
        assert start == date(2024, 1, 1)
        assert end == date(2024, 1, 31)

    def test_later_period(self):
        start, end = period_bounds(date(2024, 1, 1), 2)
        assert start == date(2024, 2, 1)
        assert end == date(2024, 2, 29)

    def test_mid_month_activation(self):
        start, end = period_bounds(date(2024, 3, 15), 1)
        assert start == date(2024, 3, 15)
        assert end == date(2024, 4, 14)

    def test_periods_are_contiguous(self):
        activation = date(2024, 1, 31)
        for ordinal in range(1, 12):
            _, end = period_bounds(activation, ordinal)
            next_start, _ = period_bounds(activation, ordinal + 1)
            assert (next_start - end).days == 1

    def test_rejects_ordinal_below_one(self):
        with pytest.raises(ValueError):
            period_bounds(date(2024, 1, 1), 0)


class TestTradingDays:

    def test_every_day_when_weekends_trade(self):
        days = trading_days(date(2024, 1, 1), date(2024, 1, 31))
        assert len(days) == 31

    def test_weekdays_only(self):
        days = trading_days(date(2024, 1, 1), date(2024, 1, 31), weekend_trading=False)
        assert len(days) == 23
        assert all(d.weekday() < 5 for d in days)

    def test_holidays_excluded(self):
        days = trading_days(date(2024, 1, 1), date(2024, 1, 7), holidays=["2024-01-01"])
        assert date(2024, 1, 1) not in days
        assert len(days) == 6


class TestTradingWindow:

    def test_full_day_utc_session(self):
        open_utc, close_utc = get_trading_window_utc(date(2024, 1, 5))
        assert open_utc == datetime(2024, 1, 5, 0, 0)
        assert close_utc == datetime(2024, 1, 6, 0, 0)

    def test_dst_aware_local_session(self):
        winter_open, _ = get_trading_window_utc(
            "2024-01-05", session_open="09:30", session_minutes=390, timezone="America/New_York"
        )
        summer_open, summer_close = get_trading_window_utc(
            "2024-07-05", session_open="09:30", session_minutes=390, timezone="America/New_York"
        )
        assert winter_open == datetime(2024, 1, 5, 14, 30)
        assert summer_open == datetime(2024, 7, 5, 13, 30)
        assert summer_close == datetime(2024, 7, 5, 20, 0)
