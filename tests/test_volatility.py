"""Tests for the Daily Volatility Distributor."""
from datetime import date, timedelta

import pytest

from src.config import VolatilityConfig
from src.engine.errors import InvalidDayCountError, InvalidParameterError
from src.engine.types import VarianceClass
from src.engine.volatility import VolatilityDistributor, classify_variance, winning_day_count
from src.utils.random_provider import RandomProvider


@pytest.fixture
def distributor():
    return VolatilityDistributor(rng=RandomProvider(2024))


class TestSummation:
    """Daily amounts always add up to the target."""

    @pytest.mark.parametrize("day_count", [1, 2, 7, 28, 30, 31])
    def test_sums_to_target(self, distributor, day_count):
        allocations = distributor.distribute(2100.0, day_count, 10_000.0)
        assert len(allocations) == day_count
        assert sum(a.amount for a in allocations) == pytest.approx(2100.0, abs=0.01)

    def test_many_seeds(self):
        for seed in range(50):
            distributor = VolatilityDistributor(rng=RandomProvider(seed))
            allocations = distributor.distribute(1634.27, 31, 10_893.8)
            assert abs(sum(a.amount for a in allocations) - 1634.27) <= 0.01

    def test_percentages_match_amounts(self, distributor):
        allocations = distributor.distribute(1500.0, 30, 10_000.0)
        for a in allocations:
            assert a.percentage == pytest.approx(a.amount / 10_000.0)
            assert a.variance_class == classify_variance(a.percentage)

    def test_zero_target(self, distributor):
        allocations = distributor.distribute(0.0, 10, 10_000.0)
        assert [a.amount for a in allocations] == [0.0] * 10


class TestWinRatio:
    """Winning days follow round(N * w)."""

    @pytest.mark.parametrize("win_rate", [0.65, 0.70, 0.75])
    def test_win_days_match_rate(self, distributor, win_rate):
        allocations = distributor.distribute(2000.0, 31, 10_000.0, win_rate=win_rate)
        winners = sum(1 for a in allocations if a.winning)
        assert abs(winners - winning_day_count(31, win_rate)) <= 1

    def test_random_win_rate_within_bounds(self):
        for seed in range(20):
            distributor = VolatilityDistributor(rng=RandomProvider(seed))
            allocations = distributor.distribute(2000.0, 31, 10_000.0)
            ratio = sum(1 for a in allocations if a.winning) / 31
            assert 0.65 - 1 / 31 <= ratio <= 0.75 + 1 / 31

    def test_winning_day_count_rounds_half_up(self):
        assert winning_day_count(30, 0.65) == 20  # 19.5
        assert winning_day_count(31, 0.70) == 22  # 21.7
        assert winning_day_count(0, 0.7) == 0


class TestEdgeCases:

    def test_zero_days_returns_empty(self, distributor):
        assert distributor.distribute(1000.0, 0, 10_000.0) == []

    def test_negative_days_raises(self, distributor):
        with pytest.raises(InvalidDayCountError) as exc_info:
            distributor.distribute(1000.0, -1, 10_000.0)
        assert exc_info.value.details["day_count"] == -1

    def test_negative_target_is_mirrored(self, distributor):
        allocations = distributor.distribute(-500.0, 20, 10_000.0, win_rate=0.7)
        assert sum(a.amount for a in allocations) == pytest.approx(-500.0, abs=0.01)
        losing = sum(1 for a in allocations if a.amount < 0)
        assert abs(losing - 14) <= 1

    def test_single_day_gets_whole_target(self, distributor):
        allocations = distributor.distribute(321.0, 1, 10_000.0)
        assert allocations[0].amount == pytest.approx(321.0)

    def test_dates_are_stamped(self, distributor):
        dates = [date(2024, 1, 1) + timedelta(days=i) for i in range(5)]
        allocations = distributor.distribute(100.0, 5, 10_000.0, dates=dates)
        assert [a.date for a in allocations] == dates

    def test_dates_length_mismatch(self, distributor):
        with pytest.raises(InvalidParameterError):
            distributor.distribute(100.0, 5, 10_000.0, dates=[date(2024, 1, 1)])

    def test_non_positive_balance(self, distributor):
        with pytest.raises(InvalidParameterError):
            distributor.distribute(100.0, 5, 0.0)

    def test_degenerate_pattern_falls_back_to_even_split(self):
        # Every day a loser: raw sums are always negative
        config = VolatilityConfig(min_win_rate=0.0, max_win_rate=0.0, max_redraws=3)
        distributor = VolatilityDistributor(config, RandomProvider(1))
        allocations = distributor.distribute(100.0, 4, 10_000.0, win_rate=0.0)
        assert [a.amount for a in allocations] == pytest.approx([25.0] * 4)


class TestRegenerateRemaining:

    def test_uses_given_win_rate_and_dates(self, distributor):
        dates = [date(2024, 1, 11) + timedelta(days=i) for i in range(21)]
        allocations = distributor.regenerate_remaining(900.0, dates, 15_000.0, win_rate=0.7)
        assert [a.date for a in allocations] == dates
        assert sum(a.amount for a in allocations) == pytest.approx(900.0, abs=0.01)


class TestClassification:

    @pytest.mark.parametrize("pct,expected", [
        (0.001, VarianceClass.MINIMAL),
        (-0.006, VarianceClass.LOW),
        (0.02, VarianceClass.MEDIUM),
        (0.029, VarianceClass.HIGH),
    ])
    def test_classify_variance(self, pct, expected):
        assert classify_variance(pct) == expected

    def test_validate_schedule(self, distributor):
        allocations = distributor.distribute(2000.0, 31, 10_000.0, win_rate=0.7)
        summary = distributor.validate_schedule(allocations, 2000.0)
        assert summary.within_tolerance
        assert summary.day_count == 31
        assert summary.winning_days + summary.losing_days == 31
