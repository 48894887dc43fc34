"""Tests for the Rate Generator."""
import pytest

from src.config import RateConfig
from src.engine.errors import InvalidParameterError, SimulationError
from src.engine.rates import RateGenerator
from src.utils.random_provider import RandomProvider


@pytest.fixture
def generator():
    return RateGenerator(rng=RandomProvider(123))


class TestTierBounds:
    """Every draw lands inside its tier."""

    def test_first_period_tier(self, generator):
        rates = [generator.generate(1) for _ in range(10_000)]
        assert all(0.20 <= r <= 0.22 for r in rates)

    @pytest.mark.parametrize("ordinal", [2, 7, 12])
    def test_standard_tier(self, generator, ordinal):
        rates = [generator.generate(ordinal) for _ in range(10_000)]
        assert all(0.15 <= r <= 0.17 for r in rates)

    def test_tier_override(self, generator):
        assert 0.20 <= generator.generate(5, is_first_period=True) <= 0.22
        assert 0.15 <= generator.generate(1, is_first_period=False) <= 0.17

    def test_draws_spread_across_range(self, generator):
        rates = [generator.generate(2) for _ in range(10_000)]
        assert min(rates) < 0.152
        assert max(rates) > 0.168


class TestValidation:

    @pytest.mark.parametrize("ordinal", [0, 13, -1])
    def test_out_of_range_ordinal(self, generator, ordinal):
        with pytest.raises(InvalidParameterError):
            generator.generate(ordinal)

    def test_errors_are_simulation_errors(self, generator):
        with pytest.raises(SimulationError) as exc_info:
            generator.generate(13)
        assert exc_info.value.details == {"ordinal": 13}

    def test_custom_tiers(self):
        config = RateConfig(first_period_min=0.05, first_period_max=0.05, period_count=3)
        generator = RateGenerator(config, RandomProvider(1))
        assert generator.generate(1) == pytest.approx(0.05)
        with pytest.raises(InvalidParameterError):
            generator.generate(4)

    def test_explicit_rng_is_reproducible(self):
        generator = RateGenerator()
        assert generator.generate(3, rng=RandomProvider(9)) == generator.generate(3, rng=RandomProvider(9))
