"""
Rate Generator.

One scalar monthly return per period, drawn from a tiered range: the first
period earns the higher tier, every later period the standard tier.
"""
from typing import Optional

from src.config import RateConfig
from src.engine.errors import InvalidParameterError
from src.utils.random_provider import RandomProvider


class RateGenerator:
    """Draws period rates from configured tiers."""

    def __init__(self, config: Optional[RateConfig] = None, rng: Optional[RandomProvider] = None):
        self.config = config or RateConfig()
        self.rng = rng or RandomProvider()

    def tier_bounds(self, is_first_period: bool) -> tuple:
        """Return (low, high) for the requested tier."""
        if is_first_period:
            return self.config.first_period_min, self.config.first_period_max
        return self.config.standard_min, self.config.standard_max

    def generate(
        self,
        ordinal: int,
        is_first_period: Optional[bool] = None,
        rng: Optional[RandomProvider] = None,
    ) -> float:
        """
        Draw the rate for one period.

        Args:
            ordinal: Period number, 1..period_count
            is_first_period: Tier override; defaults to ordinal == 1
            rng: Random source for this draw (defaults to the generator's)

        Returns:
            Rate as a fraction, e.g. 0.21
        """
        if not 1 <= ordinal <= self.config.period_count:
            raise InvalidParameterError(
                f"Period ordinal must be in 1..{self.config.period_count}, got {ordinal}",
                ordinal=ordinal,
            )
        if is_first_period is None:
            is_first_period = ordinal == 1

        low, high = self.tier_bounds(is_first_period)
        return (rng or self.rng).uniform(low, high)
