"""
Multiplier growth for the flight phase.
Every flight tick adds a random increment in [base, base + spread).
"""

from decimal import Decimal

from crashround.core.rng import RandomSource, rng as default_rng

START_MULTIPLIER = Decimal("1.00")


class MultiplierClock:
    """
    Advances the multiplier by one tick.

    With the default base 0.02 and spread 0.1 the increment lies in [0.02, 0.12),
    so the curve is strictly increasing and unbounded.
    """

    def __init__(self, rng: RandomSource = None, base: float = 0.02, spread: float = 0.1):
        self.rng = rng or default_rng
        self.base = Decimal(str(base))
        self.spread = Decimal(str(spread))

    def increment(self) -> Decimal:
        """Draw one increment."""
        u = Decimal(repr(self.rng.random_float()))
        return u * self.spread + self.base

    def advance(self, multiplier: Decimal) -> Decimal:
        return multiplier + self.increment()
