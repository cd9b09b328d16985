from decimal import Decimal

from crashround.core.rng import RandomSource, rng as default_rng
from crashround.core.crash.clock import MultiplierClock, START_MULTIPLIER


class CrashGenerator:
    """
    Decides when a flight ends.

    No crash point is fixed up front: each flight tick runs an independent
    Bernoulli trial with probability `crash_probability`, and the round crashes
    at whatever the multiplier is on the first success. Tick counts are
    geometric, which makes the crash multiplier long-tailed.
    """

    # Typical values run from 0.015 to 0.02
    DEFAULT_CRASH_PROBABILITY = 0.02

    def __init__(self, rng: RandomSource = None, crash_probability: float = DEFAULT_CRASH_PROBABILITY):
        if not 0 < crash_probability <= 1:
            raise ValueError("crash_probability must be in (0, 1]")
        self.rng = rng or default_rng
        self.crash_probability = crash_probability

    def should_crash(self) -> bool:
        """Run one per-tick trial."""
        return self.rng.random_float() < self.crash_probability

    def draw(self, clock: MultiplierClock) -> Decimal:
        """
        Simulate a whole flight offline and return its crash point.

        Mirrors the live round exactly: trial first, then advance, starting
        from 1.00. Only used for statistics, never to pre-decide a live round.

        Args:
            clock: Multiplier clock used to grow the simulated flight

        Returns:
            The crash multiplier (>= 1.00)
        """
        multiplier = START_MULTIPLIER
        while not self.should_crash():
            multiplier = clock.advance(multiplier)
        return multiplier
