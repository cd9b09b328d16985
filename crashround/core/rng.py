import secrets
from typing import Protocol


class RandomSource(Protocol):
    """Anything that can hand out uniform floats in [0.0, 1.0)."""

    def random_float(self) -> float:
        ...


class TrueRNG:
    """
    A wrapper around Python's `secrets` module to provide cryptographically strong
    random numbers for the crash trial and multiplier growth.
    """

    # secrets.randbelow(n) returns [0, n); a large integer range approximates a float
    PRECISION = 10**12

    def random_float(self) -> float:
        """Returns a random float in the range [0.0, 1.0)."""
        return secrets.randbelow(self.PRECISION) / self.PRECISION


rng = TrueRNG()
