"""Shared fixtures for the crash engine tests."""

from crashround.config import EngineConfig
from crashround.core.crash.engine import CrashEngine

# Uniform draws that give exact decimal increments with base 0.02 / spread 0.1
NO_CRASH = 0.99
CRASH = 0.0
STEP_010 = 0.8  # increment 0.10
STEP_007 = 0.5  # increment 0.07


class ScriptedRNG:
    """Hands out a fixed sequence of floats, then `default` (or fails)."""

    def __init__(self, values=(), default=None):
        self.values = list(values)
        self.default = default
        self.calls = 0

    def push(self, *values):
        self.values.extend(values)

    def random_float(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        if self.default is None:
            raise AssertionError("ScriptedRNG ran out of values")
        return self.default


def flight(steps, step=STEP_010):
    """Draws for `steps` non-crashing flight ticks."""
    values = []
    for _ in range(steps):
        values.extend([NO_CRASH, step])
    return values


def make_engine(rng=None, **overrides) -> CrashEngine:
    config = EngineConfig(**overrides)
    return CrashEngine(config, rng=rng if rng is not None else ScriptedRNG())


def run_countdown(engine: CrashEngine):
    """Tick a waiting engine until it takes off."""
    for _ in range(engine.config.countdown_seconds):
        engine.tick()
