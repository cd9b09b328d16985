"""
Monte Carlo over crash points, for tuning the per-tick crash probability.
"""

import statistics
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List

from crashround.core.crash.clock import MultiplierClock, START_MULTIPLIER
from crashround.core.crash.generator import CrashGenerator


@dataclass
class TargetStats:
    target: float
    hit_rate: float
    expected_return: float  # Per unit staked, 1.0 is break-even


@dataclass
class SimulationReport:
    rounds: int
    crash_probability: float
    mean: float
    median: float
    maximum: float
    instant_crash_rate: float
    targets: List[TargetStats] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "rounds": self.rounds,
            "crash_probability": self.crash_probability,
            "mean": round(self.mean, 4),
            "median": round(self.median, 4),
            "max": round(self.maximum, 2),
            "instant_crash_rate": round(self.instant_crash_rate, 4),
            "targets": [
                {
                    "target": t.target,
                    "hit_rate": round(t.hit_rate, 4),
                    "expected_return": round(t.expected_return, 4),
                }
                for t in self.targets
            ],
        }


def simulate_crash_points(generator: CrashGenerator, clock: MultiplierClock, rounds: int) -> List[Decimal]:
    return [generator.draw(clock) for _ in range(rounds)]


def summarize(points: List[Decimal], crash_probability: float, targets: Iterable[float] = ()) -> SimulationReport:
    """
    Build a report from simulated crash points.

    A cash-out at `target` pays when the round is still flying at that
    multiplier, i.e. when the crash point is at or above it.
    """
    if not points:
        raise ValueError("Need at least one simulated round")

    values = [float(p) for p in points]
    rounds = len(values)

    target_stats = []
    for target in targets:
        hits = sum(1 for v in values if v >= target)
        hit_rate = hits / rounds
        target_stats.append(TargetStats(target=target, hit_rate=hit_rate, expected_return=hit_rate * target))

    return SimulationReport(
        rounds=rounds,
        crash_probability=crash_probability,
        mean=statistics.fmean(values),
        median=statistics.median(values),
        maximum=max(values),
        instant_crash_rate=sum(1 for p in points if p == START_MULTIPLIER) / rounds,
        targets=target_stats,
    )


def run_simulation(generator: CrashGenerator, clock: MultiplierClock, rounds: int,
                   targets: Iterable[float] = ()) -> SimulationReport:
    points = simulate_crash_points(generator, clock, rounds)
    return summarize(points, generator.crash_probability, targets)
