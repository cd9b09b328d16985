"""
Round state machine: Waiting -> Flying -> Crashed -> Waiting ...

The round is a single tagged value, so a crashed round cannot carry a live
multiplier and a waiting round cannot carry a flight at all.
"""

import itertools
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union

from crashround.core.crash.clock import MultiplierClock, START_MULTIPLIER
from crashround.core.crash.generator import CrashGenerator


class RoundPhase(str, Enum):
    WAITING = "waiting"
    FLYING = "flying"
    CRASHED = "crashed"


@dataclass(frozen=True)
class Waiting:
    countdown: int
    phase: ClassVar[RoundPhase] = RoundPhase.WAITING


@dataclass(frozen=True)
class Flying:
    round_id: int
    multiplier: Decimal
    phase: ClassVar[RoundPhase] = RoundPhase.FLYING


@dataclass(frozen=True)
class Crashed:
    round_id: int
    final_multiplier: Decimal
    phase: ClassVar[RoundPhase] = RoundPhase.CRASHED


RoundState = Union[Waiting, Flying, Crashed]


@dataclass(frozen=True)
class Transition:
    """Result of one step: where the round was and where it is now."""
    previous: RoundState
    current: RoundState

    @property
    def phase_changed(self) -> bool:
        return self.previous.phase is not self.current.phase

    def entered(self, phase: RoundPhase) -> bool:
        return self.phase_changed and self.current.phase is phase


class RoundStateMachine:
    """
    Owns the round state and steps it one tick at a time.

    The caller decides when a tick happens (1 s countdown ticks, 100 ms
    flight ticks, one 3 s dwell after a crash); every step is infallible.
    """

    def __init__(
        self,
        clock: MultiplierClock,
        generator: CrashGenerator,
        countdown_seconds: int = 5,
        first_round_id: int = 1,
    ):
        self.clock = clock
        self.generator = generator
        self.countdown_seconds = countdown_seconds
        self.state: RoundState = Waiting(countdown_seconds)
        self._round_ids = itertools.count(first_round_id)
        self.round_id = first_round_id - 1  # Current or most recent round

    @property
    def phase(self) -> RoundPhase:
        return self.state.phase

    def step(self) -> Transition:
        """Advance the active phase by one tick."""
        previous = self.state

        if isinstance(previous, Waiting):
            if previous.countdown > 1:
                self.state = Waiting(previous.countdown - 1)
            else:
                self.round_id = next(self._round_ids)
                self.state = Flying(self.round_id, START_MULTIPLIER)

        elif isinstance(previous, Flying):
            if self.generator.should_crash():
                # Crash at the multiplier already shown, not the next one
                self.state = Crashed(previous.round_id, previous.multiplier)
            else:
                self.state = Flying(previous.round_id, self.clock.advance(previous.multiplier))

        else:
            self.state = Waiting(self.countdown_seconds)

        return Transition(previous, self.state)
