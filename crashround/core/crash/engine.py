"""
Crash engine facade.
Composes the round state machine, bet ledger and history behind one mutation
entry point, and tells observers (UI, sound, particles) what happened.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import orjson
import pytz

from crashround.config import EngineConfig, settings
from crashround.core.logger import get_logger
from crashround.core.rng import RandomSource, rng as default_rng
from crashround.core.crash.clock import MultiplierClock, START_MULTIPLIER
from crashround.core.crash.generator import CrashGenerator
from crashround.core.crash.history import HistoryEntry, RoundHistory
from crashround.core.crash.ledger import Bet, BetLedger
from crashround.core.crash.rounds import (
    Crashed,
    Flying,
    RoundPhase,
    RoundStateMachine,
    Transition,
    Waiting,
)

logger = get_logger("engine")


class EngineEvent(str, Enum):
    ROUND_STARTED = "round_started"
    BET_PLACED = "bet_placed"
    CASHED_OUT = "cashed_out"
    CRASHED = "crashed"
    COUNTDOWN = "countdown"
    ROUND_WAITING = "round_waiting"


Observer = Callable[[EngineEvent, Dict], None]


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only copy of everything an observer may show."""
    round_id: int
    phase: RoundPhase
    multiplier: Decimal
    countdown: int
    stake: Decimal
    balance: Decimal
    bet: Bet
    bet_value: Decimal
    history: Tuple[HistoryEntry, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict:
        return {
            "round_id": self.round_id,
            "phase": self.phase.value,
            "multiplier": float(round(self.multiplier, 2)),
            "countdown": self.countdown,
            "stake": float(self.stake),
            "balance": float(round(self.balance, 2)),
            "bet": self.bet.to_dict(),
            "bet_value": float(round(self.bet_value, 2)),
            "history": [entry.to_dict() for entry in self.history],
        }

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())


class CrashEngine:
    """
    Single entry point for everything that mutates a crash session.

    `tick()` is called by the driver once per scheduled step of the active
    phase; `place_bet`, `cash_out` and `adjust_bet_amount` come from the
    player. Observers never touch state directly.
    """

    def __init__(self, config: EngineConfig = None, rng: RandomSource = None):
        self.config = config or settings.engine
        source = rng or default_rng

        self.clock = MultiplierClock(
            source,
            base=self.config.increment_base,
            spread=self.config.increment_spread,
        )
        self.generator = CrashGenerator(source, crash_probability=self.config.crash_probability)
        self.ledger = BetLedger(
            starting_balance=self.config.starting_balance,
            default_stake=self.config.default_stake,
            min_stake=self.config.min_stake,
        )
        self.history = RoundHistory(self.config.history_size)
        self.timezone = pytz.timezone(self.config.timezone)

        self._seed_history()
        self.machine = RoundStateMachine(
            self.clock,
            self.generator,
            countdown_seconds=self.config.countdown_seconds,
            first_round_id=len(self.history) + 1,
        )
        self._observers: list = []

    def _seed_history(self):
        seeded = self.config.seed_history
        if not seeded:
            return
        now = datetime.now(self.timezone)
        count = len(seeded)
        self.history.seed(
            HistoryEntry(id=count - i, multiplier=Decimal(str(m)), timestamp=now)
            for i, m in enumerate(seeded)
        )

    # ==================== Observers ====================

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, event: EngineEvent, payload: Dict):
        for observer in list(self._observers):
            try:
                observer(event, payload)
            except Exception:
                logger.exception(f"Observer {observer!r} failed on {event.value}")

    # ==================== Ticking ====================

    @property
    def phase(self) -> RoundPhase:
        return self.machine.phase

    def tick(self, now: Optional[datetime] = None) -> RoundPhase:
        """
        Advance the active phase by one scheduling step.

        Args:
            now: Time of the tick, stamped on history entries (defaults to now
                in the configured timezone)

        Returns:
            The phase after the step
        """
        transition = self.machine.step()
        self._apply(transition, now or datetime.now(self.timezone))
        return transition.current.phase

    def _apply(self, transition: Transition, now: datetime):
        state = transition.current

        if isinstance(state, Waiting):
            if transition.entered(RoundPhase.WAITING):
                self.ledger.clear_settled()
                logger.debug(f"Waiting for round {self.machine.round_id + 1}")
                self._notify(EngineEvent.ROUND_WAITING, {"countdown": state.countdown})
            elif state.countdown <= self.config.countdown_alert_seconds:
                self._notify(EngineEvent.COUNTDOWN, {"remaining": state.countdown})

        elif isinstance(state, Flying):
            if transition.entered(RoundPhase.FLYING):
                logger.info(f"Round {state.round_id} took off")
                self._notify(
                    EngineEvent.ROUND_STARTED,
                    {"round_id": state.round_id, "multiplier": state.multiplier},
                )

        elif isinstance(state, Crashed):
            self.history.record(
                HistoryEntry(id=state.round_id, multiplier=state.final_multiplier, timestamp=now)
            )
            lost = self.ledger.settle_crash()
            if lost is not None:
                logger.info(f"Bet of {lost.amount} lost in round {state.round_id}")
            logger.info(f"Round {state.round_id} crashed at {state.final_multiplier:.2f}x")
            self._notify(
                EngineEvent.CRASHED,
                {
                    "round_id": state.round_id,
                    "multiplier": state.final_multiplier,
                    "lost": lost.amount if lost is not None else None,
                },
            )

    # ==================== Player commands ====================

    def place_bet(self, amount=None) -> Dict:
        result = self.ledger.place_bet(self.phase, amount)
        if not result["success"]:
            logger.debug(f"Bet rejected: {result['error']}")
            return result

        logger.info(f"Bet placed: {result['amount']} (balance {result['balance']})")
        self._notify(
            EngineEvent.BET_PLACED,
            {"amount": result["amount"], "balance": result["balance"]},
        )
        return result

    def cash_out(self) -> Dict:
        state = self.machine.state
        multiplier = state.multiplier if isinstance(state, Flying) else START_MULTIPLIER

        result = self.ledger.cash_out(self.phase, multiplier)
        if not result["success"]:
            logger.debug(f"Cash out rejected: {result['error']}")
            return result

        logger.info(f"Cashed out at {multiplier:.2f}x for {result['payout']:.2f}")
        self._notify(
            EngineEvent.CASHED_OUT,
            {
                "round_id": self.machine.round_id,
                "multiplier": multiplier,
                "payout": result["payout"],
                "balance": result["balance"],
            },
        )
        return result

    def adjust_bet_amount(self, delta) -> Dict:
        result = self.ledger.adjust_stake(delta)
        if not result["success"]:
            logger.debug(f"Stake adjustment rejected: {result['error']}")
        return result

    # ==================== Observation ====================

    def current_multiplier(self) -> Decimal:
        state = self.machine.state
        if isinstance(state, Flying):
            return state.multiplier
        if isinstance(state, Crashed):
            return state.final_multiplier
        return START_MULTIPLIER

    def snapshot(self, history_limit: int = None) -> EngineSnapshot:
        state = self.machine.state
        multiplier = self.current_multiplier()
        countdown = state.countdown if isinstance(state, Waiting) else self.config.countdown_seconds

        return EngineSnapshot(
            round_id=self.machine.round_id,
            phase=state.phase,
            multiplier=multiplier,
            countdown=countdown,
            stake=self.ledger.stake,
            balance=self.ledger.balance,
            bet=self.ledger.bet,
            bet_value=self.ledger.display_value(multiplier),
            history=tuple(self.history.latest(history_limit)),
        )
