"""Crash round engine components."""

from .clock import MultiplierClock
from .generator import CrashGenerator
from .rounds import RoundPhase, RoundStateMachine, Waiting, Flying, Crashed, Transition
from .ledger import Bet, BetLedger, BetStatus
from .history import HistoryEntry, HistoryView, RoundHistory
from .engine import CrashEngine, EngineEvent, EngineSnapshot

__all__ = [
    "MultiplierClock",
    "CrashGenerator",
    "RoundPhase",
    "RoundStateMachine",
    "Waiting",
    "Flying",
    "Crashed",
    "Transition",
    "Bet",
    "BetLedger",
    "BetStatus",
    "HistoryEntry",
    "HistoryView",
    "RoundHistory",
    "CrashEngine",
    "EngineEvent",
    "EngineSnapshot",
]
