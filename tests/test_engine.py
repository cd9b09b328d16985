"""
Scenario tests for the crash engine facade, driven tick by tick with a
scripted random source.
"""

import unittest
from datetime import datetime, timezone
from decimal import Decimal

import orjson

from crashround.core.crash.engine import EngineEvent
from crashround.core.crash.ledger import BetStatus
from crashround.core.crash.rounds import RoundPhase
from tests.helpers import ScriptedRNG, CRASH, flight, make_engine, run_countdown

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class TestRoundFlow(unittest.TestCase):

    def setUp(self):
        self.rng = ScriptedRNG()
        self.engine = make_engine(self.rng, starting_balance=100)
        self.events = []
        self.engine.subscribe(lambda event, payload: self.events.append((event, payload)))

    def test_countdown_reaches_takeoff_at_one(self):
        countdowns = []
        for _ in range(4):
            self.assertEqual(self.engine.tick(), RoundPhase.WAITING)
            countdowns.append(self.engine.snapshot().countdown)
        self.assertEqual(countdowns, [4, 3, 2, 1])

        self.assertEqual(self.engine.tick(), RoundPhase.FLYING)
        snap = self.engine.snapshot()
        self.assertEqual(snap.multiplier, Decimal("1.00"))
        self.assertEqual(snap.round_id, 1)

    def test_cash_out_round_trip(self):
        self.assertTrue(self.engine.place_bet(10)["success"])
        self.assertEqual(self.engine.snapshot().balance, Decimal("90"))

        run_countdown(self.engine)
        self.rng.push(*flight(15))
        for _ in range(15):
            self.engine.tick()
        self.assertEqual(self.engine.current_multiplier(), Decimal("2.50"))
        self.assertEqual(self.engine.snapshot().bet_value, Decimal("25.00"))

        result = self.engine.cash_out()
        self.assertTrue(result["success"])
        self.assertEqual(result["payout"], Decimal("25.00"))
        # Net change against the starting 100 is +15
        self.assertEqual(self.engine.snapshot().balance - Decimal("100"), Decimal("15.00"))

        # Second cash out does nothing
        self.assertFalse(self.engine.cash_out()["success"])
        self.assertEqual(self.engine.snapshot().balance, Decimal("115"))

        cashed = [p for e, p in self.events if e is EngineEvent.CASHED_OUT]
        self.assertEqual(len(cashed), 1)
        self.assertEqual(cashed[0]["multiplier"], Decimal("2.50"))

    def test_uncashed_bet_is_lost_at_crash(self):
        self.engine.place_bet(10)
        run_countdown(self.engine)
        self.rng.push(*flight(3))
        for _ in range(3):
            self.engine.tick()
        before_crash = self.engine.current_multiplier()

        self.rng.push(CRASH)
        self.assertEqual(self.engine.tick(NOW), RoundPhase.CRASHED)

        snap = self.engine.snapshot()
        self.assertEqual(snap.bet.status, BetStatus.LOST)
        self.assertEqual(snap.balance, Decimal("90"))
        self.assertEqual(snap.multiplier, before_crash)
        self.assertEqual(snap.history[0].multiplier, before_crash)
        self.assertEqual(snap.history[0].id, 1)
        self.assertEqual(snap.history[0].timestamp, NOW)

        crashed = [p for e, p in self.events if e is EngineEvent.CRASHED]
        self.assertEqual(crashed[0]["lost"], Decimal("10"))
        self.assertEqual(crashed[0]["multiplier"], Decimal("1.30"))

    def test_cash_out_before_crash_survives_crash(self):
        self.engine.place_bet(10)
        run_countdown(self.engine)
        self.rng.push(*flight(5))
        for _ in range(5):
            self.engine.tick()
        self.engine.cash_out()

        self.rng.push(CRASH)
        self.engine.tick()
        snap = self.engine.snapshot()
        self.assertEqual(snap.bet.status, BetStatus.CASHED_OUT)
        self.assertEqual(snap.balance, Decimal("105"))
        crashed = [p for e, p in self.events if e is EngineEvent.CRASHED]
        self.assertIsNone(crashed[0]["lost"])

    def test_settled_bet_cleared_when_next_round_waits(self):
        self.engine.place_bet(10)
        run_countdown(self.engine)
        self.rng.push(CRASH)
        self.engine.tick()
        self.assertEqual(self.engine.snapshot().bet.status, BetStatus.LOST)

        self.assertEqual(self.engine.tick(), RoundPhase.WAITING)
        snap = self.engine.snapshot()
        self.assertEqual(snap.bet.status, BetStatus.NONE)
        self.assertEqual(snap.countdown, 5)
        self.assertEqual(snap.balance, Decimal("90"))

        # A new bet is accepted for the next round
        self.assertTrue(self.engine.place_bet(5)["success"])

    def test_bet_rejected_outside_waiting(self):
        run_countdown(self.engine)
        result = self.engine.place_bet(10)
        self.assertFalse(result["success"])
        self.assertEqual(self.engine.snapshot().balance, Decimal("100"))
        self.assertNotIn(EngineEvent.BET_PLACED, [e for e, _ in self.events])

    def test_duplicate_and_oversized_bets_are_noops(self):
        self.engine.place_bet(60)
        self.assertFalse(self.engine.place_bet(10)["success"])
        self.assertEqual(self.engine.snapshot().balance, Decimal("40"))

        engine = make_engine(ScriptedRNG(), starting_balance=5)
        self.assertFalse(engine.place_bet(6)["success"])
        self.assertEqual(engine.snapshot().balance, Decimal("5"))

    def test_invalid_bet_input(self):
        for amount in (-1, 0, float("nan"), "ten", "1e-28", "0.05"):
            self.assertFalse(self.engine.place_bet(amount)["success"])
        self.assertEqual(self.engine.snapshot().balance, Decimal("100"))
        self.assertEqual(self.events, [])

    def test_cash_out_while_waiting_is_noop(self):
        self.engine.place_bet(10)
        self.assertFalse(self.engine.cash_out()["success"])
        self.assertEqual(self.engine.snapshot().bet.status, BetStatus.PLACED)

    def test_stake_adjustment_feeds_default_bet(self):
        self.engine.adjust_bet_amount(-5)
        self.assertEqual(self.engine.snapshot().stake, Decimal("0.10"))
        self.engine.adjust_bet_amount("0.9")
        self.engine.place_bet()
        self.assertEqual(self.engine.snapshot().bet.amount, Decimal("1.00"))
        self.assertFalse(self.engine.adjust_bet_amount("nope")["success"])


class TestNotifications(unittest.TestCase):

    def test_event_sequence_for_one_round(self):
        rng = ScriptedRNG()
        engine = make_engine(rng)
        events = []
        engine.subscribe(lambda event, payload: events.append((event, payload)))

        engine.place_bet(1)
        run_countdown(engine)
        rng.push(CRASH)
        engine.tick()
        engine.tick()

        self.assertEqual(
            [e for e, _ in events],
            [
                EngineEvent.BET_PLACED,
                EngineEvent.COUNTDOWN,
                EngineEvent.COUNTDOWN,
                EngineEvent.COUNTDOWN,
                EngineEvent.ROUND_STARTED,
                EngineEvent.CRASHED,
                EngineEvent.ROUND_WAITING,
            ],
        )
        remaining = [p["remaining"] for e, p in events if e is EngineEvent.COUNTDOWN]
        self.assertEqual(remaining, [3, 2, 1])

    def test_failing_observer_does_not_stop_engine(self):
        engine = make_engine(ScriptedRNG())
        seen = []

        def broken(event, payload):
            raise RuntimeError("speaker unplugged")

        engine.subscribe(broken)
        engine.subscribe(lambda event, payload: seen.append(event))

        with self.assertLogs("crashround.engine", level="ERROR"):
            run_countdown(engine)

        self.assertEqual(engine.phase, RoundPhase.FLYING)
        self.assertIn(EngineEvent.ROUND_STARTED, seen)

    def test_unsubscribe(self):
        engine = make_engine(ScriptedRNG())
        seen = []
        unsubscribe = engine.subscribe(lambda event, payload: seen.append(event))
        unsubscribe()
        unsubscribe()
        run_countdown(engine)
        self.assertEqual(seen, [])


class TestHistoryAndSnapshot(unittest.TestCase):

    def test_history_capped_at_twenty(self):
        engine = make_engine(ScriptedRNG(default=CRASH))
        for _ in range(21):
            run_countdown(engine)
            engine.tick()  # crash at 1.00
            engine.tick()  # dwell over

        history = engine.snapshot().history
        self.assertEqual(len(history), 20)
        self.assertEqual(history[0].id, 21)
        self.assertEqual(history[-1].id, 2)
        self.assertTrue(all(e.multiplier == Decimal("1.00") for e in history))

    def test_seeded_history(self):
        engine = make_engine(ScriptedRNG(default=CRASH), seed_history=[2.5, 1.2, 7.0])
        history = engine.snapshot().history
        self.assertEqual([e.id for e in history], [3, 2, 1])
        self.assertEqual(history[0].multiplier, Decimal("2.5"))

        run_countdown(engine)
        self.assertEqual(engine.snapshot().round_id, 4)

    def test_snapshot_history_limit(self):
        engine = make_engine(ScriptedRNG(), seed_history=[1.5] * 10)
        self.assertEqual(len(engine.snapshot(history_limit=8).history), 8)

    def test_snapshot_is_a_copy(self):
        rng = ScriptedRNG()
        engine = make_engine(rng)
        engine.place_bet(2)
        run_countdown(engine)
        snap = engine.snapshot()

        rng.push(*flight(2))
        engine.tick()
        engine.tick()

        self.assertEqual(snap.multiplier, Decimal("1.00"))
        self.assertEqual(snap.bet_value, Decimal("2.00"))
        with self.assertRaises(Exception):
            snap.balance = Decimal("0")

    def test_snapshot_json(self):
        engine = make_engine(ScriptedRNG(), seed_history=[3.333])
        engine.place_bet("0.5")
        data = orjson.loads(engine.snapshot().to_json())

        self.assertEqual(data["phase"], "waiting")
        self.assertEqual(data["countdown"], 5)
        self.assertEqual(data["multiplier"], 1.0)
        self.assertEqual(data["bet"]["status"], "placed")
        self.assertEqual(data["bet"]["amount"], 0.5)
        self.assertEqual(data["balance"], 9999.5)
        self.assertEqual(data["history"][0]["multiplier"], 3.33)

    def test_default_timestamps_use_configured_timezone(self):
        engine = make_engine(ScriptedRNG(default=CRASH), timezone="America/Chicago")
        run_countdown(engine)
        engine.tick()
        stamp = engine.snapshot().history[0].timestamp
        self.assertIsNotNone(stamp.tzinfo)


if __name__ == "__main__":
    unittest.main()
