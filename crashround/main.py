"""
Crash round engine entry point.
Runs the live round loop on asyncio, or a Monte Carlo of crash points.
"""

import argparse
import asyncio
import signal
from typing import Dict, List, Optional

from crashround.config import settings
from crashround.core.logger import init_logging, get_logger
from crashround.core.crash.clock import MultiplierClock
from crashround.core.crash.engine import CrashEngine, EngineEvent
from crashround.core.crash.generator import CrashGenerator
from crashround.core.crash.simulation import run_simulation
from crashround.core.scheduler import EngineDriver

logger = get_logger("main")


class ConsoleObserver:
    """Logs engine notifications; stands in for the UI/sound/particle layers."""

    def __init__(self, engine: CrashEngine, max_rounds: Optional[int] = None):
        self.engine = engine
        self.max_rounds = max_rounds
        self.completed_rounds = 0
        self.done = asyncio.Event()

    def __call__(self, event: EngineEvent, payload: Dict):
        if event is EngineEvent.COUNTDOWN:
            logger.info(f"Takeoff in {payload['remaining']}...")
        elif event is EngineEvent.CASHED_OUT:
            logger.info(f"Cash out! {payload['multiplier']:.2f}x pays {payload['payout']:.2f}")
        elif event is EngineEvent.CRASHED:
            self.completed_rounds += 1
            logger.debug(f"Snapshot: {self.engine.snapshot(history_limit=8).to_json().decode('utf-8')}")
            if self.max_rounds is not None and self.completed_rounds >= self.max_rounds:
                self.done.set()


async def run_engine(max_rounds: Optional[int] = None):
    engine = CrashEngine(settings.engine)
    observer = ConsoleObserver(engine, max_rounds)
    engine.subscribe(observer)

    driver = EngineDriver(engine)
    driver.start()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, observer.done.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl-C still raises
            pass

    try:
        await observer.done.wait()
    finally:
        driver.shutdown()
        snapshot = engine.snapshot()
        logger.info(f"Stopped after {observer.completed_rounds} rounds, balance {snapshot.balance:.2f}")


def positive_int(value: str) -> int:
    """argparse type for round counts."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Crash round engine")
    parser.add_argument(
        "--crash-probability",
        type=float,
        default=None,
        help="Per-tick crash probability (overrides config)",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run live rounds")
    run_parser.add_argument("--rounds", type=positive_int, default=None, help="Stop after N rounds")

    sim_parser = subparsers.add_parser("simulate", help="Monte Carlo of crash points")
    sim_parser.add_argument("--rounds", type=positive_int, default=settings.simulation.rounds)
    sim_parser.add_argument(
        "--targets",
        type=float,
        nargs="+",
        default=settings.simulation.cash_out_targets,
        help="Cash-out multipliers to evaluate",
    )

    args = parser.parse_args(argv)

    init_logging(
        level=settings.logging.level,
        log_to_file=settings.logging.log_to_file,
        formatter=settings.logging.formatter,
        log_file_path=settings.paths.get_log_path(),
    )

    if args.crash_probability is not None:
        # Re-validate through the model so a bad value fails like a bad config file
        settings.engine = settings.engine.model_validate(
            {**settings.engine.model_dump(), "crash_probability": args.crash_probability}
        )

    if args.command == "simulate":
        cfg = settings.engine
        generator = CrashGenerator(crash_probability=cfg.crash_probability)
        clock = MultiplierClock(base=cfg.increment_base, spread=cfg.increment_spread)
        report = run_simulation(generator, clock, args.rounds, args.targets)
        print_report(report.to_dict())
        return report

    max_rounds = getattr(args, "rounds", None)
    logger.info(f"Starting crash engine (p={settings.engine.crash_probability})")
    asyncio.run(run_engine(max_rounds=max_rounds))


def print_report(report: Dict):
    print(f"Rounds simulated:   {report['rounds']}")
    print(f"Crash probability:  {report['crash_probability']}")
    print(f"Mean crash point:   {report['mean']:.2f}x")
    print(f"Median crash point: {report['median']:.2f}x")
    print(f"Highest:            {report['max']:.2f}x")
    print(f"Instant crashes:    {report['instant_crash_rate']:.2%}")
    for target in report["targets"]:
        print(
            f"  cash out @ {target['target']:>6.2f}x  "
            f"hit {target['hit_rate']:.2%}  return {target['expected_return']:.3f}"
        )


if __name__ == "__main__":
    main()
