"""
Timer driver for the crash engine.

Exactly one APScheduler job is alive at a time, named after the phase it
serves: "countdown" (every second), "flight" (every 100 ms) or
"crash_dwell" (once, after 3 s). A phase change swaps the job inside the
same callback that caused it.
"""

from datetime import datetime, timedelta
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers import SchedulerNotRunningError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from crashround.core.crash.engine import CrashEngine
from crashround.core.crash.rounds import RoundPhase
from crashround.core.logger import get_logger

logger = get_logger("scheduler")


class EngineDriver:
    JOB_IDS = {
        RoundPhase.WAITING: "countdown",
        RoundPhase.FLYING: "flight",
        RoundPhase.CRASHED: "crash_dwell",
    }

    def __init__(self, engine: CrashEngine, scheduler=None):
        self.engine = engine
        self.config = engine.config
        # Coroutine jobs run on the event loop thread, so ticks never overlap
        self.scheduler = scheduler or AsyncIOScheduler(timezone=engine.timezone)
        self.active_job_id: Optional[str] = None
        self.active_phase: Optional[RoundPhase] = None

    def start(self):
        self._switch_to(self.engine.phase)
        self.scheduler.start()
        logger.info("Engine driver started")

    def shutdown(self):
        try:
            self.scheduler.shutdown(wait=False)
            logger.info("Engine driver shutdown")
        except SchedulerNotRunningError:
            pass
        self.active_job_id = None
        self.active_phase = None

    def _trigger_for(self, phase: RoundPhase):
        if phase is RoundPhase.WAITING:
            return IntervalTrigger(seconds=self.config.countdown_interval)
        if phase is RoundPhase.FLYING:
            return IntervalTrigger(seconds=self.config.flight_interval)
        run_date = datetime.now(self.engine.timezone) + timedelta(seconds=self.config.crash_dwell)
        return DateTrigger(run_date=run_date)

    def _cancel_active(self):
        if self.active_job_id is None:
            return
        try:
            self.scheduler.remove_job(self.active_job_id)
        except JobLookupError:
            # One-shot dwell jobs are dropped by the scheduler once they fire
            pass
        self.active_job_id = None

    def _switch_to(self, phase: RoundPhase):
        """Cancel the outgoing phase's timer and start the incoming one."""
        self._cancel_active()

        job_id = self.JOB_IDS[phase]
        self.scheduler.add_job(
            self._on_tick,
            self._trigger_for(phase),
            args=[phase],
            id=job_id,
            name=f"crash {phase.value} tick",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.active_job_id = job_id
        self.active_phase = phase
        logger.debug(f"Scheduled {job_id} job")

    async def _on_tick(self, phase: RoundPhase):
        # A job bound to a phase that has already ended must not step the new one
        if phase is not self.active_phase or phase is not self.engine.phase:
            logger.debug(f"Dropped stale {phase.value} tick")
            return

        new_phase = self.engine.tick()
        if new_phase is not phase:
            self._switch_to(new_phase)
