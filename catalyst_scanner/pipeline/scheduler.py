"""Periodic execution of the scanner cycle.

The first cycle fires immediately, then every ``refresh_interval_seconds``.
Ticks that arrive while a cycle is still running are skipped and logged,
never queued.
"""

import threading
from datetime import datetime
from typing import Callable

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobEvent
from apscheduler.schedulers.background import BackgroundScheduler

from catalyst_scanner.core.logger import logger

_JOB_ID = "scanner_cycle"


class CycleRunner:
    """Runs ``cycle`` with a no-overlap guard.

    Args:
        cycle: Zero-argument callable doing one full pipeline pass.
    """

    def __init__(self, cycle: Callable[[], object]) -> None:
        self.cycle = cycle
        self._running = threading.Lock()
        self.runs = 0
        self.skipped = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def run_once(self) -> bool:
        """Execute one cycle unless one is already in progress.

        Returns:
            True if a cycle ran (successfully or not), False if the tick was skipped.
        """
        if not self._running.acquire(blocking=False):
            self.skipped += 1
            logger.warning("CycleRunner: reason=CYCLE_IN_PROGRESS — tick skipped")
            return False

        try:
            self.cycle()
            self.runs += 1
        except Exception as exc:
            self.failures += 1
            logger.error(f"CycleRunner: cycle raised: {exc}", exc_info=True)
        finally:
            self._running.release()
        return True


class ScannerScheduler:
    """APScheduler wrapper around a :class:`CycleRunner`.

    Usage:
        scheduler = ScannerScheduler(engine.run_cycle, interval_seconds=60)
        scheduler.start()
        # ... later ...
        scheduler.shutdown()
    """

    def __init__(self, cycle: Callable[[], object], interval_seconds: int = 60) -> None:
        self.runner = CycleRunner(cycle)
        self.interval_seconds = interval_seconds
        self._scheduler = BackgroundScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": max(1, interval_seconds // 2),
            }
        )
        self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)

    def start(self) -> None:
        self._scheduler.add_job(
            self.runner.run_once,
            trigger="interval",
            seconds=self.interval_seconds,
            id=_JOB_ID,
            next_run_time=datetime.now(),
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"ScannerScheduler: started, interval={self.interval_seconds}s")

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("ScannerScheduler: stopped")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def _on_max_instances(self, event: JobEvent) -> None:
        self.runner.skipped += 1
        logger.warning(f"ScannerScheduler: reason=CYCLE_IN_PROGRESS — tick for {event.job_id} skipped")
