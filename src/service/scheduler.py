"""
Interval scheduling of the aggregation and detection cycles.

Jobs run on a BackgroundScheduler thread pool. Each job fires immediately,
never overlaps with itself and collapses missed runs into one.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = structlog.get_logger(__name__)


def guarded(name: str, func: Callable[[], object]) -> Callable[[], None]:
    """Wrap a job so an exception is logged and the schedule keeps running"""

    def job():
        try:
            func()
        except Exception as e:
            logger.exception("Scheduled job failed", job=name, error=str(e))

    return job


class PipelineScheduler:
    def __init__(self, scheduler: BackgroundScheduler | None = None):
        self.scheduler = scheduler or BackgroundScheduler(timezone=UTC)
        self.jobs: dict[str, float] = {}

    def add_interval_job(self, name: str, func: Callable[[], object], minutes: float) -> None:
        self.scheduler.add_job(
            guarded(name, func),
            trigger=IntervalTrigger(minutes=minutes),
            id=name,
            name=name,
            next_run_time=datetime.now(UTC),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.jobs[name] = minutes
        logger.info("Job scheduled", job=name, interval_minutes=minutes)

    def start(self) -> None:
        self.scheduler.start()
        logger.info("Scheduler started", jobs=list(self.jobs))

    def shutdown(self) -> None:
        """Stop without waiting for running jobs"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)
