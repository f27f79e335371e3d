"""In-process daily job scheduler.

Runs one callable every day at a fixed wall-clock time through an
APScheduler cron trigger. The worker app starts it from the FastAPI
lifespan and stops it on shutdown.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from frontdesk.infra.time import local_now
from frontdesk.observability.correlation import correlation_scope, job_correlation_id
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)


def next_run_after(now: datetime, hour: int, minute: int) -> datetime:
    """Next hour:minute at or after now, in now's timezone."""
    trigger = CronTrigger(hour=hour, minute=minute, timezone=now.tzinfo)
    return trigger.get_next_fire_time(None, now)


class DailyJobScheduler:
    """Fire job once a day at hour:minute local time (tz_name, else server time)."""

    def __init__(
        self,
        name: str,
        job: Callable[[], object],
        hour: int,
        minute: int = 0,
        tz_name: str | None = None,
    ) -> None:
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid schedule time {hour}:{minute}")
        self.name = name
        self.job = job
        self.hour = hour
        self.minute = minute
        self.tz_name = tz_name
        # timezone=None lets APScheduler resolve the server's local zone
        self.trigger = CronTrigger(
            hour=hour,
            minute=minute,
            timezone=ZoneInfo(tz_name) if tz_name else None,
        )
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            self.run_once,
            self.trigger,
            id=self.name,
            name=self.name,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "scheduler started",
            extra={
                "extra_fields": {
                    "job": self.name,
                    "at": f"{self.hour:02d}:{self.minute:02d}",
                    "tz": self.tz_name or "local",
                }
            },
        )

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        logger.info("scheduler stopped", extra={"extra_fields": {"job": self.name}})

    def next_run_time(self, now: datetime | None = None) -> datetime:
        return self.trigger.get_next_fire_time(None, now or local_now(self.tz_name))

    def run_once(self) -> None:
        """Run the job now. Errors are logged, never raised."""
        with correlation_scope(job_correlation_id(self.name)):
            try:
                self.job()
            except Exception:
                logger.exception("scheduled job failed", extra={"extra_fields": {"job": self.name}})
