"""Scheduling utilities for the periodic view refresh and the daily refetch."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

LOGGER = logging.getLogger(__name__)


class PrayerScheduler:
    """Wrap APScheduler so that at most one tick job and one refresh job exist."""

    def __init__(self, timezone: str) -> None:
        self._scheduler = BackgroundScheduler(timezone=timezone)
        self._tick_job_id: Optional[str] = None
        self._refresh_job_id: Optional[str] = None

    def start(self) -> None:
        if not self._scheduler.running:
            LOGGER.info("Starting prayer scheduler (timezone=%s)", self.timezone)
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            LOGGER.info("Stopping prayer scheduler")
            self._scheduler.shutdown(wait=False)

    @property
    def timezone(self) -> str:
        tzinfo = self._scheduler.timezone
        # pytz zones expose .zone, zoneinfo ones .key
        return str(getattr(tzinfo, "zone", None) or getattr(tzinfo, "key", None) or tzinfo)

    @property
    def has_tick(self) -> bool:
        return self._tick_job_id is not None

    @property
    def has_refresh(self) -> bool:
        return self._refresh_job_id is not None

    def job_count(self) -> int:
        return len(self._scheduler.get_jobs())

    def schedule_tick(self, interval_seconds: int, callback: Callable[[], None]) -> None:
        """Run *callback* every *interval_seconds*, replacing any existing tick."""
        self.cancel_tick()
        trigger = IntervalTrigger(seconds=interval_seconds, timezone=self._scheduler.timezone)
        job = self._scheduler.add_job(callback, trigger=trigger)
        LOGGER.debug("Scheduled tick job %s every %ss", job.id, interval_seconds)
        self._tick_job_id = job.id

    def cancel_tick(self) -> None:
        if self._tick_job_id:
            LOGGER.debug("Removing tick job %s", self._tick_job_id)
            self._remove(self._tick_job_id)
            self._tick_job_id = None

    def schedule_refresh(self, next_run: datetime, refresh_callback: Callable[[], None]) -> None:
        """Schedule a single refresh job, replacing any existing one."""
        self.cancel_refresh()
        trigger = DateTrigger(run_date=next_run, timezone=self._scheduler.timezone)
        job = self._scheduler.add_job(refresh_callback, trigger=trigger)
        LOGGER.debug("Scheduled refresh job %s at %s", job.id, next_run)
        self._refresh_job_id = job.id

    def cancel_refresh(self) -> None:
        if self._refresh_job_id:
            LOGGER.debug("Removing refresh job %s", self._refresh_job_id)
            self._remove(self._refresh_job_id)
            self._refresh_job_id = None

    def cancel_all(self) -> None:
        self.cancel_tick()
        self.cancel_refresh()

    def _remove(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            # one-off jobs disappear once they have run
            LOGGER.debug("Job %s already gone", job_id)
