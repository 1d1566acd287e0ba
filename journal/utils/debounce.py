"""Debounced one-shot job on an APScheduler AsyncIOScheduler.

Each ``trigger()`` (re)schedules a single DateTrigger job under a fixed id
with ``replace_existing=True``, so a burst of triggers collapses into one
run ``delay_seconds`` after the last of them.  Must be used from the thread
running the asyncio event loop.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from journal.utils.logger import logger


class DebouncedJob:
    """A cancellable, re-armable timer that runs an async callback once."""

    def __init__(
        self,
        func: Callable[[], Awaitable[None]],
        delay_seconds: float,
        *,
        job_id: str = "debounced",
    ) -> None:
        self._func = func
        self.delay_seconds = delay_seconds
        self._job_id = job_id
        self._scheduler: AsyncIOScheduler | None = None

    def _ensure_scheduler(self) -> AsyncIOScheduler:
        # Started lazily so construction does not need a running loop
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()
            self._scheduler.start()
        return self._scheduler

    def trigger(self) -> datetime:
        """Arm the timer, replacing any pending fire time. Returns the new fire time."""
        fire_time = datetime.now() + timedelta(seconds=self.delay_seconds)
        self._ensure_scheduler().add_job(
            self._func,
            DateTrigger(run_date=fire_time),
            id=self._job_id,
            name=f"Debounced: {self._job_id}",
            replace_existing=True,
            misfire_grace_time=None,
        )
        return fire_time

    def cancel(self) -> bool:
        """Drop the pending run, if any. Returns True when something was cancelled."""
        if self._scheduler is None or self._scheduler.get_job(self._job_id) is None:
            return False
        self._scheduler.remove_job(self._job_id)
        logger.debug("[Debounce] Cancelled pending %s", self._job_id)
        return True

    @property
    def pending(self) -> bool:
        """True while a run is scheduled and has not started yet."""
        return self._scheduler is not None and self._scheduler.get_job(self._job_id) is not None

    def shutdown(self) -> None:
        """Stop the scheduler and forget any pending run."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
