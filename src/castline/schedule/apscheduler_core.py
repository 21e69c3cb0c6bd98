"""Typed wrapper around APScheduler for castline's periodic jobs.

Keeps APScheduler imports and its untyped API confined to this module.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
import logging

from apscheduler.events import (  # type: ignore
    EVENT_JOB_ERROR,  # type: ignore
    EVENT_JOB_MISSED,  # type: ignore
    JobExecutionEvent,  # type: ignore
)
from apscheduler.executors.asyncio import AsyncIOExecutor  # type: ignore
from apscheduler.jobstores.memory import MemoryJobStore  # type: ignore
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore

logger = logging.getLogger(__name__)


class APSchedulerCore:
    """In-memory AsyncIOScheduler running interval jobs.

    Jobs never overlap with themselves, and runs missed while the process
    was busy are merged into one.
    """

    def __init__(self):
        self._scheduler = AsyncIOScheduler(  # type: ignore
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 300,
                "replace_existing": True,
            },
            timezone="UTC",
        )

    def add_job_failed_listener(
        self, callback: Callable[[str, datetime, Exception], None]
    ) -> None:
        """Call ``callback(job_id, scheduled_run_time, exception)`` when a job raises."""

        def callback_wrapper(event: JobExecutionEvent) -> None:  # type: ignore
            callback(
                event.job_id,  # type: ignore
                event.scheduled_run_time,  # type: ignore
                event.exception,  # type: ignore
            )

        self._scheduler.add_listener(callback_wrapper, EVENT_JOB_ERROR)  # type: ignore

    def add_job_missed_listener(self, callback: Callable[[str, datetime], None]) -> None:
        """Call ``callback(job_id, scheduled_run_time)`` when a run is missed."""

        def callback_wrapper(event: JobExecutionEvent) -> None:  # type: ignore
            callback(
                event.job_id,  # type: ignore
                event.scheduled_run_time,  # type: ignore
            )

        self._scheduler.add_listener(callback_wrapper, EVENT_JOB_MISSED)  # type: ignore

    def schedule_interval_job[**P, R](
        self,
        job_id: str,
        interval: timedelta,
        callback: Callable[P, R],
        run_immediately: bool = False,
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> None:
        """Run ``callback`` every ``interval``.

        Args:
            job_id: Job identifier; an existing job with the id is replaced.
            interval: Time between runs.
            callback: Function or coroutine function to run.
            run_immediately: Also run once as soon as the scheduler starts.
            args: Positional arguments for the callback.
            kwargs: Keyword arguments for the callback.
        """
        trigger = IntervalTrigger(  # type: ignore
            seconds=int(interval.total_seconds()), timezone=UTC
        )
        job_kwargs: dict[str, datetime] = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(UTC)
        self._scheduler.add_job(  # type: ignore
            callback,
            args=args,
            kwargs=kwargs,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            **job_kwargs,
        )

    def start(self) -> None:
        self._scheduler.start()  # type: ignore

    def remove_job(self, job_id: str) -> None:
        self._scheduler.remove_job(job_id)  # type: ignore

    def get_job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]  # type: ignore

    @property
    def running(self) -> bool:
        return self._scheduler.running  # type: ignore

    def shutdown(self, wait: bool = True) -> None:
        """Stop the scheduler, optionally waiting for running jobs."""
        self._scheduler.shutdown(wait=wait)  # type: ignore
