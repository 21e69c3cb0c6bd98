"""Periodic feed checks and queue dispatch ticks."""

from datetime import datetime, timedelta
import logging
import time

from ..config import FeedConfig
from ..exceptions import FeedError
from ..feed import FeedService
from ..jobs import BackgroundJobQueue
from ..logging_config import set_context_id
from .apscheduler_core import APSchedulerCore

logger = logging.getLogger(__name__)

FEED_JOB_PREFIX = "feed_"
QUEUE_JOB_ID = "queue_dispatch"


class FeedScheduler:
    """Schedule a refresh check per enabled feed plus a queue dispatch tick.

    A feed check calls ``get_feed``, which only refetches once the stored
    data has outlived its cache duration, so the check interval can be short.

    Attributes:
        _scheduler: APSchedulerCore instance.
    """

    def __init__(
        self,
        feed_configs: dict[str, FeedConfig],
        feed_service: FeedService,
        queue: BackgroundJobQueue,
        check_interval: timedelta,
        queue_tick: timedelta,
    ):
        self._scheduler = APSchedulerCore()

        for feed_id, feed_config in feed_configs.items():
            if not feed_config.enabled:
                logger.debug("Feed disabled; not scheduling.", extra={"feed_id": feed_id})
                continue
            self._scheduler.schedule_interval_job(
                FeedScheduler._feed_to_job_id(feed_id),
                check_interval,
                FeedScheduler._check_feed_with_context,
                True,
                feed_service=feed_service,
                feed_id=feed_id,
                feed_config=feed_config,
            )

        self._scheduler.schedule_interval_job(
            QUEUE_JOB_ID,
            queue_tick,
            FeedScheduler._dispatch_queue_with_context,
            False,
            queue=queue,
        )

        self._scheduler.add_job_failed_listener(self._job_failed_callback)
        self._scheduler.add_job_missed_listener(self._job_missed_callback)

        logger.debug(
            "FeedScheduler initialized.",
            extra={"scheduled_feeds": self.get_scheduled_feed_ids()},
        )

    async def start(self) -> None:
        self._scheduler.start()
        logger.info("Feed scheduler started.")

    async def stop(self, wait_for_jobs: bool = True) -> None:
        """Stop the scheduler.

        Args:
            wait_for_jobs: Whether to wait for running jobs to complete.
        """
        if not self._scheduler.running:
            logger.debug("Scheduler is not running, nothing to stop.")
            return
        self._scheduler.shutdown(wait=wait_for_jobs)
        logger.info("Feed scheduler stopped.", extra={"wait_for_jobs": wait_for_jobs})

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def get_scheduled_feed_ids(self) -> list[str]:
        """Ids of the feeds that have a scheduled check."""
        return [
            feed_id
            for job_id in self._scheduler.get_job_ids()
            if (feed_id := self._job_to_feed_id(job_id)) is not None
        ]

    @staticmethod
    def _feed_to_job_id(feed_id: str) -> str:
        return f"{FEED_JOB_PREFIX}{feed_id}"

    @staticmethod
    def _job_to_feed_id(job_id: str) -> str | None:
        if job_id.startswith(FEED_JOB_PREFIX):
            return job_id.removeprefix(FEED_JOB_PREFIX)
        return None

    @staticmethod
    async def _check_feed_with_context(
        feed_service: FeedService, feed_id: str, feed_config: FeedConfig
    ) -> None:
        set_context_id(f"{feed_id}-{int(time.time())}")
        log_params = {"feed_id": feed_id, "feed_url": feed_config.url}
        logger.debug("Running scheduled feed check.", extra=log_params)
        try:
            record = await feed_service.get_feed(feed_config.url)
        except FeedError as e:
            logger.error("Scheduled feed check failed.", extra=log_params, exc_info=e)
            return
        logger.debug(
            "Scheduled feed check finished.",
            extra={**log_params, "total": record.total},
        )

    @staticmethod
    async def _dispatch_queue_with_context(queue: BackgroundJobQueue) -> None:
        set_context_id(f"queue-{int(time.time())}")
        if await queue.dispatch():
            logger.debug("Queue worker dispatched by scheduled tick.")

    @staticmethod
    def _job_failed_callback(
        job_id: str, scheduled_run_time: datetime, exception: Exception
    ) -> None:
        logger.error(
            "Scheduled job failed with error.",
            extra={
                "job_id": job_id,
                "feed_id": FeedScheduler._job_to_feed_id(job_id),
                "scheduled_run_time": scheduled_run_time.isoformat(),
                "exception_type": type(exception).__name__,
            },
            exc_info=exception,
        )

    @staticmethod
    def _job_missed_callback(job_id: str, scheduled_run_time: datetime) -> None:
        logger.warning(
            "Scheduled job missed execution window.",
            extra={
                "job_id": job_id,
                "feed_id": FeedScheduler._job_to_feed_id(job_id),
                "scheduled_run_time": scheduled_run_time.isoformat(),
            },
        )
