# pyright: reportPrivateUsage=false

"""Tests for the FeedScheduler class."""

from datetime import timedelta
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from castline.config import FeedConfig
from castline.exceptions import FetchError
from castline.feed.types import FeedRecord
from castline.schedule import scheduler
from castline.schedule.scheduler import QUEUE_JOB_ID, FeedScheduler

# --- Fixtures ---


@pytest.fixture
def mock_feed_service() -> MagicMock:
    mock = MagicMock()
    mock.get_feed = AsyncMock(return_value=FeedRecord(total=3))
    return mock


@pytest.fixture
def mock_queue() -> MagicMock:
    mock = MagicMock()
    mock.dispatch = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def feed_configs() -> dict[str, FeedConfig]:
    return {
        "show": FeedConfig(url="https://example.com/show.xml"),
        "other": FeedConfig(url="https://example.com/other.xml"),
        "paused": FeedConfig(url="https://example.com/paused.xml", enabled=False),
    }


@pytest.fixture
def feed_scheduler(
    feed_configs: dict[str, FeedConfig],
    mock_feed_service: MagicMock,
    mock_queue: MagicMock,
) -> FeedScheduler:
    return FeedScheduler(
        feed_configs=feed_configs,
        feed_service=mock_feed_service,
        queue=mock_queue,
        check_interval=timedelta(minutes=30),
        queue_tick=timedelta(minutes=1),
    )


# --- Tests for FeedScheduler.__init__ ---


@pytest.mark.unit
def test_init_schedules_enabled_feeds_only(feed_scheduler: FeedScheduler):
    assert feed_scheduler.running is False
    assert sorted(feed_scheduler.get_scheduled_feed_ids()) == ["other", "show"]


@pytest.mark.unit
def test_init_schedules_queue_tick(feed_scheduler: FeedScheduler):
    assert QUEUE_JOB_ID in feed_scheduler._scheduler.get_job_ids()


@pytest.mark.unit
def test_init_without_feeds_keeps_queue_tick(
    mock_feed_service: MagicMock, mock_queue: MagicMock
):
    empty = FeedScheduler(
        feed_configs={},
        feed_service=mock_feed_service,
        queue=mock_queue,
        check_interval=timedelta(minutes=30),
        queue_tick=timedelta(minutes=1),
    )

    assert empty.get_scheduled_feed_ids() == []
    assert empty._scheduler.get_job_ids() == [QUEUE_JOB_ID]


# --- Tests for lifecycle ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_start_and_stop(feed_scheduler: FeedScheduler):
    await feed_scheduler.start()
    assert feed_scheduler.running is True

    await feed_scheduler.stop(wait_for_jobs=False)
    assert feed_scheduler.running is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_when_not_running_is_noop(feed_scheduler: FeedScheduler):
    await feed_scheduler.stop()

    assert feed_scheduler.running is False


# --- Tests for job id mapping ---


@pytest.mark.unit
@pytest.mark.parametrize(
    ("job_id", "expected_feed_id"),
    [
        ("feed_show", "show"),
        ("feed_feed_x", "feed_x"),
        (QUEUE_JOB_ID, None),
        ("unrelated", None),
    ],
)
def test_job_to_feed_id(job_id: str, expected_feed_id: str | None):
    assert FeedScheduler._job_to_feed_id(job_id) == expected_feed_id


@pytest.mark.unit
def test_feed_to_job_id():
    assert FeedScheduler._feed_to_job_id("show") == "feed_show"


# --- Tests for scheduled callbacks ---


@pytest.mark.unit
@pytest.mark.asyncio
@patch.object(scheduler, "set_context_id")
@patch.object(time, "time", return_value=1234567890)
async def test_check_feed_sets_context_and_gets_feed(
    _mock_time: MagicMock,
    mock_set_context_id: MagicMock,
    mock_feed_service: MagicMock,
    feed_configs: dict[str, FeedConfig],
):
    await FeedScheduler._check_feed_with_context(
        mock_feed_service, "show", feed_configs["show"]
    )

    mock_set_context_id.assert_called_once_with("show-1234567890")
    mock_feed_service.get_feed.assert_awaited_once_with("https://example.com/show.xml")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_check_feed_swallows_feed_errors(
    mock_feed_service: MagicMock, feed_configs: dict[str, FeedConfig]
):
    mock_feed_service.get_feed.side_effect = FetchError(
        "down", feed_url="https://example.com/show.xml"
    )

    await FeedScheduler._check_feed_with_context(
        mock_feed_service, "show", feed_configs["show"]
    )

    mock_feed_service.get_feed.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_check_feed_propagates_unexpected_errors(
    mock_feed_service: MagicMock, feed_configs: dict[str, FeedConfig]
):
    mock_feed_service.get_feed.side_effect = RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await FeedScheduler._check_feed_with_context(
            mock_feed_service, "show", feed_configs["show"]
        )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_queue_tick_dispatches(mock_queue: MagicMock):
    await FeedScheduler._dispatch_queue_with_context(mock_queue)

    mock_queue.dispatch.assert_awaited_once_with()
