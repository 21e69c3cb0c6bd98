# pyright: reportPrivateUsage=false

"""Tests for the background task handlers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from castline.config import AppSettings, FeedConfig, ImportSettings
from castline.db import AssetDatabase, KeyValueStore
from castline.db.sqlalchemy_core import SqlalchemyCore
from castline.db.types import Asset
from castline.episode_importer import EpisodeImporter
from castline.exceptions import (
    FetchError,
    ImageDownloadError,
    ImportDisabledError,
    TaskDataMissingError,
)
from castline.feed import FeedService
from castline.feed.feed_service import COVER_IMAGE_KEY
from castline.feed.types import EpisodeRecord, FeedCustomizations, FeedRecord
from castline.image_downloader import ImageDownloader, source_key_for
from castline.jobs import IMG_SAVE_OPTION, BackgroundJobQueue, NonceSigner, TaskType
from castline.jobs.handlers import TaskHandlers

FEED_URL = "https://example.com/feed.xml"
FEED_ID = "feed-md5"


@pytest.fixture
def customizations() -> FeedCustomizations:
    return FeedCustomizations()


@pytest.fixture
def feed_service(customizations: FeedCustomizations) -> MagicMock:
    mock = MagicMock(spec=FeedService)
    mock.get_customizations = AsyncMock(return_value=customizations)
    mock.save_customizations = AsyncMock(return_value=True)
    mock.get_stored = AsyncMock(return_value=None)
    mock.refresh = AsyncMock()
    return mock


@pytest.fixture
def asset_db(db_core: SqlalchemyCore) -> AssetDatabase:
    return AssetDatabase(db_core)


@pytest.fixture
def image_downloader() -> MagicMock:
    mock = MagicMock(spec=ImageDownloader)
    mock.download = AsyncMock()
    return mock


@pytest.fixture
def importer() -> MagicMock:
    mock = MagicMock(spec=EpisodeImporter)
    mock.import_episodes = AsyncMock(return_value={})
    return mock


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings.model_construct(
        feeds={
            "show": FeedConfig(
                url=FEED_URL, import_settings=ImportSettings(is_auto=True, batch_size=3)
            )
        }
    )


@pytest.fixture
def handlers(
    feed_service: MagicMock,
    kv_store: KeyValueStore,
    asset_db: AssetDatabase,
    image_downloader: MagicMock,
    importer: MagicMock,
    settings: AppSettings,
) -> TaskHandlers:
    return TaskHandlers(
        feed_service=feed_service,
        kv_store=kv_store,
        asset_db=asset_db,
        image_downloader=image_downloader,
        episode_importer=importer,
        settings=settings,
    )


def _feed(*names: str) -> FeedRecord:
    return FeedRecord(
        furl=FEED_URL,
        items={
            name: EpisodeRecord(media_url=f"https://cdn.example.com/{name}.mp3")
            for name in names
        },
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_register_covers_every_task_type(
    handlers: TaskHandlers, kv_store: KeyValueStore
):
    queue = BackgroundJobQueue(kv_store, NonceSigner("secret"))

    handlers.register(queue)

    assert set(queue._handlers) == set(TaskType)


# --- download_image ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_images_skipped_when_saving_disabled(
    handlers: TaskHandlers, image_downloader: MagicMock
):
    data = {"a": "https://cdn.example.com/a.jpg"}

    assert await handlers.download_images(FEED_ID, data) == (True, data)
    image_downloader.download.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_images_without_payload_raise(
    handlers: TaskHandlers, kv_store: KeyValueStore
):
    await kv_store.set_option(IMG_SAVE_OPTION, "yes")

    with pytest.raises(TaskDataMissingError):
        await handlers.download_images(FEED_ID, {})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_images_downloaded_two_per_pass(
    handlers: TaskHandlers,
    kv_store: KeyValueStore,
    image_downloader: MagicMock,
    customizations: FeedCustomizations,
    feed_service: MagicMock,
):
    await kv_store.set_option(IMG_SAVE_OPTION, "yes")
    image_downloader.download.side_effect = [11, 12]
    data = {
        COVER_IMAGE_KEY: "https://cdn.example.com/cover.jpg",
        "a": "https://cdn.example.com/a.jpg",
        "b": "https://cdn.example.com/b.jpg",
    }

    status, completed = await handlers.download_images(FEED_ID, data)

    assert status is True
    assert completed == {COVER_IMAGE_KEY: 11, "a": 12}
    assert customizations.cover_id == 11
    assert customizations.items["a"].featured_id == 12
    feed_service.save_customizations.assert_awaited_once_with(FEED_ID, customizations)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stored_and_empty_images_complete_without_download(
    handlers: TaskHandlers,
    kv_store: KeyValueStore,
    asset_db: AssetDatabase,
    image_downloader: MagicMock,
):
    await kv_store.set_option(IMG_SAVE_OPTION, "yes")
    known = "https://cdn.example.com/known.jpg"
    asset_id = await asset_db.add_asset(
        Asset(source_key=source_key_for(known), url=known, path="known.jpg")
    )

    status, completed = await handlers.download_images(FEED_ID, {"a": known, "b": ""})

    assert status is True
    assert completed == {"a": asset_id, "b": False}
    image_downloader.download.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_image_failure_reports_error_with_progress(
    handlers: TaskHandlers,
    kv_store: KeyValueStore,
    image_downloader: MagicMock,
    customizations: FeedCustomizations,
):
    await kv_store.set_option(IMG_SAVE_OPTION, "yes")
    error = ImageDownloadError("nope", url="https://cdn.example.com/b.jpg")
    image_downloader.download.side_effect = [5, error]

    status, completed = await handlers.download_images(
        FEED_ID,
        {"a": "https://cdn.example.com/a.jpg", "b": "https://cdn.example.com/b.jpg"},
    )

    assert status is error
    assert completed == {"a": 5}
    assert customizations.items["a"].featured_id == 5


# --- import_episodes ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_import_requires_stored_feed(handlers: TaskHandlers):
    with pytest.raises(TaskDataMissingError):
        await handlers.import_episodes(FEED_ID, ["a"])
    with pytest.raises(TaskDataMissingError):
        await handlers.import_episodes(FEED_ID, [])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_import_refused_when_auto_import_off(
    handlers: TaskHandlers, feed_service: MagicMock, settings: AppSettings
):
    settings.feeds["show"].import_settings.is_auto = False
    feed_service.get_stored.return_value = _feed("a")

    with pytest.raises(ImportDisabledError):
        await handlers.import_episodes(FEED_ID, ["a"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_import_records_post_ids(
    handlers: TaskHandlers,
    feed_service: MagicMock,
    importer: MagicMock,
    settings: AppSettings,
    customizations: FeedCustomizations,
):
    feed = _feed("a", "b", "c")
    feed_service.get_stored.return_value = feed
    importer.import_episodes.return_value = {"a": 101, "gone": 0}

    status, completed = await handlers.import_episodes(FEED_ID, ["a", "gone", "b"])

    assert status is True
    assert completed == ["a", "gone"]
    importer.import_episodes.assert_awaited_once_with(
        feed, ["a", "gone", "b"], settings.feeds["show"].import_settings
    )
    assert customizations.items["a"].post_id == 101
    assert "gone" not in customizations.items


# --- update_podcast_data ---


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("data", [None, "", "not a url", ["x"]])
async def test_update_without_url_completes(
    handlers: TaskHandlers, feed_service: MagicMock, data: object
):
    assert await handlers.update_podcast_data(FEED_ID, data) == (True, False)
    feed_service.refresh.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_failure_completes_without_data(
    handlers: TaskHandlers, feed_service: MagicMock
):
    feed_service.refresh.side_effect = FetchError("down", feed_url=FEED_URL)

    assert await handlers.update_podcast_data(FEED_ID, FEED_URL) == (True, False)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_refreshes_feed(handlers: TaskHandlers, feed_service: MagicMock):
    feed = _feed("a")
    feed_service.refresh.return_value = feed

    status, data = await handlers.update_podcast_data(FEED_ID, FEED_URL)

    assert status is True
    assert data == feed.model_dump(mode="json")
    feed_service.refresh.assert_awaited_once_with(FEED_URL)
