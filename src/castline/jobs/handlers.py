"""Handlers for the background task types.

Each handler performs one bounded pass of work and reports which part of the
payload it completed, so long-running work is spread over several worker
cycles.
"""

import logging
from typing import Any

from ..config import AppSettings
from ..db import AssetDatabase, KeyValueStore
from ..episode_importer import EpisodeImporter
from ..exceptions import (
    FeedError,
    ImageDownloadError,
    ImportDisabledError,
    TaskDataMissingError,
)
from ..feed import FeedService
from ..feed.feed_service import COVER_IMAGE_KEY
from ..image_downloader import ImageDownloader, source_key_for
from ..mimetypes import is_http_url
from .queue import IMG_SAVE_OPTION, BackgroundJobQueue
from .types import TaskResult, TaskType

logger = logging.getLogger(__name__)

IMAGE_SCAN_LIMIT = 50
IMAGE_DOWNLOADS_PER_PASS = 2


class TaskHandlers:
    """The handler set registered with the job queue.

    Attributes:
        _feeds: Feed service, for stored feed data and customizations.
        _kv: Option storage, for the image saving flag.
        _assets: Asset table access.
        _images: Image downloader.
        _importer: Episode importer.
        _settings: Application settings.
    """

    def __init__(
        self,
        feed_service: FeedService,
        kv_store: KeyValueStore,
        asset_db: AssetDatabase,
        image_downloader: ImageDownloader,
        episode_importer: EpisodeImporter,
        settings: AppSettings,
    ):
        self._feeds = feed_service
        self._kv = kv_store
        self._assets = asset_db
        self._images = image_downloader
        self._importer = episode_importer
        self._settings = settings

    def register(self, queue: BackgroundJobQueue) -> None:
        queue.register_handler(TaskType.DOWNLOAD_IMAGE, self.download_images)
        queue.register_handler(TaskType.IMPORT_EPISODES, self.import_episodes)
        queue.register_handler(TaskType.UPDATE_PODCAST_DATA, self.update_podcast_data)

    async def download_images(self, identifier: str, data: Any) -> TaskResult:
        """Download a few pending images of a feed.

        ``data`` maps item keys (or ``cover_image``) to image URLs. Images
        already stored count as done without a request. An empty URL is done
        with asset id False.

        Returns:
            ``(True, {item key: asset id})`` for the completed items.

        Raises:
            TaskDataMissingError: If the routing id or payload is missing.
        """
        if await self._kv.get_option(IMG_SAVE_OPTION, "no") != "yes":
            return True, data
        if not identifier or not data:
            raise TaskDataMissingError(
                "Image task has no feed or images.", task_type=TaskType.DOWNLOAD_IMAGE
            )

        batch: list[tuple[str, str]] = list(data.items())[:IMAGE_SCAN_LIMIT]
        stored = await self._assets.get_ids_by_source_keys(
            [source_key_for(url) for _, url in batch if url]
        )

        completed: dict[str, int | bool] = {}
        pending: list[tuple[str, str]] = []
        for key, url in batch:
            if not url:
                completed[key] = False
            elif (asset_id := stored.get(source_key_for(url))) is not None:
                completed[key] = asset_id
            else:
                pending.append((key, url))

        error: ImageDownloadError | None = None
        for key, url in pending[:IMAGE_DOWNLOADS_PER_PASS]:
            try:
                completed[key] = await self._images.download(url)
            except ImageDownloadError as e:
                error = e
                break

        await self._record_image_ids(identifier, completed)
        if error is not None:
            return error, completed
        return True, completed

    async def _record_image_ids(
        self, identifier: str, completed: dict[str, int | bool]
    ) -> None:
        saved = {key: asset_id for key, asset_id in completed.items() if asset_id}
        if not saved:
            return
        custom = await self._feeds.get_customizations(identifier)
        for key, asset_id in saved.items():
            if key == COVER_IMAGE_KEY:
                custom.cover_id = int(asset_id)
            else:
                custom.item(key).featured_id = int(asset_id)
        await self._feeds.save_customizations(identifier, custom)

    async def import_episodes(self, identifier: str, data: Any) -> TaskResult:
        """Import a batch of new episodes of a feed.

        Returns:
            ``(True, [episode keys])`` for the imported or skipped episodes.

        Raises:
            TaskDataMissingError: If the payload or the stored feed is missing.
            ImportDisabledError: If auto-import is off for the feed.
        """
        if not identifier or not data:
            raise TaskDataMissingError(
                "Import task has no feed or episodes.", task_type=TaskType.IMPORT_EPISODES
            )
        feed = await self._feeds.get_stored(identifier)
        if feed is None:
            raise TaskDataMissingError(
                "No stored feed data for import task.", task_type=TaskType.IMPORT_EPISODES
            )
        feed_config = self._settings.feed_for_url(feed.furl)
        if feed_config is None or not feed_config.import_settings.is_auto:
            raise ImportDisabledError(
                "Auto-import is disabled for this feed.",
                task_type=TaskType.IMPORT_EPISODES,
            )

        keys = [str(k) for k in data]
        post_ids = await self._importer.import_episodes(
            feed, keys, feed_config.import_settings
        )

        custom = await self._feeds.get_customizations(identifier)
        for key, post_id in post_ids.items():
            if post_id:
                custom.item(key).post_id = post_id
        await self._feeds.save_customizations(identifier, custom)
        return True, [key for key in keys if key in post_ids]

    async def update_podcast_data(self, identifier: str, data: Any) -> TaskResult:
        """Refetch a feed.

        A payload that is not a feed URL, or a failed fetch, completes the
        task without data.
        """
        if not data or not isinstance(data, str) or not is_http_url(data):
            logger.debug(
                "Update task without a valid feed URL; skipping.",
                extra={"identifier": identifier},
            )
            return True, False
        try:
            record = await self._feeds.refresh(data)
        except FeedError as e:
            logger.warning(
                "Scheduled feed update failed.", extra={"feed_url": data}, exc_info=e
            )
            return True, False
        return True, record.model_dump(mode="json")
