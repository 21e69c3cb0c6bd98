"""Feed retrieval with caching, reconciliation and follow-up work.

``get_feed`` is the entry point used by the API and the scheduler. It serves
stored data while it is fresh, otherwise refetches, reconciles the new
episodes with the stored ones, persists the result and queues background
work for new episodes and missing images.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
import logging
from typing import Any

from ..config import AppSettings
from ..db import KeyValueStore
from ..exceptions import FeedError, NoFeedDataError
from ..jobs import IMG_SAVE_OPTION, BackgroundJobQueue, TaskType
from ..store import DataKind, ObjectStore
from .cadence import CadenceAnalyzer
from .fetcher import NOT_MODIFIED, FeedFetcher
from .reconciler import ReconciliationEngine
from .types import FeedCustomizations, FeedRecord

logger = logging.getLogger(__name__)

COVER_IMAGE_KEY = "cover_image"


class FeedService:
    """Orchestrate fetching and storing feeds.

    Attributes:
        _store: Object register and data storage.
        _fetcher: HTTP feed fetcher.
        _cadence: Cadence analyzer for cache durations.
        _reconciler: Episode reconciliation engine.
        _queue: Background job queue.
        _kv: Option storage, for the image saving flag.
        _settings: Application settings.
        _now: Clock.
    """

    def __init__(
        self,
        store: ObjectStore,
        fetcher: FeedFetcher,
        cadence: CadenceAnalyzer,
        reconciler: ReconciliationEngine,
        queue: BackgroundJobQueue,
        kv_store: KeyValueStore,
        settings: AppSettings,
        now: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._fetcher = fetcher
        self._cadence = cadence
        self._reconciler = reconciler
        self._queue = queue
        self._kv = kv_store
        self._settings = settings
        self._now = now or (lambda: datetime.now(UTC))

    # --- Reads ---

    async def get_customizations(self, object_key: str) -> FeedCustomizations:
        raw = await self._store.get_data(object_key, DataKind.MODIFIED_FEED_DATA)
        return FeedCustomizations.model_validate(raw or {})

    async def save_customizations(
        self, object_key: str, custom: FeedCustomizations
    ) -> bool:
        return await self._store.update_data(
            custom.model_dump(mode="json"), object_key, DataKind.MODIFIED_FEED_DATA
        )

    async def get_stored(self, object_key: str) -> FeedRecord | None:
        """Return stored feed data with customizations applied, without fetching."""
        raw = await self._store.get_data(object_key, DataKind.FEED_DATA)
        if not raw:
            return None
        record = FeedRecord.model_validate(raw)
        return record.with_customizations(await self.get_customizations(object_key))

    def _refresh_interval(self, url: str) -> timedelta:
        feed = self._settings.feed_for_url(url)
        if feed is not None and feed.refresh_interval is not None:
            return feed.refresh_interval
        return self._settings.refresh_interval

    def is_fetch_required(
        self, url: str, record: FeedRecord | None, last_checked: int | None
    ) -> bool:
        """Whether stored data is missing or older than its cache lifetime.

        The lifetime is the cadence-derived cache duration, capped by the
        refresh interval.
        """
        if record is None or not last_checked:
            return True
        lifetime = min(
            record.cache_duration, int(self._refresh_interval(url).total_seconds())
        )
        return last_checked + lifetime < self._now().timestamp()

    # --- Fetching ---

    async def get_feed(
        self, url: str, alias: str | None = None, force: bool = False
    ) -> FeedRecord:
        """Return the feed, refetching it if the stored copy is stale.

        Args:
            url: Feed URL.
            alias: Another URL the feed is known by.
            force: Refetch even if the stored data is fresh.

        Returns:
            The feed record with customizations applied.

        Raises:
            FeedError: If fetching fails and nothing is stored to fall back on.
        """
        return await self._load(url, alias, force=force, serve_stale=True)

    async def refresh(self, url: str, alias: str | None = None) -> FeedRecord:
        """Fetch the feed now.

        Raises:
            FeedError: If fetching fails, even when stale data is stored.
        """
        return await self._load(url, alias, force=True, serve_stale=False)

    async def schedule_next_update(self, url: str, priority: int = 10) -> None:
        """Queue a background refresh of ``url``."""
        await self._queue.add_task(url, TaskType.UPDATE_PODCAST_DATA, url, priority)
        await self._queue.dispatch()

    async def _load(
        self, url: str, alias: str | None, force: bool, serve_stale: bool
    ) -> FeedRecord:
        log_params: dict[str, Any] = {"feed_url": url, "alias": alias}
        object_key = url
        if await self._store.get_object_index(url) is None and alias:
            if await self._store.get_object_index(alias) is not None:
                object_key = alias

        stored = await self._store.get_many(
            object_key, [DataKind.FEED_DATA, DataKind.LAST_CHECKED]
        ) or {}
        old = (
            FeedRecord.model_validate(stored[DataKind.FEED_DATA])
            if stored.get(DataKind.FEED_DATA)
            else None
        )
        last_checked: int | None = stored.get(DataKind.LAST_CHECKED)

        if old is not None and not force:
            if not self.is_fetch_required(url, old, last_checked):
                logger.debug("Serving stored feed data.", extra=log_params)
                return old.with_customizations(
                    await self.get_customizations(object_key)
                )

        send_validators = old is not None and bool(last_checked)
        try:
            result = await self._fetcher.fetch(
                url,
                etag=old.etag if old is not None and send_validators else None,
                last_modified=(
                    old.last_modified if old is not None and send_validators else None
                ),
            )
        except FeedError as e:
            if old is None or not serve_stale:
                raise
            logger.warning(
                "Feed fetch failed; serving stored data.", extra=log_params, exc_info=e
            )
            return old.with_customizations(await self.get_customizations(object_key))

        new_keys: list[str] = []
        if result is NOT_MODIFIED:
            if old is None:
                raise NoFeedDataError(
                    "Server reported no changes but no feed data is stored.", feed_url=url
                )
            record = old
        else:
            # Cadence reflects the fetched episodes only, not retained ones.
            self._cadence.apply(result)
            reconciled = self._reconciler.reconcile(
                result.items, old.items if old else None
            )
            result.items = reconciled.items
            result.refresh_derived()
            new_keys = reconciled.added
            record = result

            if old is None:
                await self._store.maybe_add_new_object(object_key, record.title)
            # Keyed by url so an alias-resolved object learns the url too.
            await self._store.update_data(
                record.model_dump(mode="json"), url, DataKind.FEED_DATA, alias
            )
            logger.info(
                "Stored feed data.",
                extra={**log_params, "total": record.total, "new_episodes": len(new_keys)},
            )

        await self._store.update_data(
            int(self._now().timestamp()), object_key, DataKind.LAST_CHECKED
        )

        customized = record.with_customizations(await self.get_customizations(object_key))
        await self._queue_follow_up_work(url, customized, new_keys)
        return customized

    async def _queue_follow_up_work(
        self, url: str, record: FeedRecord, new_keys: list[str]
    ) -> None:
        queued = False
        feed = self._settings.feed_for_url(url)
        if new_keys and feed is not None and feed.import_settings.is_auto:
            await self._queue.add_task(url, TaskType.IMPORT_EPISODES, new_keys)
            queued = True

        if await self._kv.get_option(IMG_SAVE_OPTION, "no") == "yes":
            images = {
                key: item.featured_image
                for key, item in record.items.items()
                if item.featured_image and not item.featured_id
            }
            if record.image and not record.cover_id:
                images[COVER_IMAGE_KEY] = record.image
            if images:
                await self._queue.add_task(url, TaskType.DOWNLOAD_IMAGE, images)
                queued = True

        if queued:
            await self._queue.dispatch()
