"""Import of feed episodes as posts."""

from datetime import UTC, datetime
import logging

from .config import ImportSettings
from .db import PostDatabase
from .db.types import ImportedPost
from .exceptions import ImageDownloadError
from .feed.types import EpisodeRecord, FeedRecord
from .image_downloader import ImageDownloader

logger = logging.getLogger(__name__)


class EpisodeImporter:
    """Turn episodes into ``imported_post`` rows.

    Attributes:
        _posts: Post table access.
        _images: Image downloader, for posts that get a featured image.
    """

    def __init__(self, post_db: PostDatabase, image_downloader: ImageDownloader):
        self._posts = post_db
        self._images = image_downloader

    async def _featured_asset(self, item: EpisodeRecord) -> int | None:
        if item.featured_id:
            return item.featured_id
        if not item.featured_image:
            return None
        try:
            return await self._images.download(item.featured_image, item.title)
        except ImageDownloadError as e:
            logger.warning(
                "Could not attach episode image; importing without it.",
                extra={"episode_id": item.episode_id},
                exc_info=e,
            )
            return None

    async def import_episode(
        self, feed: FeedRecord, key: str, item: EpisodeRecord, settings: ImportSettings
    ) -> int:
        """Import one episode, reusing an existing post with the same title and date.

        Returns:
            The post id.
        """
        published = datetime.fromtimestamp(item.published.timestamp, UTC)
        existing = await self._posts.find_post_id(
            item.title, published, settings.post_type
        )
        if existing is not None:
            logger.debug(
                "Episode already imported.",
                extra={"feed_url": feed.furl, "episode_key": key, "post_id": existing},
            )
            return existing

        featured_asset_id = (
            await self._featured_asset(item) if settings.is_get_img else None
        )
        post_id = await self._posts.insert_post(
            ImportedPost(
                feed_key=feed.fkey,
                episode_key=key,
                episode_id=item.episode_id,
                title=item.title,
                content=item.description,
                published=published,
                status=settings.post_status,
                post_type=settings.post_type,
                media_url=item.media_url,
                media_type=item.media_type,
                featured_asset_id=featured_asset_id,
                taxonomy=settings.taxonomy,
                categories=list(item.categories.values()) if settings.taxonomy else [],
            )
        )
        logger.info(
            "Imported episode.",
            extra={"feed_url": feed.furl, "episode_key": key, "post_id": post_id},
        )
        return post_id

    async def import_episodes(
        self, feed: FeedRecord, keys: list[str], settings: ImportSettings
    ) -> dict[str, int]:
        """Import up to ``settings.batch_size`` of the given episodes.

        Keys no longer present in the feed count as done with post id 0.

        Returns:
            Post id per completed episode key.
        """
        completed: dict[str, int] = {}
        for key in keys[: settings.batch_size]:
            item = feed.items.get(key)
            if item is None:
                logger.debug(
                    "Episode no longer in feed; skipping import.",
                    extra={"feed_url": feed.furl, "episode_key": key},
                )
                completed[key] = 0
                continue
            if item.post_id:
                completed[key] = item.post_id
                continue
            completed[key] = await self.import_episode(feed, key, item, settings)
        return completed
