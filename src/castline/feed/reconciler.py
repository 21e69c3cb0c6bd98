"""Reconciliation of freshly fetched episodes with stored ones.

Episode keys are derived from media URLs, so a publisher moving an episode to
a new host changes its key. Such moves are detected through the stable
episode identifier and the episode keeps its old key, along with the post and
image that were already created for it.
"""

from dataclasses import dataclass, field
import logging

from .types import EpisodeRecord

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """Outcome of a reconciliation pass.

    Attributes:
        items: Merged episode mapping, in feed order.
        added: Keys of genuinely new episodes.
    """

    items: dict[str, EpisodeRecord]
    added: list[str] = field(default_factory=list[str])


class ReconciliationEngine:
    """Merge a new episode mapping into a stored one.

    Attributes:
        _keep_old: Keep stored episodes that disappeared from the feed.
    """

    def __init__(self, keep_old: bool = False):
        self._keep_old = keep_old

    def reconcile(
        self,
        new_items: dict[str, EpisodeRecord],
        old_items: dict[str, EpisodeRecord] | None,
    ) -> ReconciliationResult:
        """Reconcile ``new_items`` against ``old_items``.

        Args:
            new_items: Episodes just extracted from the feed.
            old_items: Episodes currently stored, or None on first fetch.

        Returns:
            The merged mapping and the keys that are new.
        """
        if not old_items:
            return ReconciliationResult(items=dict(new_items), added=list(new_items))

        deleted = [key for key in old_items if key not in new_items]
        added = [key for key in new_items if key not in old_items]
        if not deleted or not added:
            return self._finish(dict(new_items), added, deleted, old_items)

        by_episode_id = {old_items[key].episode_id: key for key in deleted}
        renamed: dict[str, str] = {}
        for key in added:
            old_key = by_episode_id.get(new_items[key].episode_id)
            if old_key is not None and old_key not in renamed.values():
                renamed[key] = old_key

        items: dict[str, EpisodeRecord] = {}
        for key, item in new_items.items():
            old_key = renamed.get(key)
            if old_key is None:
                items[key] = item
                continue
            previous = old_items[old_key]
            items[old_key] = item.model_copy(
                update={"post_id": previous.post_id, "featured_id": previous.featured_id}
            )

        if renamed:
            logger.debug(
                "Matched moved episodes by episode id.",
                extra={"renamed": renamed},
            )

        added = [key for key in items if key not in old_items]
        deleted = [key for key in old_items if key not in items]
        return self._finish(items, added, deleted, old_items)

    def _finish(
        self,
        items: dict[str, EpisodeRecord],
        added: list[str],
        deleted: list[str],
        old_items: dict[str, EpisodeRecord],
    ) -> ReconciliationResult:
        if self._keep_old:
            for key in deleted:
                items[key] = old_items[key]
        return ReconciliationResult(items=items, added=added)
