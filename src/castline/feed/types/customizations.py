"""Per-feed customizations recorded by background work."""

from pydantic import BaseModel, Field


class EpisodeCustomization(BaseModel):
    """Values recorded for one episode after it was processed.

    Attributes:
        featured_id: Asset id of the downloaded featured image.
        post_id: Id of the post the episode was imported as.
    """

    featured_id: int = 0
    post_id: int = 0


class FeedCustomizations(BaseModel):
    """Overrides layered on top of fetched feed data.

    Stored separately from the feed data so refetching never loses them.

    Attributes:
        cover_id: Asset id of the downloaded cover image.
        items: Episode overrides keyed by episode key.
    """

    cover_id: int = 0
    items: dict[str, EpisodeCustomization] = Field(
        default_factory=dict[str, EpisodeCustomization]
    )

    def item(self, key: str) -> EpisodeCustomization:
        """Return the override for ``key``, creating an empty one if needed."""
        return self.items.setdefault(key, EpisodeCustomization())
