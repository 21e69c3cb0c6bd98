"""Feed data types."""

from .cache_duration import CacheDuration
from .customizations import EpisodeCustomization, FeedCustomizations
from .episode_record import EpisodeRecord, PublishDate, Transcript
from .feed_record import FeedRecord, Owner, PodcastCategory

__all__ = [
    "CacheDuration",
    "EpisodeCustomization",
    "EpisodeRecord",
    "FeedCustomizations",
    "FeedRecord",
    "Owner",
    "PodcastCategory",
    "PublishDate",
    "Transcript",
]
