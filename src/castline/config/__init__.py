from .config import AppSettings
from .feed_config import FeedConfig, ImportSettings

__all__ = ["AppSettings", "FeedConfig", "ImportSettings"]
