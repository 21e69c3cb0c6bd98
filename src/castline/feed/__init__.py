from .cadence import Cadence, CadenceAnalyzer
from .extractor import FeedExtractor
from .feed_service import FeedService
from .fetcher import NOT_MODIFIED, FeedFetcher
from .reconciler import ReconciliationEngine, ReconciliationResult

__all__ = [
    "NOT_MODIFIED",
    "Cadence",
    "CadenceAnalyzer",
    "FeedExtractor",
    "FeedFetcher",
    "FeedService",
    "ReconciliationEngine",
    "ReconciliationResult",
]
