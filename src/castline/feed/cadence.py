"""Release-cadence analysis and cache-duration recommendation."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
import logging
import math

from .types import CacheDuration, EpisodeRecord, FeedRecord

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
RECENT_WINDOW_MONTHS = 6
ACTIVE_WITHIN_DAYS = 90
OUTLIER_SIGMAS = 2


@dataclass(frozen=True)
class Cadence:
    """Result of analyzing a feed's release history.

    Attributes:
        is_active: Whether the last release is within 90 days.
        release_cycle: Average days between recent releases, 0 if unknown.
        last_released: Timestamp of the most recent release, 0 if none.
        cache_duration: Recommended time to reuse fetched data.
    """

    is_active: bool
    release_cycle: float
    last_released: int
    cache_duration: CacheDuration


def _months_ago(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last day of the target month.
    for day in range(now.day, 0, -1):
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError("unreachable month arithmetic")


class CadenceAnalyzer:
    """Estimate how often a feed publishes and how long to cache it.

    Attributes:
        _now: Clock used for recency checks.
    """

    def __init__(self, now: Callable[[], datetime] | None = None):
        self._now = now or (lambda: datetime.now(UTC))

    @staticmethod
    def release_cycle(timestamps: list[int]) -> float:
        """Average gap in days between sorted timestamps, ignoring outliers.

        With two or more gaps, gaps farther than two standard deviations from
        the mean are discarded and the rest re-averaged.
        """
        gaps = [
            (later - earlier) / SECONDS_PER_DAY
            for earlier, later in zip(timestamps, timestamps[1:], strict=False)
        ]
        if not gaps:
            return 0
        mean = sum(gaps) / len(gaps)
        if len(gaps) < 2:
            return mean
        sigma = math.sqrt(sum((g - mean) ** 2 for g in gaps) / len(gaps))
        kept = [g for g in gaps if abs(g - mean) <= OUTLIER_SIGMAS * sigma]
        if not kept:
            return 0
        return sum(kept) / len(kept)

    @staticmethod
    def recommend(
        is_active: bool, days_since_last: float, release_cycle: float
    ) -> CacheDuration:
        """Pick a cache duration; later thresholds override earlier ones."""
        if not is_active:
            return CacheDuration.SEVEN_DAYS
        duration = CacheDuration.ONE_DAY
        if days_since_last >= release_cycle - 7:
            duration = CacheDuration.SIX_HOURS
        if days_since_last >= release_cycle - 2:
            duration = CacheDuration.ONE_HOUR
        if days_since_last >= release_cycle - 1:
            duration = CacheDuration.THIRTY_MINUTES
        return duration

    def analyze(self, episodes: Iterable[EpisodeRecord]) -> Cadence:
        """Analyze a set of episodes.

        Args:
            episodes: Episodes in any order.

        Returns:
            The cadence summary. A feed without episodes is treated as
            released at the epoch, which makes it inactive.
        """
        now = self._now()
        timestamps = sorted(ep.published.timestamp for ep in episodes)
        cutoff = _months_ago(now, RECENT_WINDOW_MONTHS).timestamp()
        recent = [ts for ts in timestamps if ts >= cutoff]

        release_cycle = self.release_cycle(recent)
        last_released = timestamps[-1] if timestamps else 0
        days_since_last = (now.timestamp() - last_released) / SECONDS_PER_DAY
        is_active = days_since_last <= ACTIVE_WITHIN_DAYS

        cadence = Cadence(
            is_active=is_active,
            release_cycle=release_cycle,
            last_released=last_released,
            cache_duration=self.recommend(is_active, days_since_last, release_cycle),
        )
        logger.debug(
            "Analyzed release cadence.",
            extra={
                "is_active": cadence.is_active,
                "release_cycle": round(cadence.release_cycle, 2),
                "days_since_last": round(days_since_last, 2),
                "cache_duration": cadence.cache_duration.name,
            },
        )
        return cadence

    def apply(self, record: FeedRecord) -> None:
        """Write the cadence of ``record``'s episodes onto the record."""
        cadence = self.analyze(record.items.values())
        record.is_active = cadence.is_active
        record.release_cycle = cadence.release_cycle
        record.last_released = cadence.last_released
        record.cache_duration = cadence.cache_duration.seconds
