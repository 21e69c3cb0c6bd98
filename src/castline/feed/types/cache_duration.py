"""Cache-duration tiers recommended by cadence analysis."""

from enum import Enum


class CacheDuration(Enum):
    """How long fetched feed data may be reused, in seconds."""

    THIRTY_MINUTES = 30 * 60
    ONE_HOUR = 60 * 60
    SIX_HOURS = 6 * 60 * 60
    ONE_DAY = 24 * 60 * 60
    SEVEN_DAYS = 7 * 24 * 60 * 60

    @property
    def seconds(self) -> int:
        return self.value
