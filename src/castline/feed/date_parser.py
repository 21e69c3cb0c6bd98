"""Parsing of the date formats found in podcast feeds.

RSS uses RFC 822 dates (``Tue, 10 Jun 2025 08:00:00 GMT``), Atom uses
RFC 3339. Feeds in the wild also mix in two-digit years, missing weekdays,
named zones and bare ISO dates; the fallbacks below cover the common cases.
"""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d %b %Y %H:%M:%S %z",
    "%d %B %Y %H:%M:%S %z",
    "%a, %d %B %Y %H:%M:%S %z",
    "%B %d, %Y",
)


def parse_feed_datetime(value: str) -> datetime | None:
    """Parse a feed date string into an aware datetime.

    Dates without zone information are taken as UTC.

    Args:
        value: Raw date text from the feed.

    Returns:
        The parsed datetime, or None if no known format matches.
    """
    text = value.strip()
    if not text:
        return None

    parsed: datetime | None = None
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = None

    if parsed is None:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_feed_date(value: str) -> tuple[int, int]:
    """Convert a feed date string into ``(unix timestamp, utc offset seconds)``.

    Unparseable or empty dates yield ``(0, 0)``.
    """
    parsed = parse_feed_datetime(value)
    if parsed is None:
        return 0, 0
    offset = parsed.utcoffset()
    return int(parsed.timestamp()), int(offset.total_seconds()) if offset else 0
