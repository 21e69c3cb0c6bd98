"""Custom exceptions for castline.

Errors are grouped by the subsystem that raises them. Each carries the
identifiers needed to correlate it in logs (feed URL, task id, object id);
``logging_config.custom_record_factory`` lifts those attributes onto log
records automatically.
"""

from dataclasses import dataclass


class CastlineError(Exception):
    """Base class for application-specific errors."""


class ConfigLoadError(CastlineError):
    """Raised when a configuration file fails to load.

    Attributes:
        config_file: Path to the configuration file that failed to load.
    """

    def __init__(self, message: str, config_file: str | None = None):
        super().__init__(message)
        self.config_file = config_file


# --- Persistence ---


class DatabaseOperationError(CastlineError):
    """Raised when a database operation fails.

    Attributes:
        key: Option or transient key involved, if any.
        object_id: Stored object id involved, if any.
    """

    def __init__(
        self,
        message: str,
        key: str | None = None,
        object_id: int | None = None,
    ):
        super().__init__(message)
        self.key = key
        self.object_id = object_id


class NotFoundError(CastlineError):
    """Raised when a requested row does not exist."""


class ObjectNotFoundError(NotFoundError):
    """Raised when no stored object matches a lookup key.

    Attributes:
        lookup_key: The key that was looked up.
    """

    def __init__(self, message: str, lookup_key: str | None = None):
        super().__init__(message)
        self.lookup_key = lookup_key


# --- Feed ingestion ---


class FeedError(CastlineError):
    """Base class for errors raised while fetching or parsing a feed.

    Attributes:
        feed_url: URL of the feed being processed.
    """

    def __init__(self, message: str, feed_url: str | None = None):
        super().__init__(message)
        self.feed_url = feed_url


class FetchError(FeedError):
    """Raised when the feed request fails at the network or HTTP status level.

    Attributes:
        feed_url: URL of the feed being fetched.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(
        self,
        message: str,
        feed_url: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, feed_url=feed_url)
        self.status_code = status_code


class NoFeedDataError(FeedError):
    """Raised when the response body is empty or has no channel element."""


@dataclass(frozen=True)
class XmlMessage:
    """A single diagnostic reported by the XML parser."""

    level: str
    code: int
    message: str

    def __str__(self) -> str:
        return f"{self.level} {self.code}: {self.message}"


class XmlParseError(FeedError):
    """Raised when the feed body is not well-formed XML.

    Attributes:
        feed_url: URL of the feed being parsed.
        messages: Parser diagnostics, each with severity, code and text.
    """

    def __init__(
        self,
        message: str,
        feed_url: str | None = None,
        messages: list[XmlMessage] | None = None,
    ):
        super().__init__(message, feed_url=feed_url)
        self.messages = messages or []

    def __str__(self) -> str:
        base = super().__str__()
        if not self.messages:
            return base
        return base + " " + "; ".join(str(m) for m in self.messages)


class NoItemsError(FeedError):
    """Raised when a feed parses but yields no playable episodes."""


# --- Background jobs ---


class JobQueueError(CastlineError):
    """Base class for background job errors.

    Attributes:
        task_id: Identifier of the task involved.
        task_type: Type of the task involved.
    """

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        task_type: str | None = None,
    ):
        super().__init__(message)
        self.task_id = task_id
        self.task_type = task_type


class TaskHandlerNotFoundError(JobQueueError):
    """Raised when no handler is registered for a task type."""


class TaskDataMissingError(JobQueueError):
    """Raised when a task reaches its handler without routing id or payload."""


class ImportDisabledError(JobQueueError):
    """Raised when an import task runs for a feed with auto-import turned off."""


class InvalidNonceError(JobQueueError):
    """Raised when a worker request carries a missing or stale nonce."""


class ImageDownloadError(CastlineError):
    """Raised when an image cannot be downloaded or stored.

    Attributes:
        url: Source URL of the image.
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class EpisodeImportError(CastlineError):
    """Raised when an episode cannot be written as an imported post.

    Attributes:
        feed_url: Feed the episode belongs to.
        episode_key: Key of the episode being imported.
    """

    def __init__(
        self,
        message: str,
        feed_url: str | None = None,
        episode_key: str | None = None,
    ):
        super().__init__(message)
        self.feed_url = feed_url
        self.episode_key = episode_key
