"""Conditional HTTP retrieval of podcast feeds."""

from enum import Enum
import hashlib
import logging
from typing import Final, Literal

import httpx

from ..exceptions import FetchError, NoFeedDataError, NoItemsError
from .extractor import FeedExtractor
from .types import FeedRecord
from .xml_parser import parse_feed_xml

logger = logging.getLogger(__name__)


class _NotModified(Enum):
    NOT_MODIFIED = "not_modified"

    def __repr__(self) -> str:
        return "NOT_MODIFIED"


NOT_MODIFIED: Final = _NotModified.NOT_MODIFIED
"""Returned by :meth:`FeedFetcher.fetch` when the server answers 304."""

type FetchResult = FeedRecord | Literal[_NotModified.NOT_MODIFIED]

_NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
}


class FeedFetcher:
    """Fetch a feed over HTTP and extract its records.

    Attributes:
        _client: Shared HTTP client.
        _timeout: Request timeout in seconds.
        _check_cache_headers: Whether conditional request headers are sent.
        _extractor: Record extractor.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 10.0,
        check_cache_headers: bool = True,
        extractor: FeedExtractor | None = None,
    ):
        self._client = client
        self._timeout = timeout
        self._check_cache_headers = check_cache_headers
        self._extractor = extractor or FeedExtractor()

    def _headers(self, etag: str | None, last_modified: str | None) -> dict[str, str]:
        headers = dict(_NO_CACHE_HEADERS)
        if self._check_cache_headers:
            if etag:
                headers["If-None-Match"] = etag
            if last_modified:
                headers["If-Modified-Since"] = last_modified
        return headers

    async def fetch(
        self,
        url: str,
        etag: str | None = None,
        last_modified: str | None = None,
    ) -> FetchResult:
        """Fetch and parse a feed.

        Args:
            url: Feed URL.
            etag: ETag from the previous fetch, if any.
            last_modified: Last-Modified from the previous fetch, if any.

        Returns:
            The extracted feed record, or ``NOT_MODIFIED`` on a 304 response.

        Raises:
            FetchError: If the request fails or returns an error status.
            NoFeedDataError: If the body is empty or has no channel.
            XmlParseError: If the body is not well-formed XML.
            NoItemsError: If the feed has no playable episodes.
        """
        log_params = {"feed_url": url}
        logger.debug("Fetching feed.", extra=log_params)
        try:
            response = await self._client.get(
                url,
                headers=self._headers(etag, last_modified),
                timeout=self._timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise FetchError("HTTP request for feed failed.", feed_url=url) from e

        if response.status_code == httpx.codes.NOT_MODIFIED:
            logger.debug("Feed not modified since last fetch.", extra=log_params)
            return NOT_MODIFIED

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                "Feed request returned an error status.",
                feed_url=url,
                status_code=response.status_code,
            ) from e

        body = response.content
        if not body.strip():
            raise NoFeedDataError("Feed response body is empty.", feed_url=url)

        root = parse_feed_xml(body, feed_url=url)
        record = self._extractor.extract(root)
        if record is None:
            raise NoFeedDataError("Feed has no channel element.", feed_url=url)
        if not record.items:
            raise NoItemsError("Feed has no playable episodes.", feed_url=url)

        record.furl = url
        record.fkey = hashlib.md5(url.encode("utf-8")).hexdigest()
        record.etag = response.headers.get("etag", "").strip()
        record.last_modified = response.headers.get("last-modified", "").strip()

        logger.debug(
            "Fetched feed.",
            extra={**log_params, "total": record.total, "etag": record.etag},
        )
        return record
