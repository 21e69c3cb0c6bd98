# pyright: reportPrivateUsage=false

"""Tests for FeedFetcher HTTP handling."""

from collections.abc import AsyncGenerator
import hashlib

from helpers.feeds import rss_feed, rss_item
import httpx
import pytest
import pytest_asyncio
import respx

from castline.exceptions import FetchError, NoFeedDataError, NoItemsError, XmlParseError
from castline.feed import NOT_MODIFIED, FeedFetcher

FEED_URL = "https://example.com/feed.xml"


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def fetcher(client: httpx.AsyncClient) -> FeedFetcher:
    return FeedFetcher(client, timeout=5.0)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_parses_feed_and_records_validators(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    body = rss_feed([rss_item("Ep 1", "https://cdn.example.com/1.mp3")])
    respx_mock.get(FEED_URL).mock(
        return_value=httpx.Response(
            200,
            content=body,
            headers={"ETag": '"abc"', "Last-Modified": "Mon, 01 Jan 2024 00:00:00 GMT"},
        )
    )

    record = await fetcher.fetch(FEED_URL)

    assert record is not NOT_MODIFIED
    assert record.title == "Test Show"
    assert record.total == 1
    assert record.furl == FEED_URL
    assert record.fkey == hashlib.md5(FEED_URL.encode()).hexdigest()
    assert record.etag == '"abc"'
    assert record.last_modified == "Mon, 01 Jan 2024 00:00:00 GMT"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_sends_no_cache_and_conditional_headers(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    route = respx_mock.get(FEED_URL).mock(return_value=httpx.Response(304))

    result = await fetcher.fetch(
        FEED_URL, etag='"abc"', last_modified="Mon, 01 Jan 2024 00:00:00 GMT"
    )

    assert result is NOT_MODIFIED
    request = route.calls.last.request
    assert "no-cache" in request.headers["Cache-Control"]
    assert request.headers["Pragma"] == "no-cache"
    assert request.headers["If-None-Match"] == '"abc"'
    assert request.headers["If-Modified-Since"] == "Mon, 01 Jan 2024 00:00:00 GMT"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_conditional_headers_can_be_disabled(
    respx_mock: respx.Router, client: httpx.AsyncClient
):
    fetcher = FeedFetcher(client, check_cache_headers=False)
    body = rss_feed([rss_item("Ep 1", "https://cdn.example.com/1.mp3")])
    route = respx_mock.get(FEED_URL).mock(return_value=httpx.Response(200, content=body))

    await fetcher.fetch(FEED_URL, etag='"abc"', last_modified="yesterday")

    request = route.calls.last.request
    assert "If-None-Match" not in request.headers
    assert "If-Modified-Since" not in request.headers


@pytest.mark.unit
@pytest.mark.asyncio
async def test_error_status_raises_fetch_error(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    respx_mock.get(FEED_URL).mock(return_value=httpx.Response(503))

    with pytest.raises(FetchError) as exc:
        await fetcher.fetch(FEED_URL)

    assert exc.value.status_code == 503
    assert exc.value.feed_url == FEED_URL


@pytest.mark.unit
@pytest.mark.asyncio
async def test_network_error_raises_fetch_error(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    respx_mock.get(FEED_URL).mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(FetchError):
        await fetcher.fetch(FEED_URL)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_body_raises_no_feed_data(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    respx_mock.get(FEED_URL).mock(return_value=httpx.Response(200, content=b"  \n"))

    with pytest.raises(NoFeedDataError):
        await fetcher.fetch(FEED_URL)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_malformed_body_raises_xml_parse_error(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    respx_mock.get(FEED_URL).mock(
        return_value=httpx.Response(200, content=b"<rss><channel></rss>")
    )

    with pytest.raises(XmlParseError) as exc:
        await fetcher.fetch(FEED_URL)

    assert exc.value.messages


@pytest.mark.unit
@pytest.mark.asyncio
async def test_feed_without_playable_items_raises_no_items(
    respx_mock: respx.Router, fetcher: FeedFetcher
):
    body = rss_feed([rss_item("Text only")])
    respx_mock.get(FEED_URL).mock(return_value=httpx.Response(200, content=body))

    with pytest.raises(NoItemsError):
        await fetcher.fetch(FEED_URL)
