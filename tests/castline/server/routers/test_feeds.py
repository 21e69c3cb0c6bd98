"""Tests for the feed router."""

from unittest.mock import Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest

from castline.exceptions import FetchError
from castline.feed import FeedService
from castline.feed.types import EpisodeRecord, FeedRecord
from castline.server.routers.feeds import router
from castline.store import ObjectIndexEntry, ObjectStore

FEEDS_PREFIX = "/api/feeds"
FEED_URL = "https://example.com/feed.xml"
FEED_KEY = "0f3c2b1a"


@pytest.fixture
def mock_feed_service() -> Mock:
    """Create a mock FeedService for testing."""
    return Mock(spec=FeedService)


@pytest.fixture
def mock_object_store() -> Mock:
    """Create a mock ObjectStore for testing."""
    return Mock(spec=ObjectStore)


@pytest.fixture
def client(mock_feed_service: Mock, mock_object_store: Mock) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.state.feed_service = mock_feed_service
    app.state.object_store = mock_object_store
    return TestClient(app)


@pytest.fixture
def index() -> ObjectIndexEntry:
    return ObjectIndexEntry(
        unique_id="uid",
        title="Test Show",
        feed_url=[FEED_URL],
        object_keys=[FEED_KEY],
        object_id=1,
    )


@pytest.fixture
def record() -> FeedRecord:
    return FeedRecord(
        title="Test Show",
        furl=FEED_URL,
        items={"ep1": EpisodeRecord(media_url="https://cdn.example.com/ep1.mp3")},
        total=1,
    )


# --- Listing and adding ---


@pytest.mark.unit
def test_list_feeds(
    client: TestClient, mock_object_store: Mock, index: ObjectIndexEntry
):
    mock_object_store.list_objects.return_value = {index.unique_id: index}

    response = client.get(FEEDS_PREFIX)

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["feed_url"] == [FEED_URL]
    assert data[0]["object_id"] == 1


@pytest.mark.unit
def test_add_feed_fetches_it(
    client: TestClient, mock_feed_service: Mock, record: FeedRecord
):
    mock_feed_service.get_feed.return_value = record

    response = client.post(
        FEEDS_PREFIX, json={"url": FEED_URL, "alias": "https://old.example.com/rss"}
    )

    assert response.status_code == 200
    assert response.json()["title"] == "Test Show"
    assert response.json()["items"]["ep1"]["media_url"] == (
        "https://cdn.example.com/ep1.mp3"
    )
    mock_feed_service.get_feed.assert_awaited_once_with(
        FEED_URL, alias="https://old.example.com/rss"
    )


@pytest.mark.unit
def test_add_feed_rejects_non_http_url(client: TestClient, mock_feed_service: Mock):
    response = client.post(FEEDS_PREFIX, json={"url": "ftp://example.com/feed"})

    assert response.status_code == 400
    mock_feed_service.get_feed.assert_not_called()


@pytest.mark.unit
def test_add_feed_fetch_failure(client: TestClient, mock_feed_service: Mock):
    mock_feed_service.get_feed.side_effect = FetchError("down", feed_url=FEED_URL)

    response = client.post(FEEDS_PREFIX, json={"url": FEED_URL})

    assert response.status_code == 502


# --- Single feed ---


@pytest.mark.unit
def test_get_feed_by_key(
    client: TestClient,
    mock_object_store: Mock,
    mock_feed_service: Mock,
    index: ObjectIndexEntry,
    record: FeedRecord,
):
    mock_object_store.get_object_index.return_value = index
    mock_feed_service.get_feed.return_value = record

    response = client.get(f"{FEEDS_PREFIX}/{FEED_KEY}")

    assert response.status_code == 200
    assert response.json()["furl"] == FEED_URL
    mock_object_store.get_object_index.assert_awaited_once_with(FEED_KEY)
    mock_feed_service.get_feed.assert_awaited_once_with(FEED_URL)


@pytest.mark.unit
def test_get_unknown_feed(client: TestClient, mock_object_store: Mock):
    mock_object_store.get_object_index.return_value = None

    response = client.get(f"{FEEDS_PREFIX}/missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "Feed not found"


@pytest.mark.unit
def test_refresh_feed_failure(
    client: TestClient,
    mock_object_store: Mock,
    mock_feed_service: Mock,
    index: ObjectIndexEntry,
):
    mock_object_store.get_object_index.return_value = index
    mock_feed_service.refresh.side_effect = FetchError(
        "down", feed_url=FEED_URL, status_code=500
    )

    response = client.post(f"{FEEDS_PREFIX}/{FEED_KEY}/refresh")

    assert response.status_code == 502
    mock_feed_service.refresh.assert_awaited_once_with(FEED_URL)


@pytest.mark.unit
def test_schedule_feed_update(
    client: TestClient,
    mock_object_store: Mock,
    mock_feed_service: Mock,
    index: ObjectIndexEntry,
):
    mock_object_store.get_object_index.return_value = index

    response = client.post(f"{FEEDS_PREFIX}/{FEED_KEY}/schedule")

    assert response.status_code == 202
    assert response.json() == {"key": FEED_KEY, "message": "Feed update queued"}
    mock_feed_service.schedule_next_update.assert_awaited_once_with(FEED_URL)


@pytest.mark.unit
def test_hide_feed(client: TestClient, mock_object_store: Mock):
    mock_object_store.hide_data.return_value = True

    response = client.post(f"{FEEDS_PREFIX}/{FEED_KEY}/hide")

    assert response.status_code == 200
    assert response.json()["message"] == "Feed hidden"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("deleted", "expected_status"),
    [(True, 204), (False, 404)],
)
def test_delete_feed(
    client: TestClient, mock_object_store: Mock, deleted: bool, expected_status: int
):
    mock_object_store.delete_data.return_value = deleted

    response = client.delete(f"{FEEDS_PREFIX}/{FEED_KEY}")

    assert response.status_code == expected_status
    mock_object_store.delete_data.assert_awaited_once_with(FEED_KEY)
