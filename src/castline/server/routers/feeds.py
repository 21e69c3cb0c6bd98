"""Feed endpoints: listing, reading, refreshing, hiding and deleting."""

import logging

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from ...exceptions import FeedError
from ...feed.types import FeedRecord
from ...mimetypes import is_http_url
from ...store import ObjectIndexEntry
from ..dependencies import FeedServiceDep, ObjectStoreDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feeds")


class AddFeedRequest(BaseModel):
    """Request body for adding or reading a feed by URL.

    Attributes:
        url: Feed URL.
        alias: Another URL the feed is known by.
    """

    url: str = Field(..., min_length=1)
    alias: str | None = None


class FeedActionResponse(BaseModel):
    """Result of a feed action.

    Attributes:
        key: The key the action was requested for.
        message: Human-readable status message.
    """

    key: str
    message: str


async def _resolve(store: ObjectStoreDep, key: str) -> ObjectIndexEntry:
    index = await store.get_object_index(key)
    if index is None or not index.feed_url:
        raise HTTPException(status_code=404, detail="Feed not found")
    return index


@router.get("", response_model=list[ObjectIndexEntry])
async def list_feeds(store: ObjectStoreDep) -> list[ObjectIndexEntry]:
    """List stored feeds that are not hidden."""
    return list((await store.list_objects()).values())


@router.post("", response_model=FeedRecord)
async def add_feed(body: AddFeedRequest, feed_service: FeedServiceDep) -> FeedRecord:
    """Fetch a feed by URL, storing it on first access.

    Raises:
        HTTPException: 400 for a non-http(s) URL; 502 if the feed cannot be
            fetched and nothing is stored.
    """
    if not is_http_url(body.url):
        raise HTTPException(status_code=400, detail="Feed URL must be http(s)")
    try:
        return await feed_service.get_feed(body.url, alias=body.alias)
    except FeedError as e:
        logger.warning(
            "Feed could not be fetched.", extra={"feed_url": body.url}, exc_info=e
        )
        raise HTTPException(status_code=502, detail="Feed could not be fetched") from e


@router.get("/{key}", response_model=FeedRecord)
async def get_feed(
    key: str, store: ObjectStoreDep, feed_service: FeedServiceDep
) -> FeedRecord:
    """Return a stored feed, refetching it first if it is stale.

    ``key`` may be a feed URL's md5, the unique id or the object id.

    Raises:
        HTTPException: 404 if unknown; 502 if a refetch fails with nothing stored.
    """
    index = await _resolve(store, key)
    try:
        return await feed_service.get_feed(index.feed_url[0])
    except FeedError as e:
        raise HTTPException(status_code=502, detail="Feed could not be fetched") from e


@router.post("/{key}/refresh", response_model=FeedRecord)
async def refresh_feed(
    key: str, store: ObjectStoreDep, feed_service: FeedServiceDep
) -> FeedRecord:
    """Refetch a feed now.

    Raises:
        HTTPException: 404 if unknown; 502 if the fetch fails.
    """
    index = await _resolve(store, key)
    try:
        return await feed_service.refresh(index.feed_url[0])
    except FeedError as e:
        raise HTTPException(status_code=502, detail="Feed could not be fetched") from e


@router.post("/{key}/schedule", response_model=FeedActionResponse, status_code=202)
async def schedule_feed_update(
    key: str, store: ObjectStoreDep, feed_service: FeedServiceDep
) -> FeedActionResponse:
    """Queue a background refresh of a feed."""
    index = await _resolve(store, key)
    await feed_service.schedule_next_update(index.feed_url[0])
    return FeedActionResponse(key=key, message="Feed update queued")


@router.post("/{key}/hide", response_model=FeedActionResponse)
async def hide_feed(key: str, store: ObjectStoreDep) -> FeedActionResponse:
    """Hide a feed from listings; its data is kept."""
    if not await store.hide_data(key):
        raise HTTPException(status_code=404, detail="Feed not found")
    logger.info("Feed hidden.", extra={"key": key})
    return FeedActionResponse(key=key, message="Feed hidden")


@router.delete("/{key}", status_code=204)
async def delete_feed(key: str, store: ObjectStoreDep) -> Response:
    """Delete a feed's stored data and register entry."""
    if not await store.delete_data(key):
        raise HTTPException(status_code=404, detail="Feed not found")
    logger.info("Feed deleted.", extra={"key": key})
    return Response(status_code=204)
