"""Dependency provider functions for FastAPI endpoints.

Each provider returns a component stored on ``app.state`` by ``create_app``.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..feed import FeedService
from ..jobs import BackgroundJobQueue, NonceSigner
from ..store import ObjectStore


def get_feed_service(request: Request) -> FeedService:
    return request.app.state.feed_service


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_job_queue(request: Request) -> BackgroundJobQueue:
    return request.app.state.job_queue


def get_nonce_signer(request: Request) -> NonceSigner:
    return request.app.state.nonce_signer


FeedServiceDep = Annotated[FeedService, Depends(get_feed_service)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
JobQueueDep = Annotated[BackgroundJobQueue, Depends(get_job_queue)]
NonceSignerDep = Annotated[NonceSigner, Depends(get_nonce_signer)]
