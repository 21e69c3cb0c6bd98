"""FastAPI application factory."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..feed import FeedService
from ..jobs import BackgroundJobQueue, NonceSigner
from ..store import ObjectStore
from .routers import feeds, health, jobs

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log each HTTP request and its response status."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        logger.debug(
            "HTTP request received",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            },
        )
        response = await call_next(request)
        logger.debug(
            "HTTP response sent",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
            },
        )
        return response


def create_app(
    feed_service: FeedService,
    object_store: ObjectStore,
    job_queue: BackgroundJobQueue,
    nonce_signer: NonceSigner,
    shutdown_callback: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        feed_service: Feed retrieval service.
        object_store: Object register and data storage.
        job_queue: Background job queue.
        nonce_signer: Verifier for worker trigger nonces.
        shutdown_callback: Awaited when the application shuts down.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
        try:
            yield
        finally:
            if shutdown_callback:
                await shutdown_callback()

    app = FastAPI(
        title="castline",
        description="Podcast feed ingestion with a self-dispatching job queue",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(LoggingMiddleware)

    app.state.feed_service = feed_service
    app.state.object_store = object_store
    app.state.job_queue = job_queue
    app.state.nonce_signer = nonce_signer

    app.include_router(health.router, tags=["health"])
    app.include_router(jobs.router, tags=["jobs"])
    app.include_router(feeds.router, tags=["feeds"])

    logger.debug("FastAPI application created.")
    return app
