"""Health check endpoint reporting service liveness and job queue state."""

from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from ..dependencies import JobQueueDep

router = APIRouter(prefix="/api")

SERVICE_NAME = "castline"
SERVICE_VERSION = "0.1.0"


class HealthResponse(BaseModel):
    """Response model for the health check.

    Attributes:
        status: Always ``healthy`` when the server answers.
        timestamp: Current server time.
        service: Service name.
        version: Service version.
        queued_tasks: Number of background tasks waiting to run.
        is_processing: Whether a worker holds the queue lock.
    """

    status: Literal["healthy"]
    timestamp: datetime
    service: str
    version: str
    queued_tasks: int
    is_processing: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(queue: JobQueueDep) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        queued_tasks=len(await queue.get_tasks()),
        is_processing=await queue.is_processing(),
    )
