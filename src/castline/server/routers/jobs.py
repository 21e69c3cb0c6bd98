"""Background job endpoints: queue inspection and the worker trigger."""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Response
from pydantic import BaseModel

from ...jobs import Task
from ..dependencies import JobQueueDep, NonceSignerDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs")


class QueueResponse(BaseModel):
    """Current queue state.

    Attributes:
        is_processing: Whether a worker holds the queue lock.
        tasks: Queued tasks in insertion order.
    """

    is_processing: bool
    tasks: list[Task]


class HandleResponse(BaseModel):
    """Acknowledgement of a worker trigger.

    Attributes:
        accepted: Always True; the work runs after the response is sent.
    """

    accepted: bool


@router.get("", response_model=QueueResponse)
async def list_jobs(queue: JobQueueDep) -> QueueResponse:
    tasks = await queue.get_tasks()
    return QueueResponse(
        is_processing=await queue.is_processing(), tasks=list(tasks.values())
    )


@router.post("/handle", response_model=HandleResponse, status_code=202)
async def handle_jobs(
    background_tasks: BackgroundTasks,
    queue: JobQueueDep,
    nonces: NonceSignerDep,
    nonce: str = Query(default="", description="Worker nonce."),
) -> HandleResponse:
    """Run one worker cycle after the response has been sent.

    Raises:
        HTTPException: 403 if the nonce is missing or stale.
    """
    if not nonces.verify(nonce):
        logger.warning("Rejected worker request with invalid nonce.")
        raise HTTPException(status_code=403, detail="Invalid nonce")
    background_tasks.add_task(queue.maybe_handle, nonce)
    return HandleResponse(accepted=True)


@router.delete("/{task_id}", status_code=204)
async def delete_job(task_id: str, queue: JobQueueDep) -> Response:
    """Drop a queued task.

    Raises:
        HTTPException: 404 if no such task is queued.
    """
    if not await queue.remove_task(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    logger.info("Task removed by request.", extra={"task_id": task_id})
    return Response(status_code=204)
