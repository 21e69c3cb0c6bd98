"""Tests for the health check router."""

from unittest.mock import AsyncMock, Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient
import pytest

from castline.jobs import BackgroundJobQueue, Task, TaskType
from castline.server.routers.health import router


@pytest.fixture
def job_queue() -> Mock:
    queue = Mock(spec=BackgroundJobQueue)
    queue.get_tasks = AsyncMock(return_value={})
    queue.is_processing = AsyncMock(return_value=False)
    return queue


@pytest.fixture
def client(job_queue: Mock) -> TestClient:
    app = FastAPI()
    app.state.job_queue = job_queue
    app.include_router(router)
    return TestClient(app)


@pytest.mark.unit
def test_health_check_success(client: TestClient):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "castline"
    assert data["version"] == "0.1.0"
    assert data["queued_tasks"] == 0
    assert data["is_processing"] is False
    assert "timestamp" in data


@pytest.mark.unit
def test_health_check_reports_queue_state(client: TestClient, job_queue: Mock):
    task = Task(
        id="abc123",
        identifier="feed",
        type=TaskType.UPDATE_PODCAST_DATA,
        data="https://example.com/feed.xml",
    )
    job_queue.get_tasks.return_value = {task.id: task}
    job_queue.is_processing.return_value = True

    data = client.get("/api/health").json()

    assert data["queued_tasks"] == 1
    assert data["is_processing"] is True
