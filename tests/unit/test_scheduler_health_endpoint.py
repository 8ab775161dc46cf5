"""Tests for scheduler health check endpoint."""

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from src.main import app


@pytest.fixture
def client() -> TestClient:
    """Create a test client for FastAPI app (lifespan is not entered)."""
    return TestClient(app)


def _job_status(**overrides: Any) -> dict[str, Any]:
    status = {
        "job_name": "planning_notifications",
        "last_success": "2024-01-01T00:00:00Z",
        "last_failure": None,
        "last_error": None,
        "consecutive_failures": 0,
        "success_count": 10,
        "failure_count": 0,
        "currently_running": False,
        "current_run_started": None,
    }
    status.update(overrides)
    return status


@pytest.mark.unit
def test_health_endpoint_returns_healthy(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.unit
def test_scheduler_health_all_jobs_healthy(client: TestClient) -> None:
    with patch("src.main.job_tracker") as mock_tracker:
        mock_tracker.get_job_status = AsyncMock(return_value=_job_status())
        mock_tracker.get_dead_letter_queue = lambda: []

        response = client.get("/health/scheduler")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "planning_notifications" in data["jobs"]
    assert data["dead_letter_queue_size"] == 0


@pytest.mark.unit
def test_scheduler_health_degraded_with_failures(client: TestClient) -> None:
    with patch("src.main.job_tracker") as mock_tracker:
        mock_tracker.get_job_status = AsyncMock(
            return_value=_job_status(consecutive_failures=1, last_error="Test error", failure_count=1)
        )
        mock_tracker.get_dead_letter_queue = lambda: []

        response = client.get("/health/scheduler")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


@pytest.mark.unit
def test_scheduler_health_critical_with_dlq(client: TestClient) -> None:
    dlq = [
        {
            "job_name": "planning_notifications",
            "error": "Persistent error",
            "context": "Failed 3 consecutive times",
        }
    ]

    with patch("src.main.job_tracker") as mock_tracker:
        mock_tracker.get_job_status = AsyncMock(return_value=_job_status(consecutive_failures=3, last_success=None))
        mock_tracker.get_dead_letter_queue = lambda: dlq

        response = client.get("/health/scheduler")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "critical"
    assert data["dead_letter_queue_size"] == 1
    assert data["dead_letter_queue"] == dlq
