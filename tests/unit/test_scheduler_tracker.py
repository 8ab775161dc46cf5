"""Tests for scheduler job tracking and retry functionality."""

from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest

from src.core.scheduler_tracker import JobTracker, retry_job_with_backoff


@pytest.fixture(autouse=True)
def mock_asyncio_sleep() -> Generator[AsyncMock, None, None]:
    """Mock asyncio.sleep to avoid actual backoff delays."""
    with patch("src.core.scheduler_tracker.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def job_tracker() -> JobTracker:
    """Create a fresh job tracker instance for testing."""
    return JobTracker()


@pytest.mark.unit
async def test_record_job_start(job_tracker: JobTracker) -> None:
    await job_tracker.record_job_start("test_job")

    status = await job_tracker.get_job_status("test_job")
    assert status["currently_running"] is True
    assert status["current_run_started"] is not None


@pytest.mark.unit
async def test_record_job_success(job_tracker: JobTracker) -> None:
    await job_tracker.record_job_start("test_job")
    await job_tracker.record_job_success("test_job")

    status = await job_tracker.get_job_status("test_job")
    assert status["last_success"] is not None
    assert status["consecutive_failures"] == 0
    assert status["success_count"] == 1
    assert status["currently_running"] is False


@pytest.mark.unit
async def test_record_job_failure(job_tracker: JobTracker) -> None:
    await job_tracker.record_job_start("test_job")
    consecutive = await job_tracker.record_job_failure("test_job", "Test error")

    status = await job_tracker.get_job_status("test_job")
    assert consecutive == 1
    assert status["last_failure"] is not None
    assert status["last_error"] == "Test error"
    assert status["failure_count"] == 1
    assert status["currently_running"] is False


@pytest.mark.unit
async def test_consecutive_failures_reset_on_success(job_tracker: JobTracker) -> None:
    await job_tracker.record_job_failure("test_job", "Error 1")
    await job_tracker.record_job_failure("test_job", "Error 2")
    assert (await job_tracker.get_job_status("test_job"))["consecutive_failures"] == 2

    await job_tracker.record_job_success("test_job")

    status = await job_tracker.get_job_status("test_job")
    assert status["consecutive_failures"] == 0
    assert status["failure_count"] == 2  # Total failures still tracked


@pytest.mark.unit
async def test_dead_letter_queue(job_tracker: JobTracker) -> None:
    await job_tracker.add_to_dead_letter_queue("failed_job", "Persistent error", "Failed 3 consecutive times")

    assert job_tracker.get_dead_letter_queue() == [
        {"job_name": "failed_job", "error": "Persistent error", "context": "Failed 3 consecutive times"}
    ]


@pytest.mark.unit
async def test_dead_letter_queue_max_size(job_tracker: JobTracker) -> None:
    for i in range(150):
        await job_tracker.add_to_dead_letter_queue(f"job_{i}", f"error_{i}", "context")

    dlq = job_tracker.get_dead_letter_queue()
    assert len(dlq) == 100
    assert dlq[0]["job_name"] == "job_50"


@pytest.mark.unit
async def test_get_job_status_for_nonexistent_job(job_tracker: JobTracker) -> None:
    status = await job_tracker.get_job_status("nonexistent_job")

    assert status["job_name"] == "nonexistent_job"
    assert status["last_success"] is None
    assert status["consecutive_failures"] == 0
    assert status["currently_running"] is False


@pytest.mark.unit
async def test_error_truncation(job_tracker: JobTracker) -> None:
    await job_tracker.record_job_failure("test_job", "x" * 1000)

    status = await job_tracker.get_job_status("test_job")
    assert len(status["last_error"]) == 500


@pytest.mark.unit
async def test_retry_success_first_try() -> None:
    mock_job = AsyncMock()

    with patch("src.core.scheduler_tracker.job_tracker") as mock_tracker:
        mock_tracker.record_job_start = AsyncMock()
        mock_tracker.record_job_success = AsyncMock()

        await retry_job_with_backoff(mock_job, "test_job")

        mock_job.assert_called_once()
        mock_tracker.record_job_start.assert_called_once_with("test_job")
        mock_tracker.record_job_success.assert_called_once_with("test_job")


@pytest.mark.unit
async def test_retry_success_after_failures(mock_asyncio_sleep: AsyncMock) -> None:
    mock_job = AsyncMock(side_effect=[Exception("Error 1"), Exception("Error 2"), None])

    with patch("src.core.scheduler_tracker.job_tracker") as mock_tracker:
        mock_tracker.record_job_start = AsyncMock()
        mock_tracker.record_job_success = AsyncMock()

        await retry_job_with_backoff(mock_job, "test_job", max_retries=3)

        assert mock_job.call_count == 3
        mock_tracker.record_job_success.assert_called_once_with("test_job")
        assert [call.args[0] for call in mock_asyncio_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.unit
async def test_retry_exhausted_records_failure_without_dlq() -> None:
    mock_job = AsyncMock(side_effect=Exception("Persistent error"))

    with patch("src.core.scheduler_tracker.job_tracker") as mock_tracker:
        mock_tracker.record_job_start = AsyncMock()
        mock_tracker.record_job_failure = AsyncMock(return_value=1)
        mock_tracker.add_to_dead_letter_queue = AsyncMock()

        await retry_job_with_backoff(mock_job, "test_job", max_retries=3)

        assert mock_job.call_count == 3
        mock_tracker.record_job_failure.assert_called_once_with(
            "test_job", "Failed after 3 attempts: Persistent error"
        )
        mock_tracker.add_to_dead_letter_queue.assert_not_called()


@pytest.mark.unit
async def test_retry_adds_to_dlq_after_consecutive_failures() -> None:
    mock_job = AsyncMock(side_effect=Exception("Persistent error"))

    with patch("src.core.scheduler_tracker.job_tracker") as mock_tracker:
        mock_tracker.record_job_start = AsyncMock()
        mock_tracker.record_job_failure = AsyncMock(return_value=3)
        mock_tracker.add_to_dead_letter_queue = AsyncMock()

        await retry_job_with_backoff(mock_job, "test_job", max_retries=2)

        mock_tracker.add_to_dead_letter_queue.assert_called_once_with(
            job_name="test_job",
            error="Persistent error",
            context="Failed 3 consecutive times",
        )
