"""Tests for scheduler job registration."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core import scheduler as scheduler_module
from src.core import scheduler_tracker
from src.models.service_models import SweepResult


@pytest.mark.unit
def test_start_scheduler_registers_sweep_job() -> None:
    mock_scheduler = MagicMock()

    with patch.object(scheduler_module, "scheduler", mock_scheduler):
        scheduler_module.start_scheduler()

    mock_scheduler.add_job.assert_called_once()
    call = mock_scheduler.add_job.call_args
    assert call.args[0] is scheduler_tracker.retry_job_with_backoff
    assert call.kwargs["args"] == [
        scheduler_module.run_planning_notifications,
        scheduler_module.PLANNING_NOTIFICATIONS_JOB,
    ]
    assert call.kwargs["id"] == scheduler_module.PLANNING_NOTIFICATIONS_JOB
    assert call.kwargs["replace_existing"] is True
    assert isinstance(call.kwargs["trigger"], CronTrigger)
    assert "*/5" in str(call.kwargs["trigger"])
    mock_scheduler.start.assert_called_once()


@pytest.mark.unit
async def test_scheduled_job_awaits_sweep_on_event_loop() -> None:
    real_scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
    mock_sweep = AsyncMock(return_value=SweepResult())

    with (
        patch.object(scheduler_module, "scheduler", real_scheduler),
        patch.object(scheduler_module, "run_planning_notifications", mock_sweep),
        patch.object(scheduler_tracker, "job_tracker", scheduler_tracker.JobTracker()),
    ):
        scheduler_module.start_scheduler()
        try:
            job = real_scheduler.get_job(scheduler_module.PLANNING_NOTIFICATIONS_JOB)
            job.modify(next_run_time=datetime.now(UTC))

            for _ in range(200):
                if mock_sweep.await_count:
                    break
                await asyncio.sleep(0.01)
        finally:
            real_scheduler.shutdown(wait=False)

    mock_sweep.assert_awaited_once_with()


@pytest.mark.unit
def test_stop_scheduler_waits_for_running_jobs() -> None:
    mock_scheduler = MagicMock()

    with patch.object(scheduler_module, "scheduler", mock_scheduler):
        scheduler_module.stop_scheduler()

    mock_scheduler.shutdown.assert_called_once_with(wait=True)


@pytest.mark.unit
async def test_run_manual_check() -> None:
    expected = SweepResult(users_total=2, users_processed=2, messages_sent=1)

    with patch.object(
        scheduler_module, "run_planning_notifications", new_callable=AsyncMock, return_value=expected
    ) as mock_run:
        result = await scheduler_module.run_manual_check()

    assert result == expected
    mock_run.assert_awaited_once_with()
