"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Awaitable, Callable, Iterator
from datetime import date
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from src.domain.plan import Plan
from src.domain.task import TaskStatus
from src.domain.user import User
from src.interface.chat_sender import SendMessageResult
from src.modules.planning import store
from src.modules.planning.task_input import inputs_from_texts
from src.services import user_service


@pytest.fixture
def mock_send_message() -> Iterator[AsyncMock]:
    """Replace the chat transport used by the scheduler jobs."""
    with patch("src.modules.planning.scheduler_jobs.send_text_message", new_callable=AsyncMock) as mock_send:
        mock_send.return_value = SendMessageResult(success=True, message_id=1)
        yield mock_send


@pytest.fixture
def make_user(db) -> Callable[..., Awaitable[User]]:
    """Factory creating onboarded users with sensible defaults."""
    counter = {"chat_id": 1000}

    async def _make_user(**overrides: Any) -> User:
        counter["chat_id"] += 1
        fields: dict[str, Any] = {
            "chat_id": counter["chat_id"],
            "timezone": "UTC",
            "name": "Alice",
            "onboarded": True,
        }
        fields.update(overrides)
        return await user_service.create_user(**fields)

    return _make_user


@pytest.fixture
def make_plan(db) -> Callable[..., Awaitable[Plan]]:
    """Factory creating a confirmed plan, optionally with task statuses applied."""

    async def _make_plan(
        *,
        user_id: str,
        local_day: date,
        texts: list[str],
        statuses: list[TaskStatus] | None = None,
    ) -> Plan:
        plan = await store.create_or_replace_plan(
            user_id=user_id,
            local_day=local_day,
            tasks=inputs_from_texts(texts),
        )
        for task, status in zip(plan.tasks, statuses or [], strict=False):
            await store.set_task_status(task_id=task.id, status=status)
        return await store.get_plan(plan_id=plan.id)

    return _make_plan
