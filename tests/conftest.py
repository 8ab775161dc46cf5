"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.notification_ledger import NotificationLedger


@pytest.fixture
async def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[Path]:
    """Point the app at a fresh SQLite file with the full schema."""
    db_path = tmp_path / "planner.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def ledger() -> NotificationLedger:
    """A fresh notification ledger isolated from the global one."""
    return NotificationLedger()
