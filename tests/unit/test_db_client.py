"""Tests for the SQLite client wrapper."""

import pytest

from src.core import db_client


@pytest.mark.unit
class TestDBClient:
    async def test_connection_is_cached_per_path(self, db) -> None:
        first = await db_client.get_connection()
        second = await db_client.get_connection()

        assert first is second

    async def test_foreign_keys_enabled(self, db) -> None:
        async with db_client.read() as conn:
            row = await db_client.fetch_one(conn, "PRAGMA foreign_keys")

        assert row == {"foreign_keys": 1}

    async def test_transaction_commits(self, make_user) -> None:
        user = await make_user()
        async with db_client.transaction() as conn:
            await conn.execute(
                "INSERT INTO areas (id, user_id, title, archived, created_at) VALUES (?, ?, ?, 0, ?)",
                ("a1", user.id, "Work", db_client.utc_now_iso()),
            )

        async with db_client.read() as conn:
            rows = await db_client.fetch_all(conn, "SELECT id, title FROM areas")

        assert rows == [{"id": "a1", "title": "Work"}]

    async def test_transaction_rolls_back_on_error(self, make_user) -> None:
        user = await make_user()
        with pytest.raises(RuntimeError, match="boom"):
            async with db_client.transaction() as conn:
                await conn.execute(
                    "INSERT INTO areas (id, user_id, title, archived, created_at) VALUES (?, ?, ?, 0, ?)",
                    ("a1", user.id, "Work", db_client.utc_now_iso()),
                )
                raise RuntimeError("boom")

        async with db_client.read() as conn:
            assert await db_client.fetch_one(conn, "SELECT id FROM areas") is None

    def test_new_ids_are_unique(self) -> None:
        assert db_client.new_id() != db_client.new_id()
