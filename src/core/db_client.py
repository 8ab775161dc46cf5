"""SQLite database client wrapper with connection caching and transactions."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def new_id() -> str:
    """Generate a new opaque record ID."""
    return uuid4().hex


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string, the stored timestamp format."""
    return datetime.now(UTC).isoformat()


def row_to_dict(row: aiosqlite.Row) -> dict[str, Any]:
    """Convert a row into a plain dict keyed by column name."""
    return {key: row[key] for key in row.keys()}  # noqa: SIM118 - Row has no items()


# One connection and one lock per (event loop, db path). The lock serialises
# statements on the shared connection so a transaction is never interleaved
# with another coroutine's reads or writes.
_db_connections: dict[tuple[int, str], aiosqlite.Connection] = {}
_db_locks: dict[tuple[int, str], asyncio.Lock] = {}
_registry_locks: dict[int, asyncio.Lock] = {}


def _cache_key(db_path: str | None) -> tuple[int, str]:
    loop = asyncio.get_running_loop()
    return (id(loop), str(get_db_path(db_path)))


def _registry_lock() -> asyncio.Lock:
    return _registry_locks.setdefault(id(asyncio.get_running_loop()), asyncio.Lock())


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current loop and db path."""
    cache_key = _cache_key(db_path)

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _registry_lock():
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path = get_db_path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Autocommit mode: transactions are opened explicitly by transaction()
        conn = await aiosqlite.connect(str(path), isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn
        _db_locks[cache_key] = asyncio.Lock()

        logger.info("Created new SQLite connection", extra={"db_path": str(path), "loop_id": cache_key[0]})
        return conn


def _get_lock(db_path: str | None) -> asyncio.Lock:
    return _db_locks[_cache_key(db_path)]


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current loop and db path."""
    cache_key = _cache_key(db_path)

    if cache_key not in _db_connections:
        return

    try:
        async with _registry_lock():
            conn = _db_connections.pop(cache_key, None)
            _db_locks.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info("Closed SQLite connection", extra={"db_path": cache_key[1]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[1]})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


@asynccontextmanager
async def read(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Hold the connection lock for a group of read statements."""
    conn = await get_connection(db_path=db_path)
    async with _get_lock(db_path):
        yield conn


@asynccontextmanager
async def transaction(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed statements as one atomic unit.

    Commits on normal exit, rolls back on any exception and re-raises it.
    """
    conn = await get_connection(db_path=db_path)
    async with _get_lock(db_path):
        await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            await conn.execute("ROLLBACK")
            logger.warning("Transaction rolled back", extra={"db_path": str(get_db_path(db_path))})
            raise
        await conn.execute("COMMIT")


async def fetch_one(conn: aiosqlite.Connection, query: str, params: tuple | list = ()) -> dict[str, Any] | None:
    """Execute a query and return the first row as a dict, or None."""
    cursor = await conn.execute(query, params)
    row = await cursor.fetchone()
    await cursor.close()
    return row_to_dict(row) if row is not None else None


async def fetch_all(conn: aiosqlite.Connection, query: str, params: tuple | list = ()) -> list[dict[str, Any]]:
    """Execute a query and return all rows as dicts."""
    cursor = await conn.execute(query, params)
    rows = await cursor.fetchall()
    await cursor.close()
    return [row_to_dict(row) for row in rows]
