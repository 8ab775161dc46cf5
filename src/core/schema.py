"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all tables in the schema, in creation order
TABLES = [
    "users",
    "areas",
    "daily_plans",
    "tasks",
]


_TABLE_DDL: dict[str, str] = {
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id                     TEXT PRIMARY KEY,
            chat_id                INTEGER NOT NULL UNIQUE,
            name                   TEXT NOT NULL DEFAULT '',
            timezone               TEXT NOT NULL DEFAULT 'UTC',
            language               TEXT NOT NULL DEFAULT 'en',
            morning_plan_time      TEXT DEFAULT '09:00',
            evening_review_time    TEXT DEFAULT '21:00',
            daily_reminders_count  INTEGER NOT NULL DEFAULT 1,
            daily_reminders_times  TEXT DEFAULT '["14:00"]',
            onboarded              INTEGER NOT NULL DEFAULT 0,
            created_at             TEXT NOT NULL,
            updated_at             TEXT NOT NULL
        )
    """,
    "areas": """
        CREATE TABLE IF NOT EXISTS areas (
            id          TEXT PRIMARY KEY,
            user_id     TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            title       TEXT NOT NULL,
            emoji       TEXT,
            archived    INTEGER NOT NULL DEFAULT 0,
            created_at  TEXT NOT NULL
        )
    """,
    "daily_plans": """
        CREATE TABLE IF NOT EXISTS daily_plans (
            id                   TEXT PRIMARY KEY,
            user_id              TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            local_day            TEXT NOT NULL,
            status               TEXT NOT NULL DEFAULT 'draft',
            source               TEXT,
            confirmed_at         TEXT,
            review_started_at    TEXT,
            review_completed_at  TEXT,
            created_at           TEXT NOT NULL,
            updated_at           TEXT NOT NULL
        )
    """,
    # carried_from_task_id is a weak reference: no foreign key, never cascaded
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id                    TEXT PRIMARY KEY,
            plan_id               TEXT NOT NULL REFERENCES daily_plans (id) ON DELETE CASCADE,
            user_id               TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            area_id               TEXT REFERENCES areas (id) ON DELETE SET NULL,
            text                  TEXT NOT NULL,
            position              INTEGER NOT NULL,
            status                TEXT NOT NULL DEFAULT 'pending',
            status_updated_at     TEXT,
            carried_from_task_id  TEXT,
            created_at            TEXT NOT NULL,
            updated_at            TEXT NOT NULL
        )
    """,
}


INDEXES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_plans_user_day ON daily_plans (user_id, local_day)",
    # Streak walk: reviewed days per user, newest first
    "CREATE INDEX IF NOT EXISTS idx_daily_plans_user_status_day ON daily_plans (user_id, status, local_day)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_plan_position ON tasks (plan_id, position)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_user_status ON tasks (user_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_carried_from ON tasks (carried_from_task_id)",
    "CREATE INDEX IF NOT EXISTS idx_areas_user ON areas (user_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they don't exist."""
    async with db_client.transaction(db_path=db_path) as conn:
        for table in TABLES:
            await conn.execute(_TABLE_DDL[table])
        for index_sql in INDEXES:
            await conn.execute(index_sql)

    logger.info("Database schema initialized", extra={"tables": TABLES})
