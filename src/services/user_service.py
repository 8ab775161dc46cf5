"""User service: read side of users and life areas for the planning core.

Settings are stored as given by the settings flow and validated when read, so
a bad timezone or HH:MM value only affects the user it belongs to.
"""

import json
import logging
from datetime import time

from src.core import db_client
from src.core.config import Constants, settings
from src.core.errors import UserNotFoundError
from src.core.local_days import parse_time_of_day
from src.core.logging import span
from src.domain.user import Area, Language, User


logger = logging.getLogger(__name__)


_USER_COLUMNS = (
    "id, chat_id, name, timezone, language, morning_plan_time, evening_review_time, "
    "daily_reminders_times, daily_reminders_count, onboarded"
)


async def create_user(
    *,
    chat_id: int,
    timezone: str | None = None,
    name: str = "",
    language: Language = Language.EN,
    morning_plan_time: str | None = Constants.DEFAULT_MORNING_PLAN_TIME,
    evening_review_time: str | None = Constants.DEFAULT_EVENING_REVIEW_TIME,
    daily_reminders_times: list[str] | None = None,
    onboarded: bool = False,
) -> User:
    """Create a user with notification settings.

    Args:
        chat_id: Telegram chat ID used as the delivery address
        timezone: IANA timezone name (default: configured default timezone)
        name: Display name
        language: Interface language
        morning_plan_time: Morning prompt time (HH:MM), None to disable
        evening_review_time: Evening review time (HH:MM), None to disable
        daily_reminders_times: Mid-day reminder times (default: one at 14:00)
        onboarded: Whether the user finished onboarding

    Returns:
        Created user
    """
    with span("user_service.create_user"):
        reminder_times = (
            daily_reminders_times
            if daily_reminders_times is not None
            else [Constants.DEFAULT_DAILY_REMINDER_TIME]
        )[: Constants.MAX_DAILY_REMINDERS]
        user = User(
            id=db_client.new_id(),
            chat_id=chat_id,
            name=name,
            timezone=timezone or settings.default_timezone,
            language=language,
            morning_plan_time=morning_plan_time,
            evening_review_time=evening_review_time,
            daily_reminders_times=reminder_times,
            daily_reminders_count=len(reminder_times),
            onboarded=onboarded,
        )
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            await conn.execute(
                f"INSERT INTO users ({_USER_COLUMNS}, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    user.id,
                    user.chat_id,
                    user.name,
                    user.timezone,
                    user.language.value,
                    user.morning_plan_time,
                    user.evening_review_time,
                    json.dumps(user.daily_reminders_times),
                    user.daily_reminders_count,
                    int(user.onboarded),
                    now,
                    now,
                ),
            )

        logger.info("Created user", extra={"user_id": user.id, "chat_id": chat_id})
        return user


async def get_user(*, user_id: str) -> User:
    """Get a user by ID.

    Raises:
        UserNotFoundError: If the user does not exist
    """
    async with db_client.read() as conn:
        row = await db_client.fetch_one(conn, f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    if row is None:
        raise UserNotFoundError(f"User not found: {user_id}")
    return User(**row)


async def get_user_by_chat_id(*, chat_id: int) -> User | None:
    """Get a user by chat ID, or None if not registered."""
    async with db_client.read() as conn:
        row = await db_client.fetch_one(conn, f"SELECT {_USER_COLUMNS} FROM users WHERE chat_id = ?", (chat_id,))
    return User(**row) if row is not None else None


async def list_onboarded_users() -> list[User]:
    """List every user who finished onboarding."""
    with span("user_service.list_onboarded_users"):
        async with db_client.read() as conn:
            rows = await db_client.fetch_all(
                conn,
                f"SELECT {_USER_COLUMNS} FROM users WHERE onboarded = 1 ORDER BY created_at",
            )
        return [User(**row) for row in rows]


async def complete_onboarding(*, user_id: str) -> User:
    """Flag a user as onboarded so the scheduler starts sweeping them.

    Raises:
        UserNotFoundError: If the user does not exist
    """
    with span("user_service.complete_onboarding"):
        async with db_client.transaction() as conn:
            cursor = await conn.execute(
                "UPDATE users SET onboarded = 1, updated_at = ? WHERE id = ?",
                (db_client.utc_now_iso(), user_id),
            )
            if cursor.rowcount == 0:
                raise UserNotFoundError(f"User not found: {user_id}")
        logger.info("User onboarded", extra={"user_id": user_id})
        return await get_user(user_id=user_id)


def get_reminder_times(user: User) -> list[time]:
    """Parse a user's mid-day reminder times.

    Only the first ``daily_reminders_count`` entries (at most three) are used.

    Raises:
        ConfigurationError: If a time is not a valid HH:MM value
    """
    count = min(user.daily_reminders_count, Constants.MAX_DAILY_REMINDERS)
    return [parse_time_of_day(value) for value in user.daily_reminders_times[:count]]


async def create_area(*, user_id: str, title: str, emoji: str | None = None) -> Area:
    """Create a life area tasks can be linked to."""
    with span("user_service.create_area"):
        area = Area(id=db_client.new_id(), user_id=user_id, title=title.strip(), emoji=emoji)
        async with db_client.transaction() as conn:
            await conn.execute(
                "INSERT INTO areas (id, user_id, title, emoji, archived, created_at) VALUES (?, ?, ?, ?, 0, ?)",
                (area.id, user_id, area.title, emoji, db_client.utc_now_iso()),
            )
        return area


async def list_areas(*, user_id: str, include_archived: bool = True) -> list[Area]:
    """List a user's life areas in creation order."""
    query = "SELECT id, user_id, title, emoji, archived FROM areas WHERE user_id = ?"
    if not include_archived:
        query += " AND archived = 0"
    query += " ORDER BY created_at"

    async with db_client.read() as conn:
        rows = await db_client.fetch_all(conn, query, (user_id,))
    return [Area(**row) for row in rows]


async def full_reset(*, user_id: str) -> User:
    """Delete a user's plans, tasks and areas and restore default settings.

    The language and timezone are kept; the user has to onboard again.

    Raises:
        UserNotFoundError: If the user does not exist
    """
    with span("user_service.full_reset"):
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            exists = await db_client.fetch_one(conn, "SELECT id FROM users WHERE id = ?", (user_id,))
            if exists is None:
                raise UserNotFoundError(f"User not found: {user_id}")

            # Tasks cascade from their plans
            await conn.execute("DELETE FROM daily_plans WHERE user_id = ?", (user_id,))
            await conn.execute("DELETE FROM areas WHERE user_id = ?", (user_id,))
            await conn.execute(
                """
                UPDATE users
                SET morning_plan_time = ?, evening_review_time = ?, daily_reminders_times = ?,
                    daily_reminders_count = 1, onboarded = 0, updated_at = ?
                WHERE id = ?
                """,
                (
                    Constants.DEFAULT_MORNING_PLAN_TIME,
                    Constants.DEFAULT_EVENING_REVIEW_TIME,
                    json.dumps([Constants.DEFAULT_DAILY_REMINDER_TIME]),
                    now,
                    user_id,
                ),
            )

        logger.warning("Full reset performed", extra={"user_id": user_id})
        return await get_user(user_id=user_id)
