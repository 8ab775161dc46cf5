"""Plan/Task store: persistence and lifecycle operations for daily plans.

Every multi-row write runs inside ``db_client.transaction()``; reads hold the
same connection lock, so a reader never observes a half-applied replace,
append, or removal.
"""

import logging
from datetime import date
from typing import Any

import aiosqlite

from src.core import db_client
from src.core.config import Constants
from src.core.errors import PlanAlreadyExistsError, PlanNotFoundError, TaskNotFoundError
from src.core.local_days import day_key
from src.core.logging import span
from src.domain.plan import Plan, PlanSource, PlanStatus
from src.domain.task import Task, TaskStatus
from src.modules.planning import state_machine
from src.modules.planning.task_input import PlanTaskInput, normalize_task_inputs


logger = logging.getLogger(__name__)


_PLAN_COLUMNS = (
    "id, user_id, local_day, status, source, confirmed_at, review_started_at, review_completed_at, "
    "created_at, updated_at"
)
_TASK_COLUMNS = (
    "id, plan_id, user_id, area_id, text, position, status, status_updated_at, carried_from_task_id, "
    "created_at, updated_at"
)


# =============================================================================
# Row helpers (callers hold the connection lock)
# =============================================================================


async def _fetch_tasks(conn: aiosqlite.Connection, plan_id: str) -> list[Task]:
    rows = await db_client.fetch_all(
        conn,
        f"SELECT {_TASK_COLUMNS} FROM tasks WHERE plan_id = ? ORDER BY position",
        (plan_id,),
    )
    return [Task(**row) for row in rows]


async def _build_plan(conn: aiosqlite.Connection, row: dict[str, Any]) -> Plan:
    tasks = await _fetch_tasks(conn, row["id"])
    return Plan(**row, tasks=tasks)


async def _fetch_plan(conn: aiosqlite.Connection, plan_id: str) -> Plan | None:
    row = await db_client.fetch_one(conn, f"SELECT {_PLAN_COLUMNS} FROM daily_plans WHERE id = ?", (plan_id,))
    if row is None:
        return None
    return await _build_plan(conn, row)


async def _require_plan_row(conn: aiosqlite.Connection, plan_id: str) -> dict[str, Any]:
    row = await db_client.fetch_one(conn, f"SELECT {_PLAN_COLUMNS} FROM daily_plans WHERE id = ?", (plan_id,))
    if row is None:
        raise PlanNotFoundError(f"Plan not found: {plan_id}")
    return row


async def _insert_tasks(
    conn: aiosqlite.Connection,
    *,
    plan_id: str,
    user_id: str,
    tasks: list[PlanTaskInput],
    first_position: int,
    now: str,
) -> None:
    rows = [
        (
            db_client.new_id(),
            plan_id,
            user_id,
            task.area_id,
            task.text,
            first_position + offset,
            TaskStatus.PENDING.value,
            task.carried_from_task_id,
            now,
            now,
        )
        for offset, task in enumerate(tasks)
    ]
    await conn.executemany(
        "INSERT INTO tasks (id, plan_id, user_id, area_id, text, position, status, carried_from_task_id, "
        "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        rows,
    )


# =============================================================================
# Reads
# =============================================================================


async def get_plan_for_day(*, user_id: str, local_day: date) -> Plan | None:
    """Get a user's plan for a local day, with tasks ordered by position."""
    with span("plan_store.get_plan_for_day"):
        async with db_client.read() as conn:
            row = await db_client.fetch_one(
                conn,
                f"SELECT {_PLAN_COLUMNS} FROM daily_plans WHERE user_id = ? AND local_day = ?",
                (user_id, day_key(local_day)),
            )
            if row is None:
                return None
            return await _build_plan(conn, row)


async def get_plan(*, plan_id: str) -> Plan:
    """Get a plan by ID.

    Raises:
        PlanNotFoundError: If the plan does not exist
    """
    with span("plan_store.get_plan"):
        async with db_client.read() as conn:
            plan = await _fetch_plan(conn, plan_id)
        if plan is None:
            raise PlanNotFoundError(f"Plan not found: {plan_id}")
        return plan


async def get_plan_tasks(*, plan_id: str) -> list[Task]:
    """Get a plan's tasks ordered by position (empty if the plan has none)."""
    with span("plan_store.get_plan_tasks"):
        async with db_client.read() as conn:
            return await _fetch_tasks(conn, plan_id)


async def get_latest_filled_plan_before(*, user_id: str, local_day: date) -> Plan | None:
    """Get the most recent non-draft plan with at least one task strictly before ``local_day``."""
    with span("plan_store.get_latest_filled_plan_before"):
        async with db_client.read() as conn:
            row = await db_client.fetch_one(
                conn,
                f"""
                SELECT {_PLAN_COLUMNS} FROM daily_plans p
                WHERE p.user_id = ? AND p.local_day < ? AND p.status != ?
                  AND EXISTS (SELECT 1 FROM tasks t WHERE t.plan_id = p.id)
                ORDER BY p.local_day DESC
                LIMIT 1
                """,
                (user_id, day_key(local_day), PlanStatus.DRAFT.value),
            )
            if row is None:
                return None
            return await _build_plan(conn, row)


async def list_plans_between(
    *,
    user_id: str,
    start: date,
    end: date,
    statuses: set[PlanStatus] | frozenset[PlanStatus] | None = None,
) -> list[Plan]:
    """List a user's plans whose local day falls in ``[start, end]``, oldest first.

    Args:
        user_id: Owning user
        start: First local day (inclusive)
        end: Last local day (inclusive)
        statuses: Only return plans in these states (default: all)

    Returns:
        Plans with their tasks
    """
    with span("plan_store.list_plans_between"):
        query = f"SELECT {_PLAN_COLUMNS} FROM daily_plans WHERE user_id = ? AND local_day >= ? AND local_day <= ?"
        params: list[Any] = [user_id, day_key(start), day_key(end)]
        if statuses is not None:
            if not statuses:
                return []
            placeholders = ", ".join("?" for _ in statuses)
            query += f" AND status IN ({placeholders})"
            params.extend(sorted(status.value for status in statuses))
        query += " ORDER BY local_day"

        async with db_client.read() as conn:
            rows = await db_client.fetch_all(conn, query, params)
            return [await _build_plan(conn, row) for row in rows]


async def list_reviewed_days(*, user_id: str, on_or_before: date, limit: int) -> list[date]:
    """List local days with a reviewed plan, newest first, starting at ``on_or_before``.

    Served by the (user_id, status, local_day) index so a caller can page
    backwards without scanning the user's whole history.
    """
    with span("plan_store.list_reviewed_days"):
        async with db_client.read() as conn:
            rows = await db_client.fetch_all(
                conn,
                """
                SELECT local_day FROM daily_plans
                WHERE user_id = ? AND status = ? AND local_day <= ?
                ORDER BY local_day DESC
                LIMIT ?
                """,
                (user_id, PlanStatus.REVIEWED.value, day_key(on_or_before), limit),
            )
        return [date.fromisoformat(row["local_day"]) for row in rows]


# =============================================================================
# Plan writes
# =============================================================================


async def create_or_replace_plan(
    *,
    user_id: str,
    local_day: date,
    tasks: list[PlanTaskInput],
    source: str = PlanSource.MANUAL,
) -> Plan:
    """Create a confirmed plan for a day, or replace the existing one.

    Replacing keeps the plan row ID, deletes all of its tasks, resets the status
    to confirmed with a fresh confirmation time and clears review timestamps.
    Tasks beyond the daily cap are dropped.

    Args:
        user_id: Owning user
        local_day: Calendar day in the user's timezone
        tasks: New task list (normalised and truncated here)
        source: Creation source tag

    Returns:
        The stored plan with its tasks
    """
    with span("plan_store.create_or_replace_plan"):
        inputs = normalize_task_inputs(tasks)[: Constants.MAX_TASKS_PER_DAY]
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            existing = await db_client.fetch_one(
                conn,
                "SELECT id FROM daily_plans WHERE user_id = ? AND local_day = ?",
                (user_id, day_key(local_day)),
            )

            if existing is not None:
                plan_id = existing["id"]
                await conn.execute("DELETE FROM tasks WHERE plan_id = ?", (plan_id,))
                await conn.execute(
                    """
                    UPDATE daily_plans
                    SET status = ?, source = ?, confirmed_at = ?, review_started_at = NULL,
                        review_completed_at = NULL, updated_at = ?
                    WHERE id = ?
                    """,
                    (PlanStatus.CONFIRMED.value, str(source), now, now, plan_id),
                )
            else:
                plan_id = db_client.new_id()
                await conn.execute(
                    f"INSERT INTO daily_plans ({_PLAN_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, NULL, NULL, ?, ?)",
                    (plan_id, user_id, day_key(local_day), PlanStatus.CONFIRMED.value, str(source), now, now, now),
                )

            await _insert_tasks(conn, plan_id=plan_id, user_id=user_id, tasks=inputs, first_position=1, now=now)
            plan = await _fetch_plan(conn, plan_id)

        logger.info(
            "Saved plan",
            extra={
                "user_id": user_id,
                "plan_id": plan_id,
                "local_day": day_key(local_day),
                "task_count": len(inputs),
                "replaced": existing is not None,
            },
        )
        assert plan is not None  # noqa: S101 - written in the same transaction
        return plan


async def create_draft_plan(*, user_id: str, local_day: date, source: str = PlanSource.MANUAL) -> Plan:
    """Create an empty draft plan for incremental planning.

    Raises:
        PlanAlreadyExistsError: If the day already has a plan
    """
    with span("plan_store.create_draft_plan"):
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            existing = await db_client.fetch_one(
                conn,
                "SELECT id FROM daily_plans WHERE user_id = ? AND local_day = ?",
                (user_id, day_key(local_day)),
            )
            if existing is not None:
                raise PlanAlreadyExistsError(f"User {user_id} already has a plan for {day_key(local_day)}")

            plan_id = db_client.new_id()
            await conn.execute(
                f"INSERT INTO daily_plans ({_PLAN_COLUMNS}) VALUES (?, ?, ?, ?, ?, NULL, NULL, NULL, ?, ?)",
                (plan_id, user_id, day_key(local_day), PlanStatus.DRAFT.value, str(source), now, now),
            )
            plan = await _fetch_plan(conn, plan_id)

        logger.info("Created draft plan", extra={"user_id": user_id, "plan_id": plan_id})
        assert plan is not None  # noqa: S101 - written in the same transaction
        return plan


async def _transition_plan(*, plan_id: str, target: PlanStatus, timestamp_column: str) -> Plan:
    now = db_client.utc_now_iso()

    async with db_client.transaction() as conn:
        row = await _require_plan_row(conn, plan_id)
        current = PlanStatus(row["status"])
        state_machine.ensure_transition(plan_id=plan_id, current=current, target=target)

        await conn.execute(
            f"UPDATE daily_plans SET status = ?, {timestamp_column} = ?, updated_at = ? WHERE id = ?",
            (target.value, now, now, plan_id),
        )
        plan = await _fetch_plan(conn, plan_id)

    logger.info(
        "Plan transitioned",
        extra={"plan_id": plan_id, "from_status": current.value, "to_status": target.value},
    )
    assert plan is not None  # noqa: S101 - updated in the same transaction
    return plan


async def confirm_plan(*, plan_id: str) -> Plan:
    """Move a draft plan to confirmed.

    Raises:
        PlanNotFoundError: If the plan does not exist
        InvalidPlanTransitionError: If the plan is not a draft
    """
    with span("plan_store.confirm_plan"):
        return await _transition_plan(plan_id=plan_id, target=PlanStatus.CONFIRMED, timestamp_column="confirmed_at")


async def mark_review_started(*, plan_id: str) -> Plan:
    """Start (or restart) the evening review of a plan.

    Raises:
        PlanNotFoundError: If the plan does not exist
        InvalidPlanTransitionError: If the plan is a draft or already reviewed
    """
    with span("plan_store.mark_review_started"):
        return await _transition_plan(
            plan_id=plan_id,
            target=PlanStatus.REVIEW_PENDING,
            timestamp_column="review_started_at",
        )


async def mark_review_completed(*, plan_id: str) -> Plan:
    """Complete the evening review of a plan.

    Raises:
        PlanNotFoundError: If the plan does not exist
        InvalidPlanTransitionError: If the review was never started
    """
    with span("plan_store.mark_review_completed"):
        return await _transition_plan(
            plan_id=plan_id,
            target=PlanStatus.REVIEWED,
            timestamp_column="review_completed_at",
        )


# =============================================================================
# Task writes
# =============================================================================


async def append_tasks(*, plan_id: str, tasks: list[PlanTaskInput]) -> list[Task]:
    """Append tasks to a plan while slots remain.

    Tasks beyond the remaining capacity are dropped silently.

    Returns:
        The plan's full task list after the append

    Raises:
        PlanNotFoundError: If the plan does not exist
    """
    with span("plan_store.append_tasks"):
        inputs = normalize_task_inputs(tasks)
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            plan_row = await _require_plan_row(conn, plan_id)
            count_row = await db_client.fetch_one(conn, "SELECT COUNT(*) AS n FROM tasks WHERE plan_id = ?", (plan_id,))
            count = count_row["n"] if count_row else 0
            capacity = max(Constants.MAX_TASKS_PER_DAY - count, 0)
            accepted = inputs[:capacity]

            await _insert_tasks(
                conn,
                plan_id=plan_id,
                user_id=plan_row["user_id"],
                tasks=accepted,
                first_position=count + 1,
                now=now,
            )
            if accepted:
                await conn.execute("UPDATE daily_plans SET updated_at = ? WHERE id = ?", (now, plan_id))
            refreshed = await _fetch_tasks(conn, plan_id)

        if len(accepted) < len(inputs):
            logger.info(
                "Dropped tasks over the daily limit",
                extra={"plan_id": plan_id, "dropped": len(inputs) - len(accepted)},
            )
        return refreshed


async def set_task_status(*, task_id: str, status: TaskStatus) -> Task:
    """Write a task's status and status timestamp.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("plan_store.set_task_status"):
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            cursor = await conn.execute(
                "UPDATE tasks SET status = ?, status_updated_at = ?, updated_at = ? WHERE id = ?",
                (TaskStatus(status).value, now, now, task_id),
            )
            if cursor.rowcount == 0:
                raise TaskNotFoundError(f"Task not found: {task_id}")
            row = await db_client.fetch_one(conn, f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,))

        logger.debug("Task status updated", extra={"task_id": task_id, "status": str(status)})
        return Task(**row)  # type: ignore[arg-type]


async def mark_task_done_at_position(*, plan_id: str, position: int) -> Task | None:
    """Mark the task at a position as done; None if no task sits there.

    The lookup and the write share one transaction, so a concurrent removal
    cannot renumber the plan in between.
    """
    with span("plan_store.mark_task_done_at_position"):
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            target = await db_client.fetch_one(
                conn,
                "SELECT id FROM tasks WHERE plan_id = ? AND position = ?",
                (plan_id, position),
            )
            if target is None:
                return None

            await conn.execute(
                "UPDATE tasks SET status = ?, status_updated_at = ?, updated_at = ? WHERE id = ?",
                (TaskStatus.DONE.value, now, now, target["id"]),
            )
            row = await db_client.fetch_one(conn, f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (target["id"],))

        logger.debug("Task marked done", extra={"task_id": target["id"], "position": position})
        return Task(**row)  # type: ignore[arg-type]


async def mark_all_tasks_done(*, plan_id: str) -> int:
    """Mark every task of a plan that is not yet done as done.

    Returns:
        Number of tasks updated
    """
    with span("plan_store.mark_all_tasks_done"):
        now = db_client.utc_now_iso()
        async with db_client.transaction() as conn:
            cursor = await conn.execute(
                "UPDATE tasks SET status = ?, status_updated_at = ?, updated_at = ? WHERE plan_id = ? AND status != ?",
                (TaskStatus.DONE.value, now, now, plan_id, TaskStatus.DONE.value),
            )
            updated = cursor.rowcount
        logger.info("Marked all tasks done", extra={"plan_id": plan_id, "updated": updated})
        return updated


async def remove_task_at_position(*, plan_id: str, position: int) -> list[Task] | None:
    """Delete the task at a position and close the gap.

    Surviving tasks keep their relative order and are renumbered 1..N.

    Returns:
        The refreshed task list, or None if no task sits at ``position``

    Raises:
        PlanNotFoundError: If the plan does not exist
    """
    with span("plan_store.remove_task_at_position"):
        now = db_client.utc_now_iso()

        async with db_client.transaction() as conn:
            await _require_plan_row(conn, plan_id)
            target = await db_client.fetch_one(
                conn,
                "SELECT id FROM tasks WHERE plan_id = ? AND position = ?",
                (plan_id, position),
            )
            if target is None:
                return None

            await conn.execute("DELETE FROM tasks WHERE id = ?", (target["id"],))

            # Ascending order keeps every target position free under the unique index
            survivors = await db_client.fetch_all(
                conn,
                "SELECT id, position FROM tasks WHERE plan_id = ? ORDER BY position",
                (plan_id,),
            )
            for new_position, survivor in enumerate(survivors, start=1):
                if survivor["position"] != new_position:
                    await conn.execute(
                        "UPDATE tasks SET position = ?, updated_at = ? WHERE id = ?",
                        (new_position, now, survivor["id"]),
                    )
            await conn.execute("UPDATE daily_plans SET updated_at = ? WHERE id = ?", (now, plan_id))
            refreshed = await _fetch_tasks(conn, plan_id)

        logger.info("Removed task", extra={"plan_id": plan_id, "position": position, "remaining": len(refreshed)})
        return refreshed
