"""Carry-over of unfinished tasks from one day's plan into the next."""

import logging
from datetime import date
from zoneinfo import ZoneInfo

from src.core.local_days import day_key, shift_local_day
from src.core.logging import span
from src.domain.plan import Plan, PlanSource
from src.domain.task import Task, TaskStatus
from src.modules.planning import store
from src.modules.planning.task_input import PlanTaskInput


logger = logging.getLogger(__name__)


def get_carry_over_candidates(source_plan: Plan | None, target_plan: Plan | None = None) -> list[Task]:
    """Return the source plan's in-progress tasks that may be carried into the target.

    Tasks already linked from the target plan through ``carried_from_task_id``
    are excluded, so offering carry-over twice never migrates a task twice.
    Neither plan is modified.
    """
    if source_plan is None:
        return []

    already_carried = set()
    if target_plan is not None:
        already_carried = {task.carried_from_task_id for task in target_plan.tasks if task.carried_from_task_id}

    candidates = [
        task
        for task in source_plan.tasks
        if task.status == TaskStatus.IN_PROGRESS and task.id not in already_carried
    ]
    return sorted(candidates, key=lambda task: task.position)


def to_task_inputs(candidates: list[Task]) -> list[PlanTaskInput]:
    """Turn carry-over candidates into plan inputs linked back to their source."""
    return [
        PlanTaskInput(text=task.text, area_id=task.area_id, carried_from_task_id=task.id) for task in candidates
    ]


async def get_candidates_for_day(*, user_id: str, target_day: date, tz: ZoneInfo) -> list[Task]:
    """Load the day before ``target_day`` and resolve its carry-over candidates."""
    with span("carry_over.get_candidates_for_day"):
        source_day = shift_local_day(target_day, tz, -1)
        source_plan = await store.get_plan_for_day(user_id=user_id, local_day=source_day)
        target_plan = await store.get_plan_for_day(user_id=user_id, local_day=target_day)
        return get_carry_over_candidates(source_plan, target_plan)


async def accept_carry_over(*, user_id: str, target_day: date, tz: ZoneInfo) -> Plan | None:
    """Carry the previous day's unfinished tasks into ``target_day``.

    Appends into the target plan when one exists (limited to its free slots),
    otherwise creates a carry-over plan. Repeating the call is a no-op once the
    tasks are linked.

    Returns:
        The target plan after migration, or None when there was nothing to carry
        and no target plan exists
    """
    with span("carry_over.accept_carry_over"):
        source_day = shift_local_day(target_day, tz, -1)
        source_plan = await store.get_plan_for_day(user_id=user_id, local_day=source_day)
        target_plan = await store.get_plan_for_day(user_id=user_id, local_day=target_day)

        candidates = get_carry_over_candidates(source_plan, target_plan)
        if not candidates:
            return target_plan

        inputs = to_task_inputs(candidates)
        if target_plan is not None:
            await store.append_tasks(plan_id=target_plan.id, tasks=inputs)
            plan = await store.get_plan(plan_id=target_plan.id)
        else:
            plan = await store.create_or_replace_plan(
                user_id=user_id,
                local_day=target_day,
                tasks=inputs,
                source=PlanSource.CARRY_OVER,
            )

        logger.info(
            "Carried over tasks",
            extra={"user_id": user_id, "target_day": day_key(target_day), "candidates": len(candidates)},
        )
        return plan
