"""Streak and weekly statistics for daily plans.

Key Concepts:
- Streak: consecutive local days, ending today or yesterday, whose plan review
  was completed. Today not yet reviewed does not break the streak.
- Weekly stats: Monday-Sunday window in the user's timezone over committed
  plans (confirmed, review pending, reviewed).
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from src.core.local_days import day_key, iso_week_bounds, shift_local_day, today
from src.core.logging import span
from src.domain.plan import ACTIVE_PLAN_STATUSES
from src.domain.task import Task, TaskStatus
from src.models.service_models import AreaWeeklyStat, TaskStatusSummary, WeeklyStats
from src.modules.planning import store
from src.services import user_service


logger = logging.getLogger(__name__)

_STREAK_PAGE_SIZE = 31


def _round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def completion_percent(done: int, total: int) -> int:
    """Whole-number share of done tasks, halves rounded up (1/8 -> 13)."""
    if not total:
        return 0
    return int(_round_half_up(Decimal(done * 100) / Decimal(total)))


def average_per_day(total: int, days: int) -> float:
    """Tasks per planned day to one decimal, halves rounded up."""
    if not days:
        return 0.0
    return float(_round_half_up(Decimal(total) / Decimal(days), "0.1"))


async def calculate_streak(*, user_id: str, tz: ZoneInfo, now: datetime | None = None) -> int:
    """Count consecutive reviewed days ending today (or yesterday).

    Reviewed days are read newest first in pages and the walk stops at the
    first missing day, so the cost is proportional to the streak length.
    """
    with span("analytics.calculate_streak"):
        current_day = today(tz, now)
        cursor = current_day
        streak = 0
        first_page = True

        while True:
            days = await store.list_reviewed_days(user_id=user_id, on_or_before=cursor, limit=_STREAK_PAGE_SIZE)
            if not days:
                break

            if first_page:
                first_page = False
                if days[0] != current_day:
                    cursor = shift_local_day(current_day, tz, -1)

            for reviewed_day in days:
                if reviewed_day != cursor:
                    logger.debug("Streak ended", extra={"user_id": user_id, "streak": streak})
                    return streak
                streak += 1
                cursor = shift_local_day(cursor, tz, -1)

            if len(days) < _STREAK_PAGE_SIZE:
                break

        return streak


def summarize_task_statuses(tasks: list[Task]) -> TaskStatusSummary:
    """Count a plan's tasks per status."""
    counts = {status: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] += 1
    return TaskStatusSummary(
        total=len(tasks),
        pending=counts[TaskStatus.PENDING],
        done=counts[TaskStatus.DONE],
        in_progress=counts[TaskStatus.IN_PROGRESS],
        skipped=counts[TaskStatus.SKIPPED],
    )


async def get_weekly_stats(*, user_id: str, tz: ZoneInfo, reference: datetime | None = None) -> WeeklyStats:
    """Aggregate a user's committed plans for the ISO week containing ``reference``.

    Args:
        user_id: User to aggregate
        tz: User's timezone; the week is Monday-Sunday in local days
        reference: Instant inside the week (default: now)

    Returns:
        WeeklyStats with totals, completion rate and per-area breakdown
    """
    with span("analytics.get_weekly_stats"):
        week_start, week_end = iso_week_bounds(reference or datetime.now(tz), tz)
        plans = await store.list_plans_between(
            user_id=user_id,
            start=week_start,
            end=week_end,
            statuses=ACTIVE_PLAN_STATUSES,
        )

        total = 0
        done = 0
        area_totals: dict[str, list[int]] = {}
        for plan in plans:
            for task in plan.tasks:
                total += 1
                is_done = task.status == TaskStatus.DONE
                if is_done:
                    done += 1
                if task.area_id:
                    bucket = area_totals.setdefault(task.area_id, [0, 0])
                    bucket[0] += 1
                    bucket[1] += int(is_done)

        areas: list[AreaWeeklyStat] = []
        if area_totals:
            known_areas = {area.id: area for area in await user_service.list_areas(user_id=user_id)}
            for area_id, (area_total, area_done) in area_totals.items():
                area = known_areas.get(area_id)
                if area is None:
                    continue
                areas.append(
                    AreaWeeklyStat(area_id=area_id, title=area.title, emoji=area.emoji, total=area_total, done=area_done)
                )
            areas.sort(key=lambda stat: stat.total, reverse=True)

        days_planned = len(plans)
        stats = WeeklyStats(
            week_start=week_start,
            week_end=week_end,
            days_planned=days_planned,
            total_tasks=total,
            done_tasks=done,
            completion_rate=completion_percent(done, total),
            avg_tasks_per_day=average_per_day(total, days_planned),
            areas=areas,
        )

        logger.info(
            "Computed weekly stats",
            extra={"user_id": user_id, "week_start": day_key(week_start), "total": total, "done": done},
        )
        return stats
