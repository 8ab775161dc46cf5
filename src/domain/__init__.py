"""Domain models and DTOs."""

from src.domain.plan import ACTIVE_PLAN_STATUSES, Plan, PlanSource, PlanStatus
from src.domain.task import CLOSED_TASK_STATUSES, Task, TaskStatus
from src.domain.user import Area, Language, User


__all__ = [
    "ACTIVE_PLAN_STATUSES",
    "CLOSED_TASK_STATUSES",
    "Area",
    "Language",
    "Plan",
    "PlanSource",
    "PlanStatus",
    "Task",
    "TaskStatus",
    "User",
]
