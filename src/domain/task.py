"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    """Outcome of a task, set during the day or in the evening review."""

    PENDING = "pending"
    DONE = "done"
    IN_PROGRESS = "in_progress"  # Unfinished, candidate for carry-over
    SKIPPED = "skipped"


# Statuses that count as "nothing left to do" for reminders
CLOSED_TASK_STATUSES: frozenset[TaskStatus] = frozenset({TaskStatus.DONE, TaskStatus.SKIPPED})


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID")
    plan_id: str = Field(..., description="Owning plan ID")
    user_id: str = Field(..., description="Owning user ID")
    text: str = Field(..., description="Task text")
    position: int = Field(..., ge=1, description="1-based position inside the plan")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current task status")
    area_id: str | None = Field(default=None, description="Optional life area ID")
    carried_from_task_id: str | None = Field(
        default=None,
        description="ID of the task this one was carried over from (weak reference)",
    )
    status_updated_at: datetime | None = Field(default=None, description="When the status last changed")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @property
    def is_open(self) -> bool:
        """True while the task still needs attention today."""
        return self.status not in CLOSED_TASK_STATUSES
