"""Daily plan domain models and enums."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.task import Task


class PlanStatus(StrEnum):
    """Daily plan lifecycle state."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    REVIEW_PENDING = "review_pending"
    REVIEWED = "reviewed"


class PlanSource(StrEnum):
    """How a plan was created."""

    MANUAL = "manual"
    CARRY_OVER = "carry_over"


# Plans that count as "the user committed to this day"
ACTIVE_PLAN_STATUSES: frozenset[PlanStatus] = frozenset(
    {PlanStatus.CONFIRMED, PlanStatus.REVIEW_PENDING, PlanStatus.REVIEWED}
)


class Plan(BaseModel):
    """Daily plan data transfer object with its ordered tasks."""

    id: str = Field(..., description="Unique plan ID")
    user_id: str = Field(..., description="Owning user ID")
    local_day: date = Field(..., description="Calendar day in the user's timezone")
    status: PlanStatus = Field(default=PlanStatus.DRAFT, description="Current lifecycle state")
    source: str | None = Field(default=None, description="Creation source tag")
    confirmed_at: datetime | None = Field(default=None)
    review_started_at: datetime | None = Field(default=None)
    review_completed_at: datetime | None = Field(default=None)
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    tasks: list[Task] = Field(default_factory=list, description="Tasks ordered by position")

    @property
    def is_draft(self) -> bool:
        return self.status == PlanStatus.DRAFT

    @property
    def is_filled(self) -> bool:
        """A plan is filled once it is committed and has at least one task."""
        return not self.is_draft and len(self.tasks) > 0
