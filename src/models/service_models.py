"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
rows and aggregates into typed objects with validation.
"""

from datetime import date

from pydantic import BaseModel, Field


class AreaWeeklyStat(BaseModel):
    """Task totals for one life area within a week."""

    area_id: str
    title: str
    emoji: str | None = None
    total: int
    done: int


class WeeklyStats(BaseModel):
    """Aggregated plan statistics for one ISO week (Monday to Sunday)."""

    week_start: date
    week_end: date
    days_planned: int
    total_tasks: int
    done_tasks: int
    completion_rate: int = Field(..., ge=0, le=100, description="Whole-number percentage")
    avg_tasks_per_day: float
    areas: list[AreaWeeklyStat] = Field(default_factory=list)


class TaskStatusSummary(BaseModel):
    """Task counts per status for one plan."""

    total: int = 0
    pending: int = 0
    done: int = 0
    in_progress: int = 0
    skipped: int = 0

    @property
    def remaining(self) -> int:
        """Tasks that are neither done nor skipped."""
        return self.pending + self.in_progress


class UserFailure(BaseModel):
    """A user whose evaluation raised during a notification sweep."""

    user_id: str
    error: str


class SweepResult(BaseModel):
    """Outcome of one notification sweep over all onboarded users."""

    users_total: int = 0
    users_processed: int = 0
    users_skipped: int = 0
    messages_sent: int = 0
    failures: list[UserFailure] = Field(default_factory=list)
