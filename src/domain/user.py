"""User and area domain models.

Users and areas are owned by the settings and account collaborators; the
planning core only reads them.
"""

import json
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from src.core.config import Constants


# Constants for validation
MAX_NAME_LENGTH = 50


class Language(StrEnum):
    """Supported interface languages."""

    EN = "en"
    RU = "ru"


class User(BaseModel):
    """User data transfer object with notification settings."""

    id: str = Field(..., description="Unique user ID")
    chat_id: int = Field(..., description="Chat transport address (Telegram chat ID)")
    name: str = Field(default="", description="Display name of the user")
    timezone: str = Field(..., description="IANA timezone name")
    language: Language = Field(default=Language.EN, description="Interface language")
    morning_plan_time: str | None = Field(default=Constants.DEFAULT_MORNING_PLAN_TIME)
    evening_review_time: str | None = Field(default=Constants.DEFAULT_EVENING_REVIEW_TIME)
    daily_reminders_times: list[str] = Field(
        default_factory=lambda: [Constants.DEFAULT_DAILY_REMINDER_TIME],
        description="Mid-day reminder times (HH:MM), 1-3 entries",
    )
    daily_reminders_count: int = Field(default=1, ge=0, le=Constants.MAX_DAILY_REMINDERS)
    onboarded: bool = Field(default=False)

    @field_validator("daily_reminders_times", mode="before")
    @classmethod
    def parse_reminder_times(cls, v: str | list[str] | None) -> list[str]:
        """Accept the JSON-encoded column value as stored in SQLite."""
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError:
                return []
            if not isinstance(parsed, list):
                return []
            return [item for item in parsed if isinstance(item, str)]
        return v

    @field_validator("name")
    @classmethod
    def validate_name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")
        return v


class Area(BaseModel):
    """A user-defined life area that tasks may be linked to."""

    id: str
    user_id: str
    title: str
    emoji: str | None = None
    archived: bool = False
