"""Configuration management for the daily planner."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="data/planner.db", description="Path to the SQLite database file")

    # Telegram Bot API Configuration
    telegram_bot_token: str | None = Field(default=None, description="Telegram bot token used for outbound messages")
    telegram_api_base_url: str = Field(default="https://api.telegram.org", description="Telegram Bot API base URL")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Users onboarded without an explicit timezone fall back to this one
    default_timezone: str = Field(default="UTC", description="IANA timezone assigned to new users")

    # Scheduler Configuration
    scheduler_max_workers: int = Field(
        default=8, ge=1, description="Maximum number of users evaluated concurrently per scheduler tick"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_SERVICE_UNAVAILABLE: int = 503

    # Rate Limiting
    MAX_REQUESTS_PER_MINUTE: int = 20  # Outbound messages per chat per minute

    # Planning
    MAX_TASKS_PER_DAY: int = 10
    MAX_TASK_TEXT_LENGTH: int = 200
    MAX_DAILY_REMINDERS: int = 3
    REMINDER_PREVIEW_LIMIT: int = 3  # Remaining tasks listed in a mid-day reminder

    # Default notification times (local wall clock, HH:MM)
    DEFAULT_MORNING_PLAN_TIME: str = "09:00"
    DEFAULT_EVENING_REVIEW_TIME: str = "21:00"
    DEFAULT_DAILY_REMINDER_TIME: str = "14:00"

    # Scheduler Configuration
    SCHEDULER_TICK_MINUTES: int = 5
    NOTIFICATION_WINDOW_MINUTES: int = 6  # One minute wider than the tick to absorb jitter
    NOTIFICATION_DEDUP_TTL_HOURS: int = 48

    # Job Tracker Configuration
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100
    TRACKER_CONSECUTIVE_FAILURE_THRESHOLD: int = 3

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
