"""Local calendar-day arithmetic.

Every plan is keyed by the calendar day as experienced in the user's IANA
timezone. All conversions between absolute instants and local days go through
this module, so no other code compares raw instants to decide "which day".

Local days are plain ``datetime.date`` values; their ISO form (YYYY-MM-DD) is
the storage key.
"""

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.core.errors import ConfigurationError, InvalidTimezoneError


_TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

LOCAL_NOON = time(12, 0)


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Resolve an IANA timezone name.

    Raises:
        InvalidTimezoneError: If the name is empty or not a known zone
    """
    if not name or not name.strip():
        raise InvalidTimezoneError("Timezone is not set")

    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(f"Unknown timezone: {name!r}") from e


def _as_aware(instant: datetime) -> datetime:
    # Naive instants are UTC by convention across the codebase
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant


def local_now(tz: ZoneInfo, now: datetime | None = None) -> datetime:
    """Return the wall-clock time in ``tz`` for ``now`` (default: current time)."""
    instant = _as_aware(now) if now is not None else datetime.now(UTC)
    return instant.astimezone(tz)


def local_day(instant: datetime, tz: ZoneInfo) -> date:
    """Return the local calendar day containing ``instant``."""
    return _as_aware(instant).astimezone(tz).date()


def today(tz: ZoneInfo, now: datetime | None = None) -> date:
    """Return today's local day in ``tz``."""
    return local_now(tz, now).date()


def shift_local_day(day: date, tz: ZoneInfo, delta_days: int) -> date:
    """Move a local day by ``delta_days`` calendar days.

    The shift is anchored at local noon and applied in absolute time, then the
    local day is derived again. A 23h or 25h DST day moves noon by at most one
    hour, which never crosses a day boundary.
    """
    noon_utc = datetime.combine(day, LOCAL_NOON, tzinfo=tz).astimezone(UTC)
    shifted = noon_utc + timedelta(days=delta_days)
    return shifted.astimezone(tz).date()


def local_day_start(day: date, tz: ZoneInfo) -> datetime:
    """Return the UTC instant at which local ``day`` begins in ``tz``."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(UTC)


def day_key(day: date) -> str:
    """Canonical storage key for a local day."""
    return day.isoformat()


def parse_day_key(key: str) -> date:
    """Inverse of :func:`day_key`."""
    return date.fromisoformat(key)


def iso_week_bounds(instant: datetime, tz: ZoneInfo) -> tuple[date, date]:
    """Return the Monday and Sunday of the ISO week containing ``instant`` in ``tz``."""
    current = local_day(instant, tz)
    iso_weekday = current.isoweekday()  # 1 = Monday, 7 = Sunday
    monday = shift_local_day(current, tz, -(iso_weekday - 1))
    sunday = shift_local_day(current, tz, 7 - iso_weekday)
    return monday, sunday


def parse_time_of_day(value: str | None) -> time:
    """Parse a strict ``HH:MM`` wall-clock time.

    Raises:
        ConfigurationError: If the value is missing or malformed
    """
    if value is None:
        raise ConfigurationError("Time of day is not set")

    match = _TIME_OF_DAY_PATTERN.match(value.strip())
    if not match:
        raise ConfigurationError(f"Invalid time of day: {value!r} (expected HH:MM)")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:  # noqa: PLR2004
        raise ConfigurationError(f"Invalid time of day: {value!r} (out of range)")

    return time(hour, minute)


def format_time_of_day(value: time) -> str:
    """Render a time as zero-padded ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"
