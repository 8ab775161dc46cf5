"""In-memory dedup ledger for scheduled notifications.

A trigger fires at most once per (user, trigger type, slot), where the slot is
the local day plus the configured HH:MM time. The ledger lives in process
memory only: a restart may repeat at most one notification per open window.
"""

import logging
import threading
from datetime import UTC, date, datetime, time, timedelta

from src.core.config import Constants
from src.core.local_days import day_key, format_time_of_day


logger = logging.getLogger(__name__)


def make_slot(day: date, at: time) -> str:
    """Build the slot component of a ledger key: ``YYYY-MM-DD:HH:MM``."""
    return f"{day_key(day)}:{format_time_of_day(at)}"


def make_key(user_id: str, trigger_type: str, slot: str) -> str:
    """Build a ledger key."""
    return f"{user_id}:{trigger_type}:{slot}"


class NotificationLedger:
    """Thread-safe record of which notifications were already sent."""

    def __init__(self, ttl: timedelta | None = None) -> None:
        self._ttl = ttl or timedelta(hours=Constants.NOTIFICATION_DEDUP_TTL_HOURS)
        self._sent: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def was_sent(self, user_id: str, trigger_type: str, slot: str) -> bool:
        """Return True if this trigger already fired for the slot."""
        with self._lock:
            return make_key(user_id, trigger_type, slot) in self._sent

    def mark_sent(self, user_id: str, trigger_type: str, slot: str, now: datetime | None = None) -> None:
        """Record a fired trigger and evict entries older than the TTL."""
        sent_at = now or datetime.now(UTC)
        with self._lock:
            self._sent[make_key(user_id, trigger_type, slot)] = sent_at
            self._evict_locked(sent_at)

    def evict_expired(self, now: datetime | None = None) -> int:
        """Drop entries older than the TTL.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._evict_locked(now or datetime.now(UTC))

    def clear(self) -> None:
        with self._lock:
            self._sent.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sent)

    def _evict_locked(self, now: datetime) -> int:
        cutoff = now - self._ttl
        expired = [key for key, sent_at in self._sent.items() if sent_at < cutoff]
        for key in expired:
            del self._sent[key]
        if expired:
            logger.debug("Evicted notification ledger entries", extra={"count": len(expired)})
        return len(expired)


# Global ledger shared by the scheduler jobs
notification_ledger = NotificationLedger()
