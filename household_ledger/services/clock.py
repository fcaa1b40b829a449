"""
Clock Sources

Business logic never calls ``datetime.now()`` directly. Overdue aging,
projections and upcoming-bill windows all ask an injected Clock, so tests
can pin "today".
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from household_ledger.config import get_settings


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current instant, timezone-aware."""

    def today(self) -> date:
        """The household's local calendar date."""
        return self.now().date()


class SystemClock(Clock):
    """Wall clock in the household's configured timezone."""

    def __init__(self, tz: Optional[str] = None):
        self._tz = ZoneInfo(tz or get_settings().app.timezone)

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock(Clock):
    """A clock that always returns the same instant."""

    def __init__(self, instant):
        self._now = self._coerce(instant)

    @staticmethod
    def _coerce(instant) -> datetime:
        # A bare date means noon UTC on that day
        if isinstance(instant, datetime):
            return instant if instant.tzinfo else instant.replace(tzinfo=timezone.utc)
        return datetime(instant.year, instant.month, instant.day, 12, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, instant) -> None:
        """Move the clock (tests that span several days)."""
        self._now = self._coerce(instant)
