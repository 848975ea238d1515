"""Clock capability used for "today" decisions.

Services never call ``date.today()`` directly; they receive a clock so the
future-date and backdating checks stay deterministic under test.
"""

from datetime import date, datetime, timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from stockledger.core.config import settings


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall clock in the configured business timezone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz_name = tz_name or settings.timezone
        self.tz = ZoneInfo(self.tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock pinned to a given date (tests, replays)."""

    def __init__(self, today: date, tz_name: str = "UTC"):
        self._today = today
        self.tz_name = tz_name

    def now(self) -> datetime:
        return datetime(self._today.year, self._today.month, self._today.day, 12, tzinfo=timezone.utc)

    def today(self) -> date:
        return self._today


_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return _clock
