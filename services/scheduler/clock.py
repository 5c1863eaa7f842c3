"""
Replaceable time sources for the trigger scheduler.

All instants are timezone-aware UTC datetimes.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Union


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """A clock that only moves when told to. Used to make timing deterministic."""

    def __init__(self, initial: Optional[datetime] = None):
        self._current = ensure_utc(initial) if initial else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set(self, instant: datetime) -> None:
        self._current = ensure_utc(instant)

    def advance(self, delta: Union[timedelta, float, int]) -> datetime:
        """Move the clock forward by a timedelta or a number of seconds."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        self._current = self._current + delta
        return self._current


def ensure_utc(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def format_instant(instant: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    return ensure_utc(instant).isoformat(timespec="milliseconds").replace("+00:00", "Z")


system_clock = SystemClock()
