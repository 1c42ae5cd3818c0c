"""
Injectable wall clock.

The cancellation window and the "flight already departed" rule depend on the
current time. Services take a ``Clock`` argument instead of calling
``datetime.now`` so tests can pin or advance time deterministically.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, current: datetime):
        self._current = as_utc(current)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = as_utc(current)

    def advance(self, delta: timedelta) -> None:
        self._current = self._current + delta


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests."""
    return _system_clock
