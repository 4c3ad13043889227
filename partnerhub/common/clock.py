"""Injectable time source.

Timeline risk, overdue detection and report scheduling all depend on "now".
Services take a ``Clock`` so tests can pin time with ``FixedClock``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    def __init__(self, at: datetime):
        self._at = ensure_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance_to(self, at: datetime) -> None:
        self._at = ensure_utc(at)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


system_clock = SystemClock()


def start_of_day(value: date) -> datetime:
    """Midnight UTC at the start of ``value``."""
    return datetime.combine(value, time.min, tzinfo=timezone.utc)
