"""Calendar arithmetic for recurring report schedules.

Weekdays follow the 0=Sunday ... 6=Saturday convention used by report
configs.  Monthly slots clamp to the last day of shorter months, so day 31
runs on April 30 and on February 28/29.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from partnerhub.common.enums import ReportPeriod
from partnerhub.common.exceptions import InvalidRangeError

_SEND_TIME = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_send_time(value: str) -> time:
    match = _SEND_TIME.match(value or "")
    if not match:
        raise InvalidRangeError(f"Invalid send time '{value}', expected HH:mm")
    return time(int(match.group(1)), int(match.group(2)))


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidRangeError(f"Unknown timezone '{name}'") from e


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, days_in_month(year, month)))


def shift_months(value: datetime, months: int) -> datetime:
    """Move ``value`` by whole calendar months, clamping the day."""
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return value.replace(year=year, month=month, day=min(value.day, days_in_month(year, month)))


def sunday_based_weekday(value: date) -> int:
    return (value.weekday() + 1) % 7


def next_weekly_occurrence(now: datetime, day_of_week: int, send_time: time) -> datetime:
    """Next ``day_of_week`` at ``send_time`` strictly after ``now``.

    Today only qualifies when it is the target weekday and the send time
    has not yet passed; otherwise the run rolls forward up to a week.
    """
    days_ahead = (day_of_week - sunday_based_weekday(now.date())) % 7
    target = now.date() + timedelta(days=days_ahead)
    candidate = datetime.combine(target, send_time, tzinfo=now.tzinfo)
    if candidate <= now:
        candidate = datetime.combine(target + timedelta(days=7), send_time, tzinfo=now.tzinfo)
    return candidate


def next_monthly_occurrence(now: datetime, day_of_month: int, send_time: time) -> datetime:
    """Next ``day_of_month`` (clamped to month length) at ``send_time`` after ``now``."""
    candidate = datetime.combine(
        clamped_date(now.year, now.month, day_of_month), send_time, tzinfo=now.tzinfo
    )
    if candidate <= now:
        year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
        candidate = datetime.combine(
            clamped_date(year, month, day_of_month), send_time, tzinfo=now.tzinfo
        )
    return candidate


def validate_schedule(
    period: ReportPeriod, day_of_week: int | None, day_of_month: int | None
) -> None:
    if period == ReportPeriod.WEEKLY:
        if day_of_week is None:
            raise InvalidRangeError("Weekly schedules require day_of_week")
        if not 0 <= day_of_week <= 6:
            raise InvalidRangeError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    elif period == ReportPeriod.MONTHLY:
        if day_of_month is None:
            raise InvalidRangeError("Monthly schedules require day_of_month")
        if not 1 <= day_of_month <= 31:
            raise InvalidRangeError("day_of_month must be between 1 and 31")
    else:
        raise InvalidRangeError(f"Unsupported schedule period '{period}'")


def compute_next_run(
    period: ReportPeriod,
    day_of_week: int | None,
    day_of_month: int | None,
    send_time: str,
    now: datetime,
    tz_name: str = "UTC",
) -> datetime:
    """Next execution instant in UTC; slots are evaluated in ``tz_name``."""
    validate_schedule(period, day_of_week, day_of_month)
    slot = parse_send_time(send_time)
    local_now = now.astimezone(get_zone(tz_name))

    if period == ReportPeriod.WEEKLY:
        local_next = next_weekly_occurrence(local_now, day_of_week, slot)
    else:
        local_next = next_monthly_occurrence(local_now, day_of_month, slot)
    return local_next.astimezone(timezone.utc)
