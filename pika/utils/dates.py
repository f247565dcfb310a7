"""
Calendar helpers on naive local datetimes.

All planner arithmetic is wall-clock local time; nothing here attaches a
timezone. Due dates are date-only strings anchored to the last millisecond
of their day so that "due today" still compares as upcoming until midnight.
"""

import calendar
import re
from datetime import datetime, timedelta

from pika.errors import InvalidDueDateError


ONE_DAY = timedelta(days=1)

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def add_days(dt: datetime, days: int) -> datetime:
    return dt + timedelta(days=days)


def is_same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()


def parse_iso_date_only(value: str) -> datetime:
    """
    Parse ``YYYY-MM-DD`` into local end-of-day (23:59:59.999).

    Raises:
        InvalidDueDateError: if the string is not a real calendar date
    """
    match = _ISO_DATE_RE.match((value or "").strip())
    if not match:
        raise InvalidDueDateError(value)
    year, month, day = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, 23, 59, 59, 999000)
    except ValueError:
        raise InvalidDueDateError(value) from None


def is_iso_date_only(value: str) -> bool:
    try:
        parse_iso_date_only(value)
    except InvalidDueDateError:
        return False
    return True


def weekday_index(dt: datetime) -> int:
    """Weekday with 0=Sunday .. 6=Saturday."""
    return (dt.weekday() + 1) % 7


def format_dhm(delta: timedelta) -> str:
    """Countdown as D:HH:MM, clamped at zero."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    total_hours, minutes = divmod(total_minutes, 60)
    days, hours = divmod(total_hours, 24)
    return f"{days}:{hours:02d}:{minutes:02d}"


def format_local(dt: datetime) -> str:
    """Floating local timestamp, e.g. 20261019T180000."""
    return dt.strftime("%Y%m%dT%H%M%S")


def epoch_millis(dt: datetime) -> int:
    # Wall-clock value read as UTC so the result does not depend on the host zone
    return calendar.timegm(dt.timetuple()) * 1000 + dt.microsecond // 1000
