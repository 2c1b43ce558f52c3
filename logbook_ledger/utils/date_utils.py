"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone
from typing import Tuple


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given calendar month"""
    return calendar.monthrange(year, month)[1]


def previous_month(year: int, month: int) -> Tuple[int, int]:
    """(year, month) of the calendar month before the given one"""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, pulling day back to the month's last day when it overflows"""
    return date(year, month, min(day, days_in_month(year, month)))


def utc_now() -> datetime:
    """Timezone-aware current time in UTC"""
    return datetime.now(timezone.utc)
