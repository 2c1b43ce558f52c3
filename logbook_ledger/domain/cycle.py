"""Billing cycle resolution - maps a start day and a reference date to the current period"""

from datetime import date, datetime
from typing import Any

from logbook_ledger.domain.exceptions import InvalidCycleDay
from logbook_ledger.domain.models import BillingCycle
from logbook_ledger.utils.date_utils import clamped_date, days_in_month, previous_month

MIN_CYCLE_DAY = 1
MAX_CYCLE_DAY = 31


def validate_cycle_day(start_day: Any) -> int:
    """
    Check that start_day is a usable cycle start day.

    Raises:
        InvalidCycleDay: When start_day is missing, not an integer, or outside 1..31
    """
    # bool is an int subclass; True would silently mean day 1
    if start_day is None or isinstance(start_day, bool) or not isinstance(start_day, int):
        raise InvalidCycleDay(f"Cycle start day must be an integer, got {start_day!r}")
    if not MIN_CYCLE_DAY <= start_day <= MAX_CYCLE_DAY:
        raise InvalidCycleDay(
            f"Cycle start day must be between {MIN_CYCLE_DAY} and {MAX_CYCLE_DAY}, got {start_day}"
        )
    return start_day


def resolve_billing_cycle(start_day: Any, reference_date: date) -> BillingCycle:
    """
    Compute the billing period that contains reference_date.

    A cycle boundary falls on start_day of every month, pulled back to the
    month's last day when the month is shorter (day 31 becomes Feb 28/29).
    If this month's boundary is still ahead of reference_date the period
    started at last month's boundary; otherwise at this month's. The period
    always ends on reference_date itself.

    Args:
        start_day: Configured cycle start day (1..31)
        reference_date: "Today"; a datetime is reduced to its date

    Returns:
        BillingCycle with inclusive period_start..period_end

    Examples:
        start_day=25, reference_date=2024-03-10 -> 2024-02-25..2024-03-10
        start_day=5,  reference_date=2024-03-10 -> 2024-03-05..2024-03-10
        start_day=31, reference_date=2024-03-10 -> 2024-02-29..2024-03-10
    """
    start_day = validate_cycle_day(start_day)
    today = reference_date.date() if isinstance(reference_date, datetime) else reference_date

    boundary_this_month = min(start_day, days_in_month(today.year, today.month))
    if boundary_this_month > today.day:
        year, month = previous_month(today.year, today.month)
        period_start = clamped_date(year, month, start_day)
    else:
        period_start = date(today.year, today.month, boundary_this_month)

    return BillingCycle(start_day=start_day, period_start=period_start, period_end=today)
