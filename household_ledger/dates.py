"""
Month Key and Calendar Helpers

Every month-scoped record (bill instances, income, summaries) is partitioned
by a "month key": the first calendar day of the month.

All helpers here are pure functions of their arguments. Nothing in this
module reads the clock - "today" is always passed in by the caller.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def month_key(value: DateLike) -> date:
    """Normalize any date to the first day of its month."""
    d = _as_date(value)
    return date(d.year, d.month, 1)


def days_in_month(value: DateLike) -> int:
    d = _as_date(value)
    return calendar.monthrange(d.year, d.month)[1]


def month_end(value: DateLike) -> date:
    """Last calendar day of the month containing ``value``."""
    d = _as_date(value)
    return date(d.year, d.month, days_in_month(d))


def add_months(value: DateLike, months: int) -> date:
    """Shift a month key by ``months`` (negative values go back)."""
    d = month_key(value)
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def clamp_due_date(month: DateLike, due_day: int) -> date:
    """
    Materialize a template due day inside a concrete month.

    A due day past the end of the month lands on the month's last day,
    so day 31 becomes Feb 28 (or Feb 29 in a leap year).
    """
    start = month_key(month)
    day = min(due_day, days_in_month(start))
    return date(start.year, start.month, day)


def days_between(later: DateLike, earlier: DateLike) -> int:
    """Whole days from ``earlier`` to ``later`` (negative if reversed)."""
    return (_as_date(later) - _as_date(earlier)).days


def iter_month_days(month: DateLike):
    """Yield every date of the month in order."""
    start = month_key(month)
    for offset in range(days_in_month(start)):
        yield start + timedelta(days=offset)


def format_month(value: DateLike) -> str:
    """Human label, e.g. ``March 2024``."""
    return month_key(value).strftime("%B %Y")
