"""Calendar stepping shared by recurring tasks and recurring reminders.

All helpers are pure and accept either ``date`` or ``datetime`` values; the
time of day (and tzinfo) of a datetime is preserved.
"""
from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import TypeVar


D = TypeVar("D", bound=date)


def add_months(d: D, months: int) -> D:
    """Add months to a date with safe day clamping.

    Example: Jan 31 + 1 month -> Feb 28/29 (last day of month).
    """
    if months == 0:
        return d
    year = d.year + (d.month - 1 + months) // 12
    month = (d.month - 1 + months) % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return d.replace(year=year, month=month, day=min(d.day, last_day))


def add_years(d: D, years: int) -> D:
    # Feb 29 -> Feb 28 on non-leap years
    return add_months(d, 12 * years)


def _plus_days(days: int):
    return lambda d: d + timedelta(days=days)


def _plus_months(months: int):
    return lambda d: add_months(d, months)


# Recurrence kind -> one step forward.
STEPS = {
    "daily": _plus_days(1),
    "weekly": _plus_days(7),
    "monthly": _plus_months(1),
    "quarterly": _plus_months(3),
    "yearly": _plus_months(12),
}


def next_due_date(kind: str, from_date: D) -> D:
    """Return the next occurrence after ``from_date`` for a recurrence kind."""
    try:
        step = STEPS[str(kind)]
    except KeyError:
        raise ValueError(f"Unknown recurrence: {kind!r}") from None
    return step(from_date)


def first_on_or_after(kind: str, from_date: D, floor: D) -> D:
    """Step ``from_date`` forward until it is on or after ``floor``."""
    current = from_date
    while current < floor:
        current = next_due_date(kind, current)
    return current
