"""
Calendar helpers: day counts, month iteration, cadence stepping.

All functions take and return ``date`` objects.  Day differences are
computed on calendar days, which is what noon-normalising two
timestamps achieves: daylight-saving shifts never move a day boundary.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

from venue_kernel.domain.values import ScheduleCadence


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def month_bounds(month_key: str) -> tuple[date, date]:
    """First and last day of a ``YYYY-MM`` month key."""
    year, month = (int(part) for part in month_key.split("-")[:2])
    first = date(year, month, 1)
    return first, date(year, month, days_in_month(first))


def all_days_of_month(month_key: str) -> list[date]:
    first, last = month_bounds(month_key)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def as_date(value: date | datetime | str) -> date:
    """Calendar day of a date, datetime or ISO string (date or datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if "T" in text or " " in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text[:10])


def whole_days_between(start: date | datetime | str, end: date | datetime | str) -> int:
    """
    Whole days from ``start`` to ``end`` with both ends normalised to noon.

    Negative when ``end`` precedes ``start``.
    """
    return (as_date(end) - as_date(start)).days


def add_months(day: date, months: int) -> date:
    """Step ``months`` calendar months, clamping to the target month's end."""
    index = day.month - 1 + months
    year = day.year + index // 12
    month = index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def step_date(start: date, cadence: ScheduleCadence, steps: int) -> date:
    """Date ``steps`` cadence periods after ``start``."""
    match cadence:
        case ScheduleCadence.DAILY:
            return start + timedelta(days=steps)
        case ScheduleCadence.WEEKLY:
            return start + timedelta(weeks=steps)
        case ScheduleCadence.MONTHLY:
            return add_months(start, steps)
        case _:
            raise ValueError(f"Unknown schedule cadence: {cadence}")
