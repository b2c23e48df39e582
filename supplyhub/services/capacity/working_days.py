from __future__ import annotations

from datetime import date, timedelta

SATURDAY = 5
SUNDAY = 6


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def add_working_days(start: date, days: int) -> date:
    """Advance ``start`` by ``days`` business days, skipping Saturdays and Sundays.

    Walks one calendar day at a time and counts only Monday-Friday, so the
    result of any ``days >= 1`` is a weekday. ``days == 0`` returns ``start``
    unchanged, even when it falls on a weekend.
    """
    if days < 0:
        raise ValueError("days must be >= 0")
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if not is_weekend(result):
            added += 1
    return result
