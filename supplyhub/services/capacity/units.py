from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

MINUTES_PER_HOUR = 60
HUNDREDTHS = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 2.1 as 2.1 instead of its binary float expansion
    return Decimal(str(value))


def round_half_up(value) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_to_hundredths(value) -> Decimal:
    """Round to the two decimal places the Numeric(.., 2) columns store."""
    return to_decimal(value).quantize(HUNDREDTHS, rounding=ROUND_HALF_UP)


def daily_capacity_minutes(workers, hours_per_day) -> Decimal:
    return to_decimal(workers) * to_decimal(hours_per_day) * MINUTES_PER_HOUR


def monthly_capacity_minutes(workers, hours_per_day, working_days: int = 22) -> int:
    return round_half_up(daily_capacity_minutes(workers, hours_per_day) * working_days)
