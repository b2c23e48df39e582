from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal


def _env_decimal(name: str, default: str) -> Decimal:
    return Decimal(os.getenv(name, default))


@dataclass(frozen=True)
class CapacityPolicy:
    """Tunable assumptions of the capacity model.

    default_minutes_per_piece estimates orders that never recorded a
    per-piece time. fallback_workers / fallback_hours_per_day let a supplier
    without a configured profile still accept orders. working_days_per_month
    scales the monthly capacity figure; 22 is the marketplace convention.
    """

    default_minutes_per_piece: Decimal = Decimal("15")
    working_days_per_month: int = 22
    fallback_workers: int = 1
    fallback_hours_per_day: Decimal = Decimal("8")
    calendar_default_hours_per_day: Decimal = Decimal("8")

    @classmethod
    def from_env(cls) -> "CapacityPolicy":
        return cls(
            default_minutes_per_piece=_env_decimal("CAPACITY_DEFAULT_MINUTES_PER_PIECE", "15"),
            working_days_per_month=int(os.getenv("CAPACITY_WORKING_DAYS_PER_MONTH", "22")),
            fallback_workers=int(os.getenv("CAPACITY_FALLBACK_WORKERS", "1")),
            fallback_hours_per_day=_env_decimal("CAPACITY_FALLBACK_HOURS_PER_DAY", "8"),
            calendar_default_hours_per_day=_env_decimal("CAPACITY_CALENDAR_DEFAULT_HOURS_PER_DAY", "8"),
        )
