from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from supplyhub.core.errors import ValidationError
from supplyhub.db.models.capacity import SupplierProfile
from supplyhub.services.capacity.policy import CapacityPolicy
from supplyhub.services.capacity.units import daily_capacity_minutes, monthly_capacity_minutes, round_to_hundredths, to_decimal

logger = logging.getLogger(__name__)

MIN_WORKERS = 1
MAX_WORKERS = 9999
MAX_HOURS_PER_DAY = Decimal("24")


@dataclass(frozen=True)
class CapacityProfile:
    supplier_id: str
    active_workers: int = 0
    hours_per_day: Decimal | None = None
    monthly_capacity: int = 0
    current_occupancy: int = 0
    product_types: list[str] = field(default_factory=list)
    specialties: list[str] = field(default_factory=list)
    configured: bool = False

    def daily_capacity_minutes(self, default_hours: Decimal) -> Decimal:
        hours = self.hours_per_day if self.hours_per_day is not None else default_hours
        return daily_capacity_minutes(self.active_workers, hours)

    @classmethod
    def from_row(cls, row: SupplierProfile) -> "CapacityProfile":
        return cls(
            supplier_id=row.company_id,
            active_workers=row.active_workers or 0,
            hours_per_day=to_decimal(row.hours_per_day) if row.hours_per_day is not None else None,
            monthly_capacity=row.monthly_capacity or 0,
            current_occupancy=row.current_occupancy or 0,
            product_types=list(row.product_types or []),
            specialties=list(row.specialties or []),
            configured=row.active_workers is not None,
        )


def validate_workforce(workers, hours_per_day) -> tuple[int, Decimal]:
    if isinstance(workers, bool) or not isinstance(workers, int):
        raise ValidationError("activeWorkers must be an integer", field="activeWorkers")
    if not MIN_WORKERS <= workers <= MAX_WORKERS:
        raise ValidationError(
            f"activeWorkers must be between {MIN_WORKERS} and {MAX_WORKERS}", field="activeWorkers"
        )
    try:
        hours = to_decimal(hours_per_day)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("hoursPerDay must be a number", field="hoursPerDay")
    if not hours.is_finite():
        raise ValidationError("hoursPerDay must be a number", field="hoursPerDay")
    # Derived capacity is computed from the value as stored.
    hours = round_to_hundredths(hours)
    if hours <= 0 or hours > MAX_HOURS_PER_DAY:
        raise ValidationError("hoursPerDay must be greater than 0 and at most 24", field="hoursPerDay")
    return workers, hours


class CapacityProfileStore:
    """Per-supplier workforce configuration and the monthly capacity derived from it."""

    def __init__(self, db: Session, policy: CapacityPolicy | None = None) -> None:
        self.db = db
        self.policy = policy or CapacityPolicy()

    def _row(self, supplier_id: str) -> SupplierProfile | None:
        return self.db.query(SupplierProfile).filter(SupplierProfile.company_id == supplier_id).first()

    def get(self, supplier_id: str) -> CapacityProfile:
        row = self._row(supplier_id)
        if row is None:
            return CapacityProfile(supplier_id=supplier_id)
        return CapacityProfile.from_row(row)

    def set(self, supplier_id: str, workers: int, hours_per_day, *, actor: str = "system") -> CapacityProfile:
        workers, hours = validate_workforce(workers, hours_per_day)
        monthly = monthly_capacity_minutes(workers, hours, self.policy.working_days_per_month)

        row = self._row(supplier_id)
        if row is None:
            row = SupplierProfile(company_id=supplier_id, product_types=[], specialties=[])
            self.db.add(row)
        previous = (row.active_workers, row.hours_per_day)
        row.active_workers = workers
        row.hours_per_day = hours
        row.monthly_capacity = monthly

        self.db.commit()
        self.db.refresh(row)
        logger.info(
            "capacity profile for %s set by %s: %s workers x %s h (%s min/month), was %s x %s",
            supplier_id,
            actor,
            workers,
            hours,
            monthly,
            *previous,
        )
        return CapacityProfile.from_row(row)
