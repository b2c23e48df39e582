from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from supplyhub.core.errors import ValidationError
from supplyhub.db.models.orders import Order, OrderStatus
from supplyhub.services.capacity.policy import CapacityPolicy
from supplyhub.services.capacity.profiles import CapacityProfileStore
from supplyhub.services.capacity.units import round_half_up, to_decimal
from supplyhub.services.capacity.working_days import is_weekend

MIN_YEAR = 2020
MAX_YEAR = 2100

# Only orders on the shop floor consume calendar capacity.
PRODUCTION_STATUSES = (OrderStatus.IN_PRODUCTION,)


@dataclass(frozen=True)
class OrderRef:
    id: str
    display_id: str
    product_name: str
    quantity: int
    status: OrderStatus


@dataclass
class DayLedger:
    date: date
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    is_weekend: bool
    total_capacity_minutes: int
    allocated_minutes: int
    available_minutes: int
    orders: list[OrderRef] = field(default_factory=list)


@dataclass(frozen=True)
class OrderLoad:
    """An order's production minutes spread evenly over a date window."""

    order: OrderRef
    start: date
    end: date
    daily_minutes: Decimal

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


def estimate_production_minutes(order: Order, default_minutes_per_piece: Decimal) -> int:
    if order.total_production_minutes:
        return order.total_production_minutes
    return round_half_up(to_decimal(order.quantity) * default_minutes_per_piece)


def order_load(order: Order, month_start: date, month_end: date, default_minutes_per_piece: Decimal) -> OrderLoad:
    total = Decimal(estimate_production_minutes(order, default_minutes_per_piece))
    ref = OrderRef(
        id=order.id,
        display_id=order.display_id,
        product_name=order.product_name,
        quantity=order.quantity,
        status=order.status,
    )
    if order.planned_start_date and order.planned_end_date:
        start, end = order.planned_start_date, order.planned_end_date
        days = max(1, (end - start).days + 1)
        return OrderLoad(order=ref, start=start, end=end, daily_minutes=total / days)
    # Unscheduled orders are assumed to run across the whole queried month.
    days_in_month = (month_end - month_start).days + 1
    return OrderLoad(order=ref, start=month_start, end=month_end, daily_minutes=total / days_in_month)


def _js_day_of_week(day: date) -> int:
    return (day.weekday() + 1) % 7


def build_ledger(
    year: int,
    month: int,
    daily_capacity: Decimal,
    loads: list[OrderLoad],
) -> list[DayLedger]:
    """Pure day-by-day ledger for one month."""
    days_in_month = calendar.monthrange(year, month)[1]
    month_start = date(year, month, 1)
    capacity = round_half_up(daily_capacity)

    ledger: list[DayLedger] = []
    for offset in range(days_in_month):
        day = month_start + timedelta(days=offset)
        weekend = is_weekend(day)
        total = 0 if weekend else capacity

        allocated = Decimal(0)
        refs: list[OrderRef] = []
        for load in loads:
            if load.covers(day):
                allocated += load.daily_minutes
                refs.append(load.order)

        allocated_minutes = round_half_up(allocated)
        ledger.append(
            DayLedger(
                date=day,
                day_of_week=_js_day_of_week(day),
                is_weekend=weekend,
                total_capacity_minutes=total,
                allocated_minutes=allocated_minutes,
                available_minutes=max(0, total - allocated_minutes),
                orders=refs,
            )
        )
    return ledger


class CalendarProjector:
    """Projects a supplier's in-production orders onto a monthly capacity calendar.

    Read-only; recomputed from the current orders on every call.
    """

    def __init__(self, db: Session, policy: CapacityPolicy | None = None) -> None:
        self.db = db
        self.policy = policy or CapacityPolicy()
        self.profiles = CapacityProfileStore(db, self.policy)

    def _production_orders(self, supplier_id: str) -> list[Order]:
        return (
            self.db.query(Order)
            .filter(Order.supplier_id == supplier_id, Order.status.in_(PRODUCTION_STATUSES))
            .all()
        )

    def project(self, supplier_id: str, year: int, month: int) -> list[DayLedger]:
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}", field="year")
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12", field="month")

        profile = self.profiles.get(supplier_id)
        daily_capacity = profile.daily_capacity_minutes(self.policy.calendar_default_hours_per_day)

        month_start = date(year, month, 1)
        month_end = date(year, month, calendar.monthrange(year, month)[1])

        loads = [
            load
            for load in (
                order_load(o, month_start, month_end, self.policy.default_minutes_per_piece)
                for o in self._production_orders(supplier_id)
            )
            if load.start <= month_end and load.end >= month_start
        ]
        return build_ledger(year, month, daily_capacity, loads)
