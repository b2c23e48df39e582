from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CapacityConfigIn(CamelModel):
    active_workers: int = Field(..., ge=1, le=9999)
    hours_per_day: Decimal = Field(..., gt=0, le=24, decimal_places=2)


class CapacityConfigOut(CamelModel):
    active_workers: int
    hours_per_day: float | None = None
    monthly_capacity_minutes: int
    current_occupancy_percent: int = 0
    product_types: list[str] = []
    specialties: list[str] = []


class CalendarOrderOut(CamelModel):
    id: str
    display_id: str
    product_name: str
    quantity: int
    status: str


class DayLedgerOut(CamelModel):
    date: dt.date
    day_of_week: int
    is_weekend: bool
    total_capacity_minutes: int
    allocated_minutes: int
    available_minutes: int
    orders: list[CalendarOrderOut] = []


class AcceptOrderIn(CamelModel):
    order_id: str = Field(..., min_length=1, max_length=36)
    avg_time_per_piece: Decimal = Field(..., ge=Decimal("0.1"))
    planned_start_date: dt.date


class CommittedOrderOut(CamelModel):
    id: str
    display_id: str
    brand_id: str
    supplier_id: str | None = None
    status: str
    assignment_type: str
    product_name: str
    quantity: int
    avg_time_per_piece: float | None = None
    total_production_minutes: int | None = None
    planned_start_date: dt.date | None = None
    planned_end_date: dt.date | None = None
    accepted_at: dt.datetime | None = None
    accepted_by: str | None = None
