from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from supplyhub.core.clock import Clock
from supplyhub.core.errors import CapacityError
from supplyhub.core.http import as_http_exception
from supplyhub.core.security import CompanyContext, require_supplier
from supplyhub.db.models.orders import Order
from supplyhub.db.session import get_db
from supplyhub.events.bus import EventSink
from supplyhub.services.capacity.acceptance import AcceptanceCoordinator
from supplyhub.services.capacity.deps import get_clock, get_event_sink, get_policy
from supplyhub.services.capacity.policy import CapacityPolicy
from supplyhub.services.capacity.profiles import CapacityProfile, CapacityProfileStore
from supplyhub.services.capacity.projector import CalendarProjector, DayLedger
from supplyhub.services.capacity.schemas import (
    AcceptOrderIn,
    CalendarOrderOut,
    CapacityConfigIn,
    CapacityConfigOut,
    CommittedOrderOut,
    DayLedgerOut,
)

router = APIRouter(prefix="/capacity", tags=["capacity"])


def _config_out(p: CapacityProfile) -> CapacityConfigOut:
    return CapacityConfigOut(
        active_workers=p.active_workers,
        hours_per_day=float(p.hours_per_day) if p.hours_per_day is not None else None,
        monthly_capacity_minutes=p.monthly_capacity,
        current_occupancy_percent=p.current_occupancy,
        product_types=p.product_types,
        specialties=p.specialties,
    )


def _day_out(d: DayLedger) -> DayLedgerOut:
    return DayLedgerOut(
        date=d.date,
        day_of_week=d.day_of_week,
        is_weekend=d.is_weekend,
        total_capacity_minutes=d.total_capacity_minutes,
        allocated_minutes=d.allocated_minutes,
        available_minutes=d.available_minutes,
        orders=[
            CalendarOrderOut(
                id=o.id,
                display_id=o.display_id,
                product_name=o.product_name,
                quantity=o.quantity,
                status=o.status.value,
            )
            for o in d.orders
        ],
    )


def committed_order_out(o: Order) -> CommittedOrderOut:
    return CommittedOrderOut(
        id=o.id,
        display_id=o.display_id,
        brand_id=o.brand_id,
        supplier_id=o.supplier_id,
        status=o.status.value,
        assignment_type=o.assignment_type.value,
        product_name=o.product_name,
        quantity=o.quantity,
        avg_time_per_piece=float(o.avg_time_per_piece) if o.avg_time_per_piece is not None else None,
        total_production_minutes=o.total_production_minutes,
        planned_start_date=o.planned_start_date,
        planned_end_date=o.planned_end_date,
        accepted_at=o.accepted_at,
        accepted_by=o.accepted_by,
    )


@router.get("/config", response_model=CapacityConfigOut)
def get_config(
    db: Session = Depends(get_db),
    supplier: CompanyContext = Depends(require_supplier),
    policy: CapacityPolicy = Depends(get_policy),
):
    return _config_out(CapacityProfileStore(db, policy).get(supplier.company_id))


@router.patch("/config", response_model=CapacityConfigOut)
def update_config(
    payload: CapacityConfigIn,
    db: Session = Depends(get_db),
    supplier: CompanyContext = Depends(require_supplier),
    policy: CapacityPolicy = Depends(get_policy),
):
    try:
        profile = CapacityProfileStore(db, policy).set(
            supplier.company_id,
            payload.active_workers,
            payload.hours_per_day,
            actor=supplier.user_id,
        )
    except CapacityError as e:
        raise as_http_exception(e)
    return _config_out(profile)


@router.get("/calendar", response_model=list[DayLedgerOut])
def get_calendar(
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    supplier: CompanyContext = Depends(require_supplier),
    policy: CapacityPolicy = Depends(get_policy),
):
    # The supplier always comes from the caller; there is no supplierId override.
    try:
        days = CalendarProjector(db, policy).project(supplier.company_id, year, month)
    except CapacityError as e:
        raise as_http_exception(e)
    return [_day_out(d) for d in days]


@router.post("/accept-order", response_model=CommittedOrderOut)
def accept_order(
    payload: AcceptOrderIn,
    db: Session = Depends(get_db),
    supplier: CompanyContext = Depends(require_supplier),
    policy: CapacityPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
    publish: EventSink = Depends(get_event_sink),
):
    coordinator = AcceptanceCoordinator(db, policy=policy, clock=clock, publish=publish)
    try:
        order = coordinator.accept(
            supplier.company_id,
            payload.order_id,
            payload.avg_time_per_piece,
            payload.planned_start_date,
            accepted_by=supplier.user_id,
        )
    except CapacityError as e:
        raise as_http_exception(e)
    return committed_order_out(order)
