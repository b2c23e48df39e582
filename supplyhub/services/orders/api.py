from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from supplyhub.core.clock import Clock
from supplyhub.core.errors import CapacityError
from supplyhub.core.http import as_http_exception
from supplyhub.core.security import CompanyContext, Principal, get_principal, require_brand, require_supplier, resolve_company
from supplyhub.db.models.company import CompanyType
from supplyhub.db.models.orders import Order
from supplyhub.db.session import get_db
from supplyhub.events.bus import EventSink
from supplyhub.services.capacity.api import committed_order_out
from supplyhub.services.capacity.deps import get_clock, get_event_sink
from supplyhub.services.capacity.schemas import CommittedOrderOut
from supplyhub.services.orders.schemas import HistoryOut, OrderCreateIn, OrderDetailOut, TargetOut
from supplyhub.services.orders.service import NewOrder, OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def _detail_out(o: Order) -> OrderDetailOut:
    base = committed_order_out(o).model_dump()
    return OrderDetailOut(
        **base,
        targets=[
            TargetOut(supplier_id=t.supplier_id, status=t.status.value, responded_at=t.responded_at)
            for t in o.targets
        ],
        history=[
            HistoryOut(
                previous_status=h.previous_status.value if h.previous_status else None,
                new_status=h.new_status.value,
                changed_by=h.changed_by,
                notes=h.notes,
                created_at=h.created_at,
            )
            for h in o.history
        ],
    )


@router.post("", response_model=OrderDetailOut, status_code=201)
def create_order(
    payload: OrderCreateIn,
    db: Session = Depends(get_db),
    brand: CompanyContext = Depends(require_brand),
    clock: Clock = Depends(get_clock),
    publish: EventSink = Depends(get_event_sink),
):
    svc = OrderService(db, clock=clock, publish=publish)
    try:
        order = svc.create_order(
            brand.company_id,
            NewOrder(
                product_name=payload.product_name,
                quantity=payload.quantity,
                assignment_type=payload.assignment_type,
                supplier_id=payload.supplier_id,
                target_supplier_ids=payload.target_supplier_ids,
            ),
            created_by=brand.user_id,
        )
    except CapacityError as e:
        raise as_http_exception(e)
    return _detail_out(order)


@router.get("/{order_id}", response_model=OrderDetailOut)
def get_order(order_id: str, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if not principal.user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    company = resolve_company(db, principal.user_id, CompanyType.BRAND) or resolve_company(
        db, principal.user_id, CompanyType.SUPPLIER
    )
    if company is None:
        raise HTTPException(status_code=403, detail={"error": "company_required"})
    try:
        order = OrderService(db).get_order(order_id, company.company_id)
    except CapacityError as e:
        raise as_http_exception(e)
    return _detail_out(order)


@router.post("/{order_id}/start-production", response_model=CommittedOrderOut)
def start_production(
    order_id: str,
    db: Session = Depends(get_db),
    supplier: CompanyContext = Depends(require_supplier),
    clock: Clock = Depends(get_clock),
    publish: EventSink = Depends(get_event_sink),
):
    svc = OrderService(db, clock=clock, publish=publish)
    try:
        order = svc.start_production(supplier.company_id, order_id, changed_by=supplier.user_id)
    except CapacityError as e:
        raise as_http_exception(e)
    return committed_order_out(order)
