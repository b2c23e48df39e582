from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, selectinload

from supplyhub.core.clock import Clock, DisplayIdGenerator, SystemClock
from supplyhub.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from supplyhub.db.models.company import Company, CompanyType
from supplyhub.db.models.orders import (
    AssignmentType,
    Order,
    OrderStatus,
    OrderStatusHistory,
    OrderTargetSupplier,
    TargetStatus,
)
from supplyhub.events import bus
from supplyhub.events.bus import EventSink
from supplyhub.events.topics import ORDER_CREATED, ORDER_STATUS_CHANGED

logger = logging.getLogger(__name__)


@dataclass
class NewOrder:
    product_name: str
    quantity: int
    assignment_type: AssignmentType
    supplier_id: str | None = None
    target_supplier_ids: list[str] = field(default_factory=list)


class OrderService:
    """Brand-side order intake and the supplier's hand-off into production.

    The full order lifecycle belongs to the order-management service; this
    covers what the capacity engine needs to have orders to schedule.
    """

    def __init__(
        self,
        db: Session,
        *,
        clock: Clock | None = None,
        display_ids: Callable[[], str] | None = None,
        publish: EventSink = bus.publish,
    ) -> None:
        self.db = db
        self.clock = clock or SystemClock()
        self.display_ids = display_ids or DisplayIdGenerator(clock=self.clock)
        self.publish = publish

    def _check_suppliers(self, supplier_ids: list[str]) -> None:
        found = {
            c.id
            for c in self.db.query(Company)
            .filter(Company.id.in_(supplier_ids), Company.type == CompanyType.SUPPLIER)
            .all()
        }
        unknown = sorted(set(supplier_ids) - found)
        if unknown:
            raise ValidationError("Unknown supplier(s)", field="supplierIds", unknown=unknown)

    def create_order(self, brand_id: str, new: NewOrder, *, created_by: str) -> Order:
        if new.quantity < 1:
            raise ValidationError("quantity must be at least 1", field="quantity")

        targets = list(dict.fromkeys(new.target_supplier_ids or []))
        supplier_id = None
        if new.assignment_type == AssignmentType.DIRECT:
            if not new.supplier_id:
                raise ValidationError("supplierId is required for DIRECT orders", field="supplierId")
            supplier_id = new.supplier_id
            self._check_suppliers([supplier_id])
            targets = []
        elif new.assignment_type == AssignmentType.BIDDING:
            if not targets:
                raise ValidationError("targetSupplierIds is required for BIDDING orders", field="targetSupplierIds")
            self._check_suppliers(targets)
        elif targets:
            # HYBRID: invited suppliers plus open to others later on
            self._check_suppliers(targets)

        now = self.clock.now()
        order = Order(
            display_id=self.display_ids(),
            brand_id=brand_id,
            supplier_id=supplier_id,
            status=OrderStatus.LAUNCHED,
            assignment_type=new.assignment_type,
            product_name=new.product_name,
            quantity=new.quantity,
            created_at=now,
            updated_at=now,
        )
        order.targets = [OrderTargetSupplier(supplier_id=s, status=TargetStatus.PENDING, created_at=now) for s in targets]
        self.db.add(order)
        self.db.flush()
        self.db.add(
            OrderStatusHistory(
                order_id=order.id,
                previous_status=None,
                new_status=OrderStatus.LAUNCHED,
                changed_by=created_by,
                notes="Order created",
                created_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(order)
        logger.info("order %s created by brand %s (%s)", order.display_id, brand_id, new.assignment_type.value)

        self._emit(
            ORDER_CREATED,
            {
                "order_id": order.id,
                "display_id": order.display_id,
                "brand_id": brand_id,
                "supplier_id": supplier_id,
                "product_name": order.product_name,
                "quantity": order.quantity,
                "target_supplier_ids": targets,
            },
        )
        return order

    def get_order(self, order_id: str, company_id: str) -> Order:
        """Load an order visible to the company: its brand, its supplier or an invited supplier."""
        order = (
            self.db.query(Order)
            .options(selectinload(Order.targets), selectinload(Order.history))
            .filter(
                Order.id == order_id,
                or_(
                    Order.brand_id == company_id,
                    Order.supplier_id == company_id,
                    Order.targets.any(OrderTargetSupplier.supplier_id == company_id),
                ),
            )
            .first()
        )
        if order is None:
            raise NotFoundError("Order not found", order_id=order_id)
        return order

    def start_production(self, supplier_id: str, order_id: str, *, changed_by: str) -> Order:
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.supplier_id == supplier_id)
            .first()
        )
        if order is None:
            raise NotFoundError("Order not found", order_id=order_id)
        if order.status != OrderStatus.ACCEPTED:
            raise InvalidStateError(
                f"Production can only start from ACCEPTED, order is {order.status.value}",
                current_status=order.status.value,
                order_id=order_id,
            )

        now = self.clock.now()
        try:
            result = self.db.execute(
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.supplier_id == supplier_id,
                    Order.status == OrderStatus.ACCEPTED,
                )
                .values(status=OrderStatus.IN_PRODUCTION, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError("Order was changed by someone else; refresh and retry", order_id=order_id)
            self.db.add(
                OrderStatusHistory(
                    order_id=order_id,
                    previous_status=OrderStatus.ACCEPTED,
                    new_status=OrderStatus.IN_PRODUCTION,
                    changed_by=changed_by,
                    notes="Production started",
                    created_at=now,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.expire_all()
        order = self.db.get(Order, order_id)
        self._emit(
            ORDER_STATUS_CHANGED,
            {
                "order_id": order.id,
                "display_id": order.display_id,
                "brand_id": order.brand_id,
                "supplier_id": supplier_id,
                "previous_status": OrderStatus.ACCEPTED.value,
                "new_status": OrderStatus.IN_PRODUCTION.value,
                "changed_by": changed_by,
            },
        )
        return order

    def _emit(self, topic: str, payload: dict) -> None:
        try:
            self.publish(self.db, topic, payload)
        except Exception:
            self.db.rollback()
            logger.exception("failed to emit %s for order %s", topic, payload.get("display_id"))
