from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session

from supplyhub.core.clock import Clock, SystemClock
from supplyhub.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from supplyhub.db.models.company import Company
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
from supplyhub.events.topics import ORDER_ACCEPTED
from supplyhub.services.capacity.policy import CapacityPolicy
from supplyhub.services.capacity.profiles import CapacityProfileStore
from supplyhub.services.capacity.units import daily_capacity_minutes, round_half_up, round_to_hundredths, to_decimal
from supplyhub.services.capacity.working_days import add_working_days

logger = logging.getLogger(__name__)

MIN_TIME_PER_PIECE = Decimal("0.1")

ACCEPTABLE_STATUSES = frozenset(
    {
        OrderStatus.LAUNCHED,
        OrderStatus.UNDER_NEGOTIATION,
        OrderStatus.AVAILABLE_TO_OTHERS,
    }
)


@dataclass(frozen=True)
class AcceptancePlan:
    """Everything computed before the acceptance transaction opens.

    observed_status is the order status seen at read time; the commit only
    succeeds while the row still carries it.
    """

    order_id: str
    supplier_id: str
    accepted_by: str
    observed_status: OrderStatus
    assignment_type: AssignmentType
    quantity: int
    avg_time_per_piece: Decimal
    total_production_minutes: int
    daily_capacity_minutes: Decimal
    production_days: int
    planned_start_date: date
    planned_end_date: date

    @property
    def note(self) -> str:
        return (
            f"Accepted with capacity plan: {self.avg_time_per_piece} min/piece, "
            f"{self.total_production_minutes} min total, "
            f"{self.production_days} working days of production"
        )


def _validate_time_per_piece(value) -> Decimal:
    try:
        avg = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("avgTimePerPiece must be a number", field="avgTimePerPiece")
    if not avg.is_finite():
        raise ValidationError("avgTimePerPiece must be a number", field="avgTimePerPiece")
    # Total minutes are computed from the value as stored.
    avg = round_to_hundredths(avg)
    if avg < MIN_TIME_PER_PIECE:
        raise ValidationError(f"avgTimePerPiece must be at least {MIN_TIME_PER_PIECE}", field="avgTimePerPiece")
    return avg


def _validate_start_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError("plannedStartDate must be a date (YYYY-MM-DD)", field="plannedStartDate")


class AcceptanceCoordinator:
    """Commits a supplier to an order under contention.

    Acceptance is a compare-and-swap on the order status: two concurrent
    attempts on the same order cannot both succeed, the loser gets
    ConflictError. Nothing is retried here.
    """

    def __init__(
        self,
        db: Session,
        *,
        policy: CapacityPolicy | None = None,
        clock: Clock | None = None,
        publish: EventSink = bus.publish,
    ) -> None:
        self.db = db
        self.policy = policy or CapacityPolicy()
        self.clock = clock or SystemClock()
        self.publish = publish
        self.profiles = CapacityProfileStore(db, self.policy)

    def accept(
        self,
        supplier_id: str,
        order_id: str,
        avg_time_per_piece,
        planned_start_date,
        *,
        accepted_by: str,
    ) -> Order:
        plan = self.prepare(supplier_id, order_id, avg_time_per_piece, planned_start_date, accepted_by=accepted_by)
        return self.commit(plan)

    # ---------- read + compute ----------

    def _find_reachable(self, supplier_id: str, order_id: str) -> Order | None:
        return (
            self.db.query(Order)
            .filter(
                Order.id == order_id,
                or_(
                    Order.supplier_id == supplier_id,
                    and_(
                        Order.supplier_id.is_(None),
                        Order.targets.any(OrderTargetSupplier.supplier_id == supplier_id),
                    ),
                    Order.status == OrderStatus.AVAILABLE_TO_OTHERS,
                ),
            )
            .first()
        )

    def _daily_capacity(self, supplier_id: str) -> Decimal:
        profile = self.profiles.get(supplier_id)
        workers = profile.active_workers or self.policy.fallback_workers
        hours = profile.hours_per_day if profile.hours_per_day else self.policy.fallback_hours_per_day
        return daily_capacity_minutes(workers, hours)

    def prepare(
        self,
        supplier_id: str,
        order_id: str,
        avg_time_per_piece,
        planned_start_date,
        *,
        accepted_by: str,
    ) -> AcceptancePlan:
        avg = _validate_time_per_piece(avg_time_per_piece)
        start = _validate_start_date(planned_start_date)

        order = self._find_reachable(supplier_id, order_id)
        if order is None:
            raise NotFoundError("Order not found", order_id=order_id)

        if order.status not in ACCEPTABLE_STATUSES:
            raise InvalidStateError(
                f"Order cannot be accepted while {order.status.value}",
                current_status=order.status.value,
                order_id=order_id,
            )

        total = round_half_up(avg * order.quantity)
        daily = self._daily_capacity(supplier_id)
        days_needed = math.ceil(Decimal(total) / daily)

        return AcceptancePlan(
            order_id=order.id,
            supplier_id=supplier_id,
            accepted_by=accepted_by,
            observed_status=order.status,
            assignment_type=order.assignment_type,
            quantity=order.quantity,
            avg_time_per_piece=avg,
            total_production_minutes=total,
            daily_capacity_minutes=daily,
            production_days=days_needed,
            planned_start_date=start,
            planned_end_date=add_working_days(start, days_needed),
        )

    # ---------- transaction ----------

    def commit(self, plan: AcceptancePlan) -> Order:
        now = self.clock.now()
        try:
            result = self.db.execute(
                update(Order)
                .where(Order.id == plan.order_id, Order.status == plan.observed_status)
                .values(
                    status=OrderStatus.ACCEPTED,
                    supplier_id=plan.supplier_id,
                    avg_time_per_piece=plan.avg_time_per_piece,
                    total_production_minutes=plan.total_production_minutes,
                    planned_start_date=plan.planned_start_date,
                    planned_end_date=plan.planned_end_date,
                    accepted_at=now,
                    accepted_by=plan.accepted_by,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError(
                    "Order was already accepted or changed by someone else; refresh and retry",
                    order_id=plan.order_id,
                )

            self.db.add(
                OrderStatusHistory(
                    order_id=plan.order_id,
                    previous_status=plan.observed_status,
                    new_status=OrderStatus.ACCEPTED,
                    changed_by=plan.accepted_by,
                    notes=plan.note,
                    created_at=now,
                )
            )

            if plan.assignment_type == AssignmentType.BIDDING:
                self.db.execute(
                    update(OrderTargetSupplier)
                    .where(
                        OrderTargetSupplier.order_id == plan.order_id,
                        OrderTargetSupplier.supplier_id == plan.supplier_id,
                    )
                    .values(status=TargetStatus.ACCEPTED, responded_at=now)
                    .execution_options(synchronize_session=False)
                )
                self.db.execute(
                    update(OrderTargetSupplier)
                    .where(
                        OrderTargetSupplier.order_id == plan.order_id,
                        OrderTargetSupplier.supplier_id != plan.supplier_id,
                    )
                    .values(status=TargetStatus.REJECTED, responded_at=now)
                    .execution_options(synchronize_session=False)
                )

            self.db.commit()
        except ConflictError:
            self.db.rollback()
            logger.warning("acceptance conflict on order %s for supplier %s", plan.order_id, plan.supplier_id)
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.expire_all()
        order = self.db.get(Order, plan.order_id)
        logger.info(
            "order %s accepted by supplier %s: %s min, %s -> %s",
            order.display_id,
            plan.supplier_id,
            plan.total_production_minutes,
            plan.planned_start_date,
            plan.planned_end_date,
        )
        self._emit_accepted(order, plan)
        return order

    def _emit_accepted(self, order: Order, plan: AcceptancePlan) -> None:
        # The acceptance is durable at this point; a failed publish must not undo it.
        try:
            supplier = self.db.get(Company, plan.supplier_id)
            payload = {
                "order_id": order.id,
                "display_id": order.display_id,
                "brand_id": order.brand_id,
                "supplier_id": plan.supplier_id,
                "supplier_name": (supplier.trade_name if supplier else None) or "Supplier",
                "accepted_by": plan.accepted_by,
            }
            self.publish(self.db, ORDER_ACCEPTED, payload)
            logger.info("emitted %s for %s", ORDER_ACCEPTED, order.display_id)
        except Exception:
            self.db.rollback()
            logger.exception("failed to emit %s for %s", ORDER_ACCEPTED, order.display_id)
