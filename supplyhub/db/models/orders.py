from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supplyhub.db.base import Base
from supplyhub.db.models.common import HasCreatedAt, HasId, HasUpdatedAt


class OrderStatus(str, enum.Enum):
    LAUNCHED = "LAUNCHED"
    UNDER_NEGOTIATION = "UNDER_NEGOTIATION"
    AVAILABLE_TO_OTHERS = "AVAILABLE_TO_OTHERS"
    ACCEPTED = "ACCEPTED"
    PREPARING_BRAND_SHIPMENT = "PREPARING_BRAND_SHIPMENT"
    IN_TRANSIT_TO_SUPPLIER = "IN_TRANSIT_TO_SUPPLIER"
    PREPARING_SUPPLIER_INTAKE = "PREPARING_SUPPLIER_INTAKE"
    IN_PRODUCTION = "IN_PRODUCTION"
    READY = "READY"
    IN_TRANSIT_TO_BRAND = "IN_TRANSIT_TO_BRAND"
    IN_REVIEW = "IN_REVIEW"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    REJECTED = "REJECTED"
    AWAITING_REWORK = "AWAITING_REWORK"
    FINISHED = "FINISHED"


class AssignmentType(str, enum.Enum):
    DIRECT = "DIRECT"
    BIDDING = "BIDDING"
    HYBRID = "HYBRID"


class TargetStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Order(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "ord_order"

    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)  # TX-YYYYMMDD-XXXX
    brand_id: Mapped[str] = mapped_column(String(36), ForeignKey("mkt_company.id"), nullable=False, index=True)
    supplier_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("mkt_company.id"), nullable=True, index=True)

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=32), default=OrderStatus.LAUNCHED, nullable=False, index=True
    )
    assignment_type: Mapped[AssignmentType] = mapped_column(
        Enum(AssignmentType, native_enum=False, length=16), default=AssignmentType.DIRECT, nullable=False
    )

    product_name: Mapped[str] = mapped_column(String(256), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Scheduling fields, written when a supplier commits to a production window
    avg_time_per_piece: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)  # minutes
    total_production_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    planned_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    planned_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    brand = relationship("Company", foreign_keys=[brand_id])
    supplier = relationship("Company", foreign_keys=[supplier_id])
    targets = relationship("OrderTargetSupplier", back_populates="order", cascade="all, delete-orphan")
    history = relationship(
        "OrderStatusHistory", back_populates="order", order_by="OrderStatusHistory.created_at"
    )


Index("ix_order_supplier_status", Order.supplier_id, Order.status)


class OrderTargetSupplier(Base, HasId, HasCreatedAt):
    """Invitation of one supplier to claim a BIDDING (or HYBRID) order."""

    __tablename__ = "ord_target_supplier"

    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("ord_order.id"), nullable=False, index=True)
    supplier_id: Mapped[str] = mapped_column(String(36), ForeignKey("mkt_company.id"), nullable=False, index=True)
    status: Mapped[TargetStatus] = mapped_column(
        Enum(TargetStatus, native_enum=False, length=16), default=TargetStatus.PENDING, nullable=False, index=True
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    order = relationship("Order", back_populates="targets")


Index("uq_target_order_supplier", OrderTargetSupplier.order_id, OrderTargetSupplier.supplier_id, unique=True)


class OrderStatusHistory(Base, HasId, HasCreatedAt):
    # Append-only. Rows are never updated or deleted.
    __tablename__ = "ord_status_history"

    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("ord_order.id"), nullable=False, index=True)
    previous_status: Mapped[OrderStatus | None] = mapped_column(Enum(OrderStatus, native_enum=False, length=32), nullable=True)
    new_status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus, native_enum=False, length=32), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    order = relationship("Order", back_populates="history")


Index("ix_status_history_order_time", OrderStatusHistory.order_id, OrderStatusHistory.created_at)

__all__ = [
    "OrderStatus",
    "AssignmentType",
    "TargetStatus",
    "Order",
    "OrderTargetSupplier",
    "OrderStatusHistory",
]
