from __future__ import annotations

from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from supplyhub.db.base import Base
from supplyhub.db.models.common import HasCreatedAt, HasId, HasUpdatedAt


class SupplierProfile(Base, HasId, HasCreatedAt, HasUpdatedAt):
    """Production capacity configuration of one supplier company.

    monthly_capacity is derived (workers x hours x 60 x working days) and is
    rewritten on every configuration change. current_occupancy is an
    informational gauge only; the calendar recomputes load from orders.
    """

    __tablename__ = "cap_supplier_profile"

    company_id: Mapped[str] = mapped_column(String(36), ForeignKey("mkt_company.id"), unique=True, nullable=False, index=True)
    active_workers: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_per_day: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    monthly_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)  # minutes
    current_occupancy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # percent
    product_types: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    specialties: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

__all__ = ["SupplierProfile"]
