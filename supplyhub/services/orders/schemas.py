from __future__ import annotations

import datetime as dt

from pydantic import Field

from supplyhub.db.models.orders import AssignmentType
from supplyhub.services.capacity.schemas import CamelModel, CommittedOrderOut


class OrderCreateIn(CamelModel):
    product_name: str = Field(..., min_length=1, max_length=256)
    quantity: int = Field(..., ge=1)
    assignment_type: AssignmentType
    supplier_id: str | None = None
    target_supplier_ids: list[str] = []


class TargetOut(CamelModel):
    supplier_id: str
    status: str
    responded_at: dt.datetime | None = None


class HistoryOut(CamelModel):
    previous_status: str | None = None
    new_status: str
    changed_by: str
    notes: str | None = None
    created_at: dt.datetime


class OrderDetailOut(CommittedOrderOut):
    targets: list[TargetOut] = []
    history: list[HistoryOut] = []
