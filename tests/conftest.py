from __future__ import annotations

import os

# Must be set before supplyhub.db.session is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EVENT_DISPATCHER_ENABLED", "0")
os.environ.setdefault("DB_CREATE_ALL", "0")

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from supplyhub.core.clock import FixedClock
from supplyhub.core.security import create_access_token
from supplyhub.db import models  # noqa: F401
from supplyhub.db.base import Base
from supplyhub.db.models.capacity import SupplierProfile
from supplyhub.db.models.company import Company, CompanyType, CompanyUser
from supplyhub.db.models.orders import AssignmentType, Order, OrderStatus, OrderTargetSupplier, TargetStatus
from supplyhub.db.session import get_db
from supplyhub.services.capacity.deps import get_clock, get_event_sink, get_policy
from supplyhub.services.capacity.policy import CapacityPolicy

# Monday
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def __call__(self, db, topic: str, payload: dict):
        self.events.append((topic, payload))

    def topics(self) -> list[str]:
        return [t for t, _ in self.events]


class FailingSink:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, db, topic: str, payload: dict):
        self.calls += 1
        raise RuntimeError("notification bus is down")


@dataclass
class World:
    brand: Company
    suppliers: list[Company]
    brand_user: str = "user-brand"
    supplier_users: list[str] = field(default_factory=list)

    @property
    def supplier(self) -> Company:
        return self.suppliers[0]


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'supplyhub.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def world(db) -> World:
    brand = Company(type=CompanyType.BRAND, trade_name="Marca Azul")
    suppliers = [Company(type=CompanyType.SUPPLIER, trade_name=f"Oficina {i}") for i in range(1, 4)]
    db.add_all([brand, *suppliers])
    db.flush()
    db.add(CompanyUser(company_id=brand.id, user_id="user-brand"))
    users = []
    for i, s in enumerate(suppliers, start=1):
        uid = f"user-supplier-{i}"
        users.append(uid)
        db.add(CompanyUser(company_id=s.id, user_id=uid))
    db.commit()
    return World(brand=brand, suppliers=suppliers, supplier_users=users)


def make_order(
    db,
    world: World,
    *,
    status: OrderStatus = OrderStatus.LAUNCHED,
    assignment_type: AssignmentType = AssignmentType.DIRECT,
    supplier_id: str | None = None,
    targets: list[str] | None = None,
    quantity: int = 500,
    total_production_minutes: int | None = None,
    planned_start_date: date | None = None,
    planned_end_date: date | None = None,
    display_id: str | None = None,
) -> Order:
    order = Order(
        display_id=display_id or f"TX-20260302-{db.query(Order).count() + 1:04d}",
        brand_id=world.brand.id,
        supplier_id=supplier_id,
        status=status,
        assignment_type=assignment_type,
        product_name="Camiseta basica",
        quantity=quantity,
        total_production_minutes=total_production_minutes,
        planned_start_date=planned_start_date,
        planned_end_date=planned_end_date,
    )
    order.targets = [OrderTargetSupplier(supplier_id=s, status=TargetStatus.PENDING) for s in (targets or [])]
    db.add(order)
    db.commit()
    return order


def set_profile(db, supplier_id: str, workers: int, hours: str) -> SupplierProfile:
    row = SupplierProfile(
        company_id=supplier_id,
        active_workers=workers,
        hours_per_day=Decimal(hours),
        monthly_capacity=0,
        product_types=[],
        specialties=[],
    )
    db.add(row)
    db.commit()
    return row


def auth(user_id: str, roles: tuple[str, ...] = ()) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, roles=roles)}"}


@pytest.fixture
def client(session_factory, clock, sink):
    from supplyhub.main import create_app

    app = create_app()

    def _db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_sink] = lambda: sink
    app.dependency_overrides[get_policy] = lambda: CapacityPolicy()
    return TestClient(app)
