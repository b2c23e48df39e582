from datetime import date
from decimal import Decimal

import pytest

from conftest import FailingSink, make_order, set_profile
from supplyhub.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from supplyhub.db.models.orders import AssignmentType, Order, OrderStatus, OrderStatusHistory, OrderTargetSupplier, TargetStatus
from supplyhub.events.topics import ORDER_ACCEPTED
from supplyhub.services.capacity.acceptance import AcceptanceCoordinator
from supplyhub.services.capacity.units import round_half_up

MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)


@pytest.fixture
def coordinator(db, clock, sink):
    return AcceptanceCoordinator(db, clock=clock, publish=sink)


def test_example_scenario(db, world, coordinator):
    set_profile(db, world.supplier.id, 5, "8")
    order = make_order(db, world, supplier_id=world.supplier.id, quantity=500)

    accepted = coordinator.accept(world.supplier.id, order.id, Decimal("2.0"), MONDAY, accepted_by="user-supplier-1")

    assert accepted.status == OrderStatus.ACCEPTED
    assert accepted.supplier_id == world.supplier.id
    assert accepted.total_production_minutes == 1000
    assert accepted.avg_time_per_piece == Decimal("2.0")
    assert accepted.planned_start_date == MONDAY
    assert accepted.planned_end_date == date(2026, 3, 3)
    assert accepted.accepted_by == "user-supplier-1"
    assert accepted.accepted_at is not None


def test_friday_start_ends_next_monday(db, world, coordinator):
    set_profile(db, world.supplier.id, 5, "8")
    order = make_order(db, world, supplier_id=world.supplier.id, quantity=500)
    accepted = coordinator.accept(world.supplier.id, order.id, 2, FRIDAY, accepted_by="user-supplier-1")
    assert accepted.planned_end_date == date(2026, 3, 9)


def test_plan_uses_fallback_capacity_without_profile(db, world, coordinator):
    order = make_order(db, world, supplier_id=world.supplier.id, quantity=500)
    plan = coordinator.prepare(world.supplier.id, order.id, 2, MONDAY, accepted_by="u")
    # 1 worker x 8 h = 480 min/day -> ceil(1000 / 480) = 3 working days
    assert plan.daily_capacity_minutes == Decimal("480")
    assert plan.production_days == 3
    assert plan.planned_end_date == date(2026, 3, 5)


def test_total_minutes_are_rounded(db, world, coordinator):
    set_profile(db, world.supplier.id, 5, "8")
    order = make_order(db, world, supplier_id=world.supplier.id, quantity=3)
    plan = coordinator.prepare(world.supplier.id, order.id, "2.5", MONDAY, accepted_by="u")
    assert plan.total_production_minutes == 8  # 7.5 rounds half up


def test_history_entry_is_appended(db, world, coordinator):
    set_profile(db, world.supplier.id, 5, "8")
    order = make_order(db, world, status=OrderStatus.UNDER_NEGOTIATION, supplier_id=world.supplier.id)
    coordinator.accept(world.supplier.id, order.id, 2, MONDAY, accepted_by="user-supplier-1")

    history = db.query(OrderStatusHistory).filter(OrderStatusHistory.order_id == order.id).all()
    assert len(history) == 1
    entry = history[0]
    assert entry.previous_status == OrderStatus.UNDER_NEGOTIATION
    assert entry.new_status == OrderStatus.ACCEPTED
    assert entry.changed_by == "user-supplier-1"
    assert "2.00 min/piece" in entry.notes
    assert "1000 min total" in entry.notes
    assert "1 working days" in entry.notes


def test_event_emitted_after_commit(db, world, coordinator, sink):
    order = make_order(db, world, supplier_id=world.supplier.id)
    coordinator.accept(world.supplier.id, order.id, 2, MONDAY, accepted_by="user-supplier-1")

    assert sink.topics() == [ORDER_ACCEPTED]
    payload = sink.events[0][1]
    assert payload == {
        "order_id": order.id,
        "display_id": order.display_id,
        "brand_id": world.brand.id,
        "supplier_id": world.supplier.id,
        "supplier_name": "Oficina 1",
        "accepted_by": "user-supplier-1",
    }


def test_event_failure_does_not_undo_acceptance(db, session_factory, world, clock):
    failing = FailingSink()
    order = make_order(db, world, supplier_id=world.supplier.id)
    accepted = AcceptanceCoordinator(db, clock=clock, publish=failing).accept(
        world.supplier.id, order.id, 2, MONDAY, accepted_by="user-supplier-1"
    )
    assert failing.calls == 1
    assert accepted.status == OrderStatus.ACCEPTED

    with session_factory() as other:
        assert other.get(Order, order.id).status == OrderStatus.ACCEPTED


def test_outbox_publish_by_default(db, world, clock):
    from supplyhub.events.outbox import OutboxEvent

    order = make_order(db, world, supplier_id=world.supplier.id)
    AcceptanceCoordinator(db, clock=clock).accept(world.supplier.id, order.id, 2, MONDAY, accepted_by="u")
    events = db.query(OutboxEvent).all()
    assert [e.topic for e in events] == [ORDER_ACCEPTED]
    assert events[0].payload["order_id"] == order.id
    assert events[0].delivered is False


# ---------- preconditions ----------


@pytest.mark.parametrize("avg", [0, "0.09", "0.094", -1, "nan", "inf", "x", None])
def test_invalid_time_per_piece_is_rejected_before_lookup(db, world, coordinator, avg):
    with pytest.raises(ValidationError):
        coordinator.accept(world.supplier.id, "missing-order", avg, MONDAY, accepted_by="u")


def test_time_per_piece_is_rounded_before_planning(db, world, coordinator):
    set_profile(db, world.supplier.id, 5, "8")
    order = make_order(db, world, supplier_id=world.supplier.id, quantity=1000)
    accepted = coordinator.accept(world.supplier.id, order.id, "0.125", MONDAY, accepted_by="user-supplier-1")

    assert accepted.avg_time_per_piece == Decimal("0.13")
    assert accepted.total_production_minutes == 130
    assert accepted.total_production_minutes == round_half_up(accepted.avg_time_per_piece * accepted.quantity)


def test_invalid_start_date_is_rejected(db, world, coordinator):
    order = make_order(db, world, supplier_id=world.supplier.id)
    with pytest.raises(ValidationError):
        coordinator.accept(world.supplier.id, order.id, 2, "03/02/2026", accepted_by="u")


def test_iso_string_start_date_is_accepted(db, world, coordinator):
    order = make_order(db, world, supplier_id=world.supplier.id)
    accepted = coordinator.accept(world.supplier.id, order.id, 2, "2026-03-02", accepted_by="u")
    assert accepted.planned_start_date == MONDAY


def test_unknown_order_is_not_found(db, world, coordinator):
    with pytest.raises(NotFoundError):
        coordinator.accept(world.supplier.id, "does-not-exist", 2, MONDAY, accepted_by="u")


def test_order_of_another_supplier_is_not_found(db, world, coordinator):
    order = make_order(db, world, supplier_id=world.suppliers[1].id)
    with pytest.raises(NotFoundError):
        coordinator.accept(world.supplier.id, order.id, 2, MONDAY, accepted_by="u")


def test_bidding_order_without_invitation_is_not_found(db, world, coordinator):
    order = make_order(db, world, assignment_type=AssignmentType.BIDDING, targets=[world.suppliers[1].id])
    with pytest.raises(NotFoundError):
        coordinator.accept(world.supplier.id, order.id, 2, MONDAY, accepted_by="u")


def test_open_order_is_reachable_by_anyone(db, world, coordinator):
    order = make_order(
        db,
        world,
        status=OrderStatus.AVAILABLE_TO_OTHERS,
        assignment_type=AssignmentType.HYBRID,
    )
    accepted = coordinator.accept(world.suppliers[2].id, order.id, 2, MONDAY, accepted_by="user-supplier-3")
    assert accepted.supplier_id == world.suppliers[2].id


@pytest.mark.parametrize("status", [OrderStatus.ACCEPTED, OrderStatus.IN_PRODUCTION, OrderStatus.FINISHED])
def test_non_acceptable_status_is_invalid_state(db, world, coordinator, status):
    order = make_order(db, world, status=status, supplier_id=world.supplier.id)
    with pytest.raises(InvalidStateError) as exc:
        coordinator.accept(world.supplier.id, order.id, 2, MONDAY, accepted_by="u")
    assert exc.value.current_status == status.value
    assert exc.value.to_dict()["error"] == "invalid_state"


# ---------- contention ----------


def test_racing_acceptances_only_one_wins(session_factory, db, world, clock, sink):
    order = make_order(
        db,
        world,
        assignment_type=AssignmentType.BIDDING,
        targets=[world.suppliers[0].id, world.suppliers[1].id],
    )

    with session_factory() as first_db, session_factory() as second_db:
        first = AcceptanceCoordinator(first_db, clock=clock, publish=sink)
        second = AcceptanceCoordinator(second_db, clock=clock, publish=sink)

        # Both read the order while it is still LAUNCHED
        first_plan = first.prepare(world.suppliers[0].id, order.id, 2, MONDAY, accepted_by="user-supplier-1")
        second_plan = second.prepare(world.suppliers[1].id, order.id, 3, MONDAY, accepted_by="user-supplier-2")
        assert first_plan.observed_status == second_plan.observed_status == OrderStatus.LAUNCHED

        first.commit(first_plan)
        with pytest.raises(ConflictError) as exc:
            second.commit(second_plan)
        assert exc.value.code == "conflict"

    with session_factory() as check:
        final = check.get(Order, order.id)
        assert final.status == OrderStatus.ACCEPTED
        assert final.supplier_id == world.suppliers[0].id
        assert final.total_production_minutes == 1000
        history = check.query(OrderStatusHistory).filter(OrderStatusHistory.order_id == order.id).all()
        assert len(history) == 1
        targets = {t.supplier_id: t.status for t in check.query(OrderTargetSupplier).filter_by(order_id=order.id)}
        assert targets == {world.suppliers[0].id: TargetStatus.ACCEPTED, world.suppliers[1].id: TargetStatus.REJECTED}

    assert sink.topics() == [ORDER_ACCEPTED]


def test_repeat_acceptance_is_rejected(db, world, coordinator):
    order = make_order(db, world, assignment_type=AssignmentType.BIDDING, targets=[s.id for s in world.suppliers])
    coordinator.accept(world.suppliers[0].id, order.id, 2, MONDAY, accepted_by="user-supplier-1")
    # supplier 1 now owns the order, so it is no longer reachable for supplier 2
    with pytest.raises(NotFoundError):
        coordinator.accept(world.suppliers[1].id, order.id, 2, MONDAY, accepted_by="user-supplier-2")
    with pytest.raises(InvalidStateError):
        coordinator.accept(world.suppliers[0].id, order.id, 2, MONDAY, accepted_by="user-supplier-1")


def test_bidding_cascade_accepts_one_and_rejects_the_rest(db, world, coordinator, clock):
    order = make_order(db, world, assignment_type=AssignmentType.BIDDING, targets=[s.id for s in world.suppliers])
    coordinator.accept(world.suppliers[1].id, order.id, 2, MONDAY, accepted_by="user-supplier-2")

    targets = db.query(OrderTargetSupplier).filter(OrderTargetSupplier.order_id == order.id).all()
    statuses = sorted(t.status.value for t in targets)
    assert statuses == ["ACCEPTED", "REJECTED", "REJECTED"]
    winner = [t for t in targets if t.status == TargetStatus.ACCEPTED]
    assert winner[0].supplier_id == world.suppliers[1].id
    assert all(t.responded_at is not None for t in targets)


def test_only_bidding_orders_cascade_targets(db, world, coordinator):
    order = make_order(
        db,
        world,
        assignment_type=AssignmentType.HYBRID,
        targets=[world.suppliers[0].id, world.suppliers[1].id],
    )
    coordinator.accept(world.suppliers[0].id, order.id, 2, MONDAY, accepted_by="user-supplier-1")
    statuses = {t.status for t in db.query(OrderTargetSupplier).filter_by(order_id=order.id)}
    assert statuses == {TargetStatus.PENDING}
