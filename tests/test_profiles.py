from decimal import Decimal

import pytest

from supplyhub.core.errors import ValidationError
from supplyhub.services.capacity.policy import CapacityPolicy
from supplyhub.services.capacity.profiles import CapacityProfileStore
from supplyhub.services.capacity.units import monthly_capacity_minutes, round_half_up


def test_monthly_capacity_rule():
    assert monthly_capacity_minutes(5, 8) == 52800
    assert monthly_capacity_minutes(1, Decimal("0.5")) == 660
    # 1 x 7.33 x 60 x 22 = 9675.6
    assert monthly_capacity_minutes(1, Decimal("7.33")) == 9676


@pytest.mark.parametrize("workers", [1, 3, 17, 9999])
@pytest.mark.parametrize("hours", ["0.25", "7.5", "8", "12.75", "24"])
def test_monthly_capacity_matches_derivation(workers, hours):
    expected = round_half_up(Decimal(workers) * Decimal(hours) * 60 * 22)
    assert monthly_capacity_minutes(workers, Decimal(hours)) == expected


def test_round_half_up_rounds_halves_away_from_zero():
    assert round_half_up(Decimal("0.5")) == 1
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("2.49")) == 2
    assert round_half_up(2.1 * 3) == 6


def test_missing_profile_is_default_zero(db, world):
    profile = CapacityProfileStore(db).get(world.supplier.id)
    assert profile.active_workers == 0
    assert profile.hours_per_day is None
    assert profile.monthly_capacity == 0
    assert profile.configured is False
    assert profile.product_types == []


def test_set_creates_then_updates(db, world):
    store = CapacityProfileStore(db)
    created = store.set(world.supplier.id, 5, 8, actor="user-supplier-1")
    assert created.active_workers == 5
    assert created.hours_per_day == Decimal("8")
    assert created.monthly_capacity == 52800
    assert created.configured is True

    updated = store.set(world.supplier.id, 10, Decimal("7.5"), actor="user-supplier-1")
    assert updated.monthly_capacity == 10 * 75 * 6 * 22
    assert store.get(world.supplier.id).active_workers == 10


def test_set_uses_policy_working_days(db, world):
    store = CapacityProfileStore(db, CapacityPolicy(working_days_per_month=20))
    assert store.set(world.supplier.id, 1, 8).monthly_capacity == 8 * 60 * 20


@pytest.mark.parametrize(
    "workers, hours",
    [(0, 8), (10000, 8), (-1, 8), (5, 0), (5, "-1"), (5, "24.01"), (5, "0.004"), (5, "nan"), (5, "abc"), (True, 8), (2.5, 8)],
)
def test_set_rejects_out_of_range_values(db, world, workers, hours):
    with pytest.raises(ValidationError):
        CapacityProfileStore(db).set(world.supplier.id, workers, hours)
    assert CapacityProfileStore(db).get(world.supplier.id).configured is False


def test_full_day_is_allowed(db, world):
    assert CapacityProfileStore(db).set(world.supplier.id, 1, 24).monthly_capacity == 24 * 60 * 22


def test_hours_are_rounded_before_capacity_is_derived(db, world):
    stored = CapacityProfileStore(db).set(world.supplier.id, 3, "7.125")
    assert stored.hours_per_day == Decimal("7.13")
    # 3 x 7.13 x 60 x 22 = 28234.8
    assert stored.monthly_capacity == 28235
    assert stored.monthly_capacity == round_half_up(3 * stored.hours_per_day * 60 * 22)


def test_policy_reads_environment(monkeypatch):
    for name in (
        "CAPACITY_DEFAULT_MINUTES_PER_PIECE",
        "CAPACITY_FALLBACK_WORKERS",
        "CAPACITY_FALLBACK_HOURS_PER_DAY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CAPACITY_WORKING_DAYS_PER_MONTH", "20")
    monkeypatch.setenv("CAPACITY_CALENDAR_DEFAULT_HOURS_PER_DAY", "6")

    policy = CapacityPolicy.from_env()
    assert policy.working_days_per_month == 20
    assert policy.calendar_default_hours_per_day == Decimal("6")
    assert policy.default_minutes_per_piece == Decimal("15")
    assert policy.fallback_hours_per_day == Decimal("8")


def test_policy_defaults_keep_22_working_days(monkeypatch):
    monkeypatch.delenv("CAPACITY_WORKING_DAYS_PER_MONTH", raising=False)
    assert CapacityPolicy.from_env().working_days_per_month == 22
