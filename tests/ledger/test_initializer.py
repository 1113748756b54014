from __future__ import annotations

from datetime import date, datetime

import pytest

from attendance_ledger.core.config import LedgerConfig
from attendance_ledger.core.constants import IST
from attendance_ledger.core.enums import AttendanceStatus
from attendance_ledger.ledger.model import Employee, LedgerEntry


def _entry(year, month, *, available=2.0):
    return LedgerEntry(employee_id=8, year=year, month=month, allocated=2.0, available=available)


def _seed(store, *, join_date, entries, activity=None, location_id=1):
    store.add_employee(
        Employee(employee_id=8, location_id=location_id, join_date=join_date, monthly_leaves=tuple(entries))
    )
    if activity is not None:
        when, status = activity
        store.add_attendance(employee_id=8, location_id=1, date=when, status=status)


def _ensure(container, store, year, month):
    with store.transaction() as uow:
        return container.initializer.ensure_month(uow, 8, year, month)


def test_new_month_carries_prior_available(container, store):
    _seed(
        store,
        join_date=date(2025, 4, 1),
        entries=[_entry(2025, 5)],
        activity=(datetime(2025, 5, 5, tzinfo=IST), AttendanceStatus.PRESENT),
    )

    june = _ensure(container, store, 2025, 6)

    assert (june.allocated, june.carried_forward, june.available, june.taken) == (2.0, 2.0, 4.0, 0.0)
    assert store.get_employee(8).entry(2025, 6) == june


def test_prior_month_without_activity_carries_nothing(container, store):
    _seed(
        store,
        join_date=date(2025, 4, 1),
        entries=[_entry(2025, 5)],
        activity=(datetime(2025, 5, 2, tzinfo=IST), AttendanceStatus.ABSENT),
    )

    june = _ensure(container, store, 2025, 6)

    assert june.carried_forward == 0.0
    assert june.available == 2.0


def test_prior_month_before_join_carries_nothing(container, store):
    _seed(
        store,
        join_date=date(2025, 6, 1),
        entries=[_entry(2025, 5)],
        activity=(datetime(2025, 5, 5, tzinfo=IST), AttendanceStatus.PRESENT),
    )

    assert _ensure(container, store, 2025, 6).carried_forward == 0.0


@pytest.mark.parametrize("policy, expected", [("reset", 0.0), ("carry", 2.0)])
def test_january_opening_follows_year_boundary_policy(container_factory, store, policy, expected):
    container = container_factory(store, LedgerConfig(year_boundary_policy=policy))
    _seed(
        store,
        join_date=date(2024, 11, 1),
        entries=[_entry(2024, 12)],
        activity=(datetime(2024, 12, 2, tzinfo=IST), AttendanceStatus.PRESENT),
    )

    assert _ensure(container, store, 2025, 1).carried_forward == expected


def test_existing_month_is_returned_unchanged(container, store):
    june = LedgerEntry(employee_id=8, year=2025, month=6, allocated=2.0, taken=1.0, carried_forward=3.0, available=4.0)
    _seed(store, join_date=date(2025, 4, 1), entries=[_entry(2025, 5), june])
    before = store.get_employee(8)

    assert _ensure(container, store, 2025, 6) == june
    assert store.get_employee(8) == before


def test_location_grant_overrides_global_default(container_factory, store):
    config = LedgerConfig(paid_leaves_per_year=24, location_leaves_per_year={1: 30})
    container = container_factory(store, config)
    _seed(store, join_date=date(2025, 6, 1), entries=[])
    store.add_employee(Employee(employee_id=9, location_id=2, join_date=date(2025, 6, 1)))

    assert _ensure(container, store, 2025, 6).allocated == 2.5
    with store.transaction() as uow:
        assert container.initializer.ensure_month(uow, 9, 2025, 6).allocated == 2.0
