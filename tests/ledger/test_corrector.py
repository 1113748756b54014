from __future__ import annotations

import logging
from datetime import date, datetime

from attendance_ledger.core.config import LedgerConfig
from attendance_ledger.core.constants import IST
from attendance_ledger.core.enums import AttendanceStatus, YearBoundaryPolicy
from attendance_ledger.ledger.model import Employee, LedgerEntry
from attendance_ledger.storage.memory import InMemoryStore


def _day(y, m, d):
    return datetime(y, m, d, tzinfo=IST)


def _seed(store: InMemoryStore, employee_id: int, *records):
    for when, status in records:
        store.add_attendance(employee_id=employee_id, location_id=1, date=when, status=status)


def test_recompute_backfills_from_join_month_to_current_month(container, store):
    store.add_employee(Employee(employee_id=8, location_id=1, join_date=date(2025, 4, 10)))

    employee = container.ledger_service.recompute(8)

    assert [e.key for e in employee.monthly_leaves] == [(2025, 4), (2025, 5), (2025, 6)]
    assert all(e.allocated == 2.0 and e.available == 2.0 for e in employee.monthly_leaves)


def test_recompute_is_idempotent(container, store):
    _seed(
        store,
        7,
        (_day(2025, 2, 3), AttendanceStatus.LEAVE),
        (_day(2025, 2, 4), AttendanceStatus.HALF_DAY),
        (_day(2025, 3, 5), AttendanceStatus.PRESENT),
        (_day(2025, 4, 7), AttendanceStatus.LEAVE),
    )

    container.ledger_service.recompute(7)
    first = container.ledger_service.get_ledger(7)
    container.ledger_service.recompute(7)
    second = container.ledger_service.get_ledger(7)

    assert first.monthly_leaves == second.monthly_leaves
    assert first.leave_summary == second.leave_summary


def test_recompute_derives_taken_from_attendance_not_stored_counters(container, store):
    store.add_employee(
        Employee(
            employee_id=9,
            location_id=1,
            join_date=date(2025, 6, 1),
            monthly_leaves=(LedgerEntry(employee_id=9, year=2025, month=6, allocated=2.0, taken=2.0, available=0.0),),
        )
    )
    _seed(store, 9, (_day(2025, 6, 2), AttendanceStatus.HALF_DAY))

    employee = container.ledger_service.recompute(9)

    june = employee.entry(2025, 6)
    assert june.taken == 0.5
    assert june.available == 1.5


def test_recompute_drops_duplicate_months_and_warns(container, store, caplog):
    store.add_employee(
        Employee(
            employee_id=9,
            location_id=1,
            join_date=date(2025, 6, 1),
            monthly_leaves=(
                LedgerEntry(employee_id=9, year=2025, month=6, allocated=2.0, available=2.0),
                LedgerEntry(employee_id=9, year=2025, month=6, allocated=5.0, available=5.0),
            ),
        )
    )

    with caplog.at_level(logging.WARNING):
        employee = container.ledger_service.recompute(9)

    assert [e.key for e in employee.monthly_leaves] == [(2025, 6)]
    assert employee.entry(2025, 6).allocated == 2.0
    assert any(r.getMessage() == "ledger_duplicate_month" for r in caplog.records)


def test_no_activity_month_carries_nothing_forward(container, store):
    _seed(store, 7, (_day(2025, 2, 10), AttendanceStatus.LEAVE))

    employee = container.ledger_service.recompute(7)

    assert employee.entry(2025, 2).available == 1.0
    assert employee.entry(2025, 3).carried_forward == 1.0
    assert employee.entry(2025, 3).available == 3.0
    # March has no attendance at all, so April opens without March's balance.
    assert employee.entry(2025, 4).carried_forward == 0.0


def test_january_opens_without_december_balance(container, store):
    store.add_employee(Employee(employee_id=8, location_id=1, join_date=date(2024, 11, 1)))
    _seed(store, 8, (_day(2024, 12, 2), AttendanceStatus.PRESENT))

    employee = container.ledger_service.recompute(8)

    assert employee.entry(2024, 12).available == 2.0
    assert employee.entry(2025, 1).carried_forward == 0.0


def test_january_carries_december_balance_under_carry_policy(container_factory, store):
    store.add_employee(Employee(employee_id=8, location_id=1, join_date=date(2024, 12, 1)))
    _seed(store, 8, (_day(2024, 12, 2), AttendanceStatus.PRESENT))
    container = container_factory(store, LedgerConfig(year_boundary_policy=YearBoundaryPolicy.CARRY))

    employee = container.ledger_service.recompute(8)

    assert employee.entry(2025, 1).carried_forward == 2.0


def test_recompute_leaves_months_after_as_of_untouched(container, store):
    container.ledger_service.recompute(7)
    _seed(store, 7, (_day(2025, 5, 6), AttendanceStatus.LEAVE))

    employee = container.ledger_service.recompute(7, as_of=date(2025, 4, 30))

    assert employee.entry(2025, 5).taken == 0.0
    assert container.ledger_service.recompute(7).entry(2025, 5).taken == 1.0


def test_summary_is_prorated_for_join_year(container, store):
    store.add_employee(Employee(employee_id=8, location_id=1, join_date=date(2025, 3, 15)))
    _seed(store, 8, (_day(2025, 3, 20), AttendanceStatus.LEAVE))

    summary = container.ledger_service.recompute(8).leave_summary

    assert summary.allocated == 20
    assert summary.used == 1.0
    assert summary.available == 19.0


def test_ledger_invariant_holds_for_every_entry(container, store):
    _seed(
        store,
        7,
        *[(_day(2025, 2, d), AttendanceStatus.LEAVE) for d in range(3, 8)],
        (_day(2025, 3, 3), AttendanceStatus.HALF_DAY),
    )

    employee = container.ledger_service.recompute(7)

    for e in employee.monthly_leaves:
        assert e.taken <= e.allocated + e.carried_forward
        assert e.available == max(0.0, round(e.allocated + e.carried_forward - e.taken, 4))
