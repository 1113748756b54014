from __future__ import annotations

from datetime import date, datetime

import pytest

from attendance_ledger.core.constants import IST
from attendance_ledger.core.enums import AttendanceStatus
from attendance_ledger.core.exceptions import NotFoundError, ValidationError
from attendance_ledger.ledger.model import Employee, LedgerEntry


def test_get_ledger_unknown_employee(container):
    with pytest.raises(NotFoundError):
        container.ledger_service.get_ledger(404)


def test_recompute_rejects_future_as_of(container):
    with pytest.raises(ValidationError):
        container.ledger_service.recompute(7, as_of=date(2025, 7, 1))


def test_recompute_all_processes_every_employee(container, store):
    store.add_employee(Employee(employee_id=8, location_id=1, join_date=date(2025, 5, 1)))

    result = container.ledger_service.recompute_all()

    assert result.ok
    assert result.processed == [7, 8]
    assert container.ledger_service.get_ledger(8).entry(2025, 6) is not None


def test_roll_forward_opens_current_month_with_previous_balance(container, store):
    may = LedgerEntry(employee_id=8, year=2025, month=5, allocated=2.0, available=2.0)
    store.add_employee(Employee(employee_id=8, location_id=1, join_date=date(2025, 5, 1), monthly_leaves=(may,)))
    store.add_attendance(employee_id=8, location_id=1, date=datetime(2025, 5, 5, tzinfo=IST), status=AttendanceStatus.PRESENT)
    store.add_employee(Employee(employee_id=9, location_id=1, join_date=date(2025, 7, 1)))

    result = container.ledger_service.roll_forward()

    assert 8 in result.processed
    assert result.skipped == [9]
    june = store.get_employee(8).entry(2025, 6)
    assert june.carried_forward == 2.0
    assert june.available == 4.0
    assert store.get_employee(9).monthly_leaves == ()


def test_roll_forward_twice_changes_nothing(container, store):
    container.ledger_service.roll_forward()
    before = store.get_employee(7)

    container.ledger_service.roll_forward()

    assert store.get_employee(7) == before


def test_override_summary_survives_mutations_until_cleared(container, store):
    container.ledger_service.override_summary(7, used=3, available=9, allocated=12)
    container.attendance_service.mark(7, 1, "2025-06-02", "leave")

    employee = container.ledger_service.get_ledger(7)
    assert employee.manual_override is True
    assert (employee.leave_summary.allocated, employee.leave_summary.used, employee.leave_summary.available) == (12, 3, 9)
    assert employee.entry(2025, 6).taken == 1.0

    cleared = container.ledger_service.clear_override(7)
    assert cleared.manual_override is False
    assert cleared.leave_summary.allocated == 24
    assert cleared.leave_summary.used == 1.0
    assert cleared.leave_summary.available == 23.0


def test_override_summary_rejects_negative_values(container):
    with pytest.raises(ValidationError):
        container.ledger_service.override_summary(7, used=-1, available=2)
