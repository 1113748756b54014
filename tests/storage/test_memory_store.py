from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from attendance_ledger.core.constants import IST
from attendance_ledger.core.enums import AttendanceStatus
from attendance_ledger.core.exceptions import ConflictError


def test_concurrent_write_to_same_employee_conflicts(store):
    with pytest.raises(ConflictError):
        with store.transaction() as outer:
            employee = outer.employees.get_by_id(7)
            with store.transaction() as inner:
                inner.employees.save(replace(inner.employees.get_by_id(7), manual_override=True))
            outer.employees.save(replace(employee, location_id=2))

    employee = store.get_employee(7)
    assert employee.manual_override is True
    assert employee.location_id == 1


def test_commit_bumps_version(store):
    version = store.get_employee(7).version

    with store.transaction() as uow:
        uow.employees.save(replace(uow.employees.get_by_id(7), manual_override=True))

    assert store.get_employee(7).version == version + 1


def test_second_active_record_in_slot_is_rejected(store):
    day = datetime(2025, 3, 3, 9, 0, tzinfo=IST)

    with pytest.raises(ConflictError):
        with store.transaction() as outer:
            outer.attendance.add(employee_id=7, location_id=1, date=day, status=AttendanceStatus.PRESENT)
            with store.transaction() as inner:
                inner.attendance.add(
                    employee_id=7, location_id=1, date=day.replace(hour=18), status=AttendanceStatus.LEAVE
                )

    with store.transaction() as uow:
        active = uow.attendance.list_active_for_month(year=2025, month=3, employee_id=7)
    assert [r.status for r in active] == [AttendanceStatus.LEAVE]


def test_failed_unit_of_work_writes_nothing(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as uow:
            uow.attendance.add(
                employee_id=7, location_id=1, date=datetime(2025, 3, 3, tzinfo=IST), status=AttendanceStatus.LEAVE
            )
            uow.employees.save(replace(uow.employees.get_by_id(7), manual_override=True))
            raise RuntimeError("boom")

    assert store.get_employee(7).manual_override is False
    with store.transaction() as uow:
        assert uow.attendance.list_active_for_month(year=2025, month=3) == []


def test_reads_see_own_pending_writes_only(store):
    with store.transaction() as uow:
        record = uow.attendance.add(
            employee_id=7, location_id=1, date=datetime(2025, 3, 3, tzinfo=IST), status=AttendanceStatus.PRESENT
        )
        assert uow.attendance.get_by_id(record.attendance_id) == record
        assert uow.attendance.has_activity_in_month(employee_id=7, year=2025, month=3)
        assert store.get_attendance(record.attendance_id) is None

    assert store.get_attendance(record.attendance_id) == record


def test_absent_is_not_activity(store):
    store.add_attendance(
        employee_id=7, location_id=1, date=datetime(2025, 3, 3, tzinfo=IST), status=AttendanceStatus.ABSENT
    )

    with store.transaction() as uow:
        assert not uow.attendance.has_activity_in_month(employee_id=7, year=2025, month=3)
