from __future__ import annotations

import threading
from datetime import date

import pytest

from attendance_ledger.core.enums import AttendanceStatus
from attendance_ledger.core.exceptions import ValidationError
from attendance_ledger.ledger.model import Employee
from attendance_ledger.storage.memory import InMemoryStore


def _rec(day, status="present", employee_id=7, location_id=1):
    return {"employee_id": employee_id, "location_id": location_id, "date": day, "status": status}


def test_bulk_mark_applies_all_valid_records(container, store):
    result = container.attendance_service.bulk_mark(
        [_rec("2025-03-03"), _rec("2025-03-04", "leave"), _rec("2025-03-05", "half-day")],
        marked_by=1,
    )

    assert result.ok
    assert len(result.attendance_ids) == 3
    march = store.get_employee(7).entry(2025, 3)
    assert (march.taken, march.available) == (1.5, 0.5)


def test_strict_bulk_mark_applies_nothing_on_validation_error(container, store):
    result = container.attendance_service.bulk_mark(
        [_rec("2025-03-03"), {"employee_id": 7, "location_id": 1, "date": "2025-03-04"}, _rec("2025-07-01")]
    )

    assert result.attendance_ids == []
    assert [(e.index, e.code) for e in result.errors] == [(1, "VALIDATION_ERROR"), (2, "FUTURE_DATE")]
    assert container.attendance_service.monthly_attendance(2025, 3) == []
    assert store.get_employee(7).monthly_leaves == ()


def test_bulk_mark_reports_unknown_references_per_record(container):
    result = container.attendance_service.bulk_mark(
        [_rec("2025-03-03", employee_id=404), _rec("2025-03-03", location_id=9), "not a record"],
        allow_partial=True,
    )

    assert [(e.index, e.employee_id, e.code) for e in result.errors] == [
        (0, 404, "NOT_FOUND"),
        (1, 7, "NOT_FOUND"),
        (2, None, "VALIDATION_ERROR"),
    ]


def test_bulk_mark_reports_existing_slots_separately(container, store):
    svc = container.attendance_service
    existing = svc.mark(7, 1, "2025-03-03", "present")

    strict = svc.bulk_mark([_rec("2025-03-03", "leave"), _rec("2025-03-04")])
    assert strict.errors == []
    assert [(e.index, e.attendance_id, e.status) for e in strict.existing] == [
        (0, existing.attendance_id, AttendanceStatus.PRESENT)
    ]
    assert strict.attendance_ids == []

    partial = svc.bulk_mark([_rec("2025-03-03", "leave"), _rec("2025-03-04")], allow_partial=True)
    assert len(partial.attendance_ids) == 1
    assert len(partial.existing) == 1
    assert store.get_attendance(existing.attendance_id).status == AttendanceStatus.PRESENT


def test_bulk_mark_overwrite_replaces_existing_slot(container, store):
    svc = container.attendance_service
    existing = svc.mark(7, 1, "2025-03-03", "present")

    result = svc.bulk_mark([_rec("2025-03-03", "leave")], overwrite=True)

    assert result.attendance_ids == [existing.attendance_id]
    assert store.get_employee(7).entry(2025, 3).taken == 1.0


def test_bulk_mark_rejects_repeated_slot_in_batch(container):
    result = container.attendance_service.bulk_mark([_rec("2025-03-03"), _rec("2025-03-03", "leave")])

    assert [(e.index, e.code) for e in result.errors] == [(1, "VALIDATION_ERROR")]
    assert result.attendance_ids == []


def test_balance_is_checked_cumulatively_in_strict_mode(container, store):
    result = container.attendance_service.bulk_mark(
        [_rec("2025-03-03", "leave"), _rec("2025-03-04", "leave"), _rec("2025-03-05", "leave")]
    )

    assert result.attendance_ids == []
    assert [(e.index, e.code) for e in result.errors] == [(2, "INSUFFICIENT_BALANCE")]
    assert container.attendance_service.monthly_attendance(2025, 3) == []
    assert store.get_employee(7).monthly_leaves == ()


def test_partial_mode_skips_records_without_balance(container, store):
    result = container.attendance_service.bulk_mark(
        [_rec("2025-03-03", "leave"), _rec("2025-03-04", "leave"), _rec("2025-03-05", "leave")],
        allow_partial=True,
    )

    assert len(result.attendance_ids) == 2
    assert [(e.index, e.code) for e in result.errors] == [(2, "INSUFFICIENT_BALANCE")]
    assert store.get_employee(7).entry(2025, 3).available == 0.0


def test_bulk_mark_requires_records(container):
    with pytest.raises(ValidationError):
        container.attendance_service.bulk_mark([])


class _CommitBarrierStore(InMemoryStore):
    """Holds the first two commits until both transactions have done their reads."""

    def __init__(self):
        super().__init__()
        self.barrier = None
        self._gate = threading.Lock()
        self._held = 0

    def _commit(self, uow):
        if self.barrier is not None and uow.pending:
            with self._gate:
                hold = self._held < 2
                self._held += 1
            if hold:
                self.barrier.wait(timeout=5)
        super()._commit(uow)


def test_concurrent_bulk_marks_cannot_overdraw_last_day(container_factory):
    store = _CommitBarrierStore()
    store.add_location(1)
    store.add_employee(Employee(employee_id=7, location_id=1, join_date=date(2025, 1, 1)))
    svc = container_factory(store).attendance_service
    svc.mark(7, 1, "2025-03-03", "leave")
    store.barrier = threading.Barrier(2)

    results = {}

    def run(day):
        results[day] = svc.bulk_mark([_rec(day, "leave")])

    threads = [threading.Thread(target=run, args=(day,)) for day in ("2025-03-10", "2025-03-11")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    outcomes = sorted((len(r.attendance_ids), [e.code for e in r.errors]) for r in results.values())
    assert outcomes == [(0, ["INSUFFICIENT_BALANCE"]), (1, [])]
    march = store.get_employee(7).entry(2025, 3)
    assert (march.taken, march.available) == (2.0, 0.0)
    assert len(svc.monthly_attendance(2025, 3, employee_id=7)) == 2
