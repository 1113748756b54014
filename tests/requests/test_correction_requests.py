from __future__ import annotations

import logging

import pytest

from attendance_ledger.core.enums import AttendanceStatus, Decision, RequestStatus
from attendance_ledger.core.exceptions import (
    FutureDateError,
    InsufficientLeaveBalanceError,
    NotFoundError,
    RequestAlreadyDecidedError,
    ValidationError,
)


def _request(container, status="leave", day="2025-03-03", reason="Was on sick leave"):
    return container.request_service.request_correction(7, 1, day, status, reason, requested_by=7)


def test_request_correction_creates_pending_request(container):
    container.attendance_service.mark(7, 1, "2025-03-03", "present")

    request = _request(container)

    assert request.status == RequestStatus.PENDING
    assert request.requested_status == AttendanceStatus.LEAVE
    assert request.requested_by == 7
    assert request.day.isoformat() == "2025-03-03"


def test_request_correction_needs_an_active_record(container):
    with pytest.raises(NotFoundError):
        _request(container)


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"reason": "   "}, ValidationError),
        ({"status": "holiday"}, ValidationError),
        ({"day": "2025-06-20"}, FutureDateError),
    ],
)
def test_request_correction_validates_input(container, kwargs, error):
    container.attendance_service.mark(7, 1, "2025-03-03", "present")

    with pytest.raises(error):
        _request(container, **kwargs)


def test_approval_applies_edit_and_debits_ledger(container, store):
    marked = container.attendance_service.mark(7, 1, "2025-03-03", "present")
    request = _request(container)

    decided = container.request_service.handle_correction_request(request.request_id, "approve", reviewed_by=2)

    assert decided.status == RequestStatus.APPROVED
    assert decided.reviewed_by == 2
    assert decided.reviewed_at is not None
    record = store.get_attendance(marked.attendance_id)
    assert record.status == AttendanceStatus.LEAVE
    assert record.edited_by == 2
    assert store.get_employee(7).entry(2025, 3).taken == 1.0


def test_rejection_leaves_attendance_alone(container, store):
    marked = container.attendance_service.mark(7, 1, "2025-03-03", "present")
    request = _request(container)

    decided = container.request_service.handle_correction_request(request.request_id, Decision.REJECT)

    assert decided.status == RequestStatus.REJECTED
    assert store.get_attendance(marked.attendance_id).status == AttendanceStatus.PRESENT
    assert store.get_employee(7).entry(2025, 3).taken == 0.0


def test_only_pending_requests_can_be_decided(container):
    container.attendance_service.mark(7, 1, "2025-03-03", "present")
    request = _request(container)
    container.request_service.handle_correction_request(request.request_id, "reject")

    with pytest.raises(RequestAlreadyDecidedError):
        container.request_service.handle_correction_request(request.request_id, "approve")


def test_approval_without_balance_keeps_request_pending(container, store):
    svc = container.attendance_service
    svc.mark(7, 1, "2025-03-03", "leave")
    svc.mark(7, 1, "2025-03-04", "leave")
    svc.mark(7, 1, "2025-03-05", "present")
    request = _request(container, day="2025-03-05")

    with pytest.raises(InsufficientLeaveBalanceError):
        container.request_service.handle_correction_request(request.request_id, "approve")

    views = container.request_service.list_correction_requests(RequestStatus.PENDING)
    assert [v.request.request_id for v in views] == [request.request_id]


def test_approval_after_record_was_undone_only_records_decision(container, store, caplog):
    marked = container.attendance_service.mark(7, 1, "2025-03-03", "present")
    request = _request(container)
    container.attendance_service.undo([marked.attendance_id])
    before = store.get_employee(7)

    with caplog.at_level(logging.WARNING):
        decided = container.request_service.handle_correction_request(request.request_id, "approve")

    assert decided.status == RequestStatus.APPROVED
    assert store.get_employee(7) == before
    assert any(r.getMessage() == "correction_target_missing" for r in caplog.records)


def test_handle_rejects_unknown_request_and_decision(container):
    with pytest.raises(NotFoundError):
        container.request_service.handle_correction_request(99, "approve")
    with pytest.raises(ValidationError):
        container.request_service.handle_correction_request(1, "maybe")


def test_list_includes_current_status_newest_first(container):
    svc = container.attendance_service
    svc.mark(7, 1, "2025-03-03", "present")
    svc.mark(7, 1, "2025-03-04", "absent")
    first = _request(container, day="2025-03-03")
    second = _request(container, day="2025-03-04", status="present")
    container.request_service.handle_correction_request(first.request_id, "approve")

    views = container.request_service.list_correction_requests()
    assert [(v.request.request_id, v.current_status) for v in views] == [
        (second.request_id, AttendanceStatus.ABSENT),
        (first.request_id, AttendanceStatus.LEAVE),
    ]

    pending = container.request_service.list_correction_requests("pending")
    assert [v.request.request_id for v in pending] == [second.request_id]

    with pytest.raises(ValidationError):
        container.request_service.list_correction_requests("archived")
