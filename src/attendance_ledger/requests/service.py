from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..attendance.service import AttendanceService
from ..common.datetime_utils import DateInput, normalize_attendance_date, now_ist
from ..common.validators import parse_status, require_id, require_non_empty, require_not_future
from ..core.constants import DEFAULT_REQUEST_LIST_LIMIT
from ..core.enums import AttendanceStatus, Decision, RequestStatus
from ..core.exceptions import NotFoundError, RequestAlreadyDecidedError, ValidationError
from ..storage.unit_of_work import UnitOfWork
from ..transactions.executor import TransactionalExecutor
from .model import AttendanceCorrectionRequest, CorrectionRequestView

logger = logging.getLogger(__name__)


class CorrectionRequestService:
    """Employees ask for an attendance change; a reviewer approves or rejects it.

    Approval runs the same ledger adjustment as a direct edit, in the same
    transaction that marks the request approved.
    """

    def __init__(
        self,
        executor: TransactionalExecutor,
        attendance: AttendanceService,
        *,
        clock: Callable[[], datetime] = now_ist,
    ):
        self._executor = executor
        self._attendance = attendance
        self._clock = clock

    def request_correction(
        self,
        employee_id: int,
        location_id: int,
        date: DateInput,
        requested_status: AttendanceStatus | str,
        reason: str,
        *,
        requested_by: Optional[int] = None,
    ) -> AttendanceCorrectionRequest:
        employee_id = require_id(employee_id, "employee_id")
        location_id = require_id(location_id, "location_id")
        status = parse_status(requested_status)
        reason = require_non_empty(reason, "reason")
        when = normalize_attendance_date(date)
        require_not_future(when.date(), self._clock().date())

        def work(uow: UnitOfWork) -> AttendanceCorrectionRequest:
            record = uow.attendance.find_active(employee_id=employee_id, location_id=location_id, day=when.date())
            if record is None:
                raise NotFoundError(
                    f"No attendance record for employee {employee_id} on {when.date().isoformat()}",
                    employee_id=employee_id,
                    location_id=location_id,
                    date=when.date().isoformat(),
                )
            return uow.corrections.add(
                employee_id=employee_id,
                location_id=location_id,
                date=when,
                requested_status=status,
                reason=reason,
                requested_by=requested_by,
                created_at=self._clock(),
            )

        request = self._executor.run(work, label="corrections.request")
        logger.info(
            "correction_requested",
            extra={
                "request_id": request.request_id,
                "employee_id": employee_id,
                "date": when.date().isoformat(),
                "requested_status": status.value,
            },
        )
        return request

    def handle_correction_request(
        self,
        request_id: int,
        decision: Decision | str,
        *,
        reviewed_by: Optional[int] = None,
    ) -> AttendanceCorrectionRequest:
        request_id = require_id(request_id, "request_id")
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Invalid decision '{decision}'. Must be approve or reject", field="decision")

        def work(uow: UnitOfWork) -> AttendanceCorrectionRequest:
            request = uow.corrections.get_by_id(request_id)
            if request is None:
                raise NotFoundError(f"Correction request {request_id} not found", request_id=request_id)
            if request.status != RequestStatus.PENDING:
                raise RequestAlreadyDecidedError(
                    f"Correction request {request_id} is already {request.status.value}",
                    request_id=request_id,
                    status=request.status.value,
                )

            if decision == Decision.APPROVE:
                self._apply(uow, request, reviewed_by)
                new_status = RequestStatus.APPROVED
            else:
                new_status = RequestStatus.REJECTED

            decided = replace(request, status=new_status, reviewed_by=reviewed_by, reviewed_at=self._clock())
            uow.corrections.update(decided)
            return decided

        decided = self._executor.run(work, label="corrections.handle")
        logger.info(
            "correction_request_decided",
            extra={"request_id": request_id, "decision": decision.value, "reviewed_by": reviewed_by},
        )
        return decided

    def _apply(self, uow: UnitOfWork, request: AttendanceCorrectionRequest, reviewed_by: Optional[int]) -> None:
        record = uow.attendance.find_active(
            employee_id=request.employee_id,
            location_id=request.location_id,
            day=request.day,
        )
        if record is None:
            logger.warning(
                "correction_target_missing",
                extra={
                    "request_id": request.request_id,
                    "employee_id": request.employee_id,
                    "date": request.day.isoformat(),
                },
            )
            return
        self._attendance.apply_edit(uow, record, new_status=request.requested_status, edited_by=reviewed_by)

    def list_correction_requests(
        self,
        status: RequestStatus | str | None = None,
        *,
        limit: int = DEFAULT_REQUEST_LIST_LIMIT,
    ) -> list[CorrectionRequestView]:
        if status is not None:
            try:
                status = RequestStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid request status '{status}'", field="status")

        def work(uow: UnitOfWork) -> list[CorrectionRequestView]:
            views = []
            for request in uow.corrections.list(status=status, limit=limit):
                record = uow.attendance.find_active(
                    employee_id=request.employee_id,
                    location_id=request.location_id,
                    day=request.day,
                )
                views.append(CorrectionRequestView(request=request, current_status=record.status if record else None))
            return views

        return self._executor.run(work, label="corrections.list")
