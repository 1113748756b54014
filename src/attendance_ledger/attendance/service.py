from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import DateInput, normalize_attendance_date, now_ist
from ..common.validators import parse_status, require_id, require_not_future
from ..core.enums import AttendanceStatus
from ..core.exceptions import (
    DuplicateAttendanceError,
    InsufficientLeaveBalanceError,
    NotFoundError,
    ValidationError,
)
from ..ledger.adjuster import LeaveCharge, LedgerAdjuster
from ..storage.unit_of_work import UnitOfWork
from ..transactions.executor import TransactionalExecutor
from .model import AttendanceRecord, BulkMarkResult, MarkResult, RecordError, UndoResult
from .validation import check_references, validate_batch, validate_fields

logger = logging.getLogger(__name__)


class _BatchRejected(Exception):
    """Aborts the batch transaction; carries the result reported to the caller."""

    def __init__(self, result: BulkMarkResult):
        super().__init__("batch rejected")
        self.result = result


class AttendanceService:
    """Attendance mutations that keep the leave ledger consistent.

    Every public mutation is one unit of work run by the executor, so a
    conflicting concurrent write re-runs the whole operation from a fresh read.
    """

    def __init__(
        self,
        executor: TransactionalExecutor,
        adjuster: LedgerAdjuster,
        *,
        clock: Callable[[], datetime] = now_ist,
    ):
        self._executor = executor
        self._adjuster = adjuster
        self._clock = clock

    # -------- single record --------
    def mark(
        self,
        employee_id: int,
        location_id: int,
        date: DateInput,
        status: AttendanceStatus | str,
        *,
        marked_by: Optional[int] = None,
        overwrite: bool = False,
    ) -> MarkResult:
        candidate = validate_fields(
            {"employee_id": employee_id, "location_id": location_id, "date": date, "status": status},
            today=self._clock().date(),
        )

        def work(uow: UnitOfWork) -> MarkResult:
            check_references(uow, candidate)
            existing = uow.attendance.find_active(
                employee_id=candidate.employee_id,
                location_id=candidate.location_id,
                day=candidate.day,
            )
            if existing is not None and not overwrite:
                raise DuplicateAttendanceError(
                    f"Attendance already marked for employee {candidate.employee_id} on {candidate.day.isoformat()}",
                    attendance_id=existing.attendance_id,
                    status=existing.status.value,
                )
            return self._write_mark(uow, candidate, existing, marked_by)

        result = self._executor.run(work, label="attendance.mark")
        logger.info(
            "attendance_marked",
            extra={
                "employee_id": candidate.employee_id,
                "attendance_id": result.attendance_id,
                "status": candidate.status.value,
                "date": candidate.day.isoformat(),
                "delta": result.delta,
            },
        )
        return result

    def edit(
        self,
        record_id: int,
        new_status: AttendanceStatus | str,
        new_date: Optional[DateInput] = None,
        *,
        edited_by: Optional[int] = None,
    ) -> MarkResult:
        record_id = require_id(record_id, "record_id")
        status = parse_status(new_status)
        moved_to = None
        if new_date is not None:
            moved_to = normalize_attendance_date(new_date)
            require_not_future(moved_to.date(), self._clock().date())

        def work(uow: UnitOfWork) -> MarkResult:
            record = uow.attendance.get_by_id(record_id)
            if record is None or record.is_deleted:
                raise NotFoundError(f"Attendance record {record_id} not found", attendance_id=record_id)
            return self.apply_edit(uow, record, new_status=status, new_date=moved_to, edited_by=edited_by)

        result = self._executor.run(work, label="attendance.edit")
        logger.info(
            "attendance_edited",
            extra={"attendance_id": record_id, "status": status.value, "delta": result.delta},
        )
        return result

    def apply_edit(
        self,
        uow: UnitOfWork,
        record: AttendanceRecord,
        *,
        new_status: AttendanceStatus,
        new_date: Optional[datetime] = None,
        edited_by: Optional[int] = None,
    ) -> MarkResult:
        """Change an active record inside an open unit of work.

        The old cost is credited to the record's month and the new cost
        debited to the target month, which differ when the date moves.
        """
        target_date = new_date or record.date
        if target_date.date() != record.day:
            clash = uow.attendance.find_active(
                employee_id=record.employee_id,
                location_id=record.location_id,
                day=target_date.date(),
            )
            if clash is not None:
                raise DuplicateAttendanceError(
                    f"Attendance already marked for employee {record.employee_id} on {target_date.date().isoformat()}",
                    attendance_id=clash.attendance_id,
                    status=clash.status.value,
                )

        updated = replace(record, status=new_status, date=target_date, edited_by=edited_by)
        new = LeaveCharge.of(target_date, new_status)
        _, adjustment = self._adjuster.adjust(
            uow,
            record.employee_id,
            old=LeaveCharge.of(record.date, record.status),
            new=new,
            write=lambda: uow.attendance.update(updated),
        )
        return MarkResult(
            attendance_id=record.attendance_id,
            ledger=adjustment.entries[new.period],
            delta=adjustment.deltas[new.period],
        )

    def undo(self, record_ids: Sequence[int], *, deleted_by: Optional[int] = None) -> UndoResult:
        if not record_ids:
            raise ValidationError("record_ids must not be empty")
        ids = [require_id(r, "record_id") for r in record_ids]

        def work(uow: UnitOfWork) -> UndoResult:
            undone: list[int] = []
            missing: list[int] = []
            deleted_at = self._clock()
            for attendance_id in ids:
                record = uow.attendance.get_by_id(attendance_id)
                if record is None or record.is_deleted:
                    missing.append(attendance_id)
                    continue
                deleted = replace(record, is_deleted=True, deleted_by=deleted_by, deleted_at=deleted_at)
                self._adjuster.adjust(
                    uow,
                    record.employee_id,
                    old=LeaveCharge.of(record.date, record.status),
                    new=None,
                    write=lambda deleted=deleted: uow.attendance.update(deleted),
                )
                undone.append(attendance_id)
            if not undone:
                raise NotFoundError("No attendance records found to undo", attendance_ids=ids)
            return UndoResult(undone_ids=undone, missing_ids=missing)

        result = self._executor.run(work, label="attendance.undo")
        logger.info(
            "attendance_undone",
            extra={"undone": result.undone_ids, "missing": result.missing_ids, "deleted_by": deleted_by},
        )
        return result

    # -------- batches --------
    def bulk_mark(
        self,
        records: Sequence[Mapping[str, Any]],
        *,
        marked_by: Optional[int] = None,
        overwrite: bool = False,
        allow_partial: bool = False,
    ) -> BulkMarkResult:
        """Mark a batch of attendance records in one transaction.

        Every record is validated first. Unless ``allow_partial`` is set, a
        single validation error, occupied slot or balance shortfall means
        nothing is written and the collected problems are returned. With
        ``allow_partial`` the failing records are skipped and reported.
        """
        if not records:
            raise ValidationError("records must not be empty")
        today = self._clock().date()

        def work(uow: UnitOfWork) -> BulkMarkResult:
            report = validate_batch(uow, records, today=today, overwrite=overwrite)
            if not allow_partial and (report.errors or report.existing):
                raise _BatchRejected(BulkMarkResult(errors=report.errors, existing=report.existing))

            ids: list[int] = []
            errors = list(report.errors)
            for item in report.valid:
                try:
                    result = self._write_mark(uow, item.candidate, item.existing, marked_by)
                except InsufficientLeaveBalanceError as exc:
                    failure = RecordError(
                        index=item.index,
                        employee_id=item.candidate.employee_id,
                        code=exc.code,
                        message=exc.message,
                    )
                    if not allow_partial:
                        raise _BatchRejected(BulkMarkResult(errors=[failure]))
                    errors.append(failure)
                    continue
                ids.append(result.attendance_id)
            return BulkMarkResult(attendance_ids=ids, errors=errors, existing=report.existing)

        try:
            result = self._executor.run(work, label="attendance.bulk_mark")
        except _BatchRejected as rejected:
            logger.info(
                "bulk_mark_rejected",
                extra={
                    "records": len(records),
                    "errors": len(rejected.result.errors),
                    "existing": len(rejected.result.existing),
                },
            )
            return rejected.result

        logger.info(
            "bulk_mark_applied",
            extra={
                "records": len(records),
                "marked": len(result.attendance_ids),
                "errors": len(result.errors),
                "existing": len(result.existing),
            },
        )
        return result

    # -------- reads --------
    def monthly_attendance(
        self,
        year: int,
        month: int,
        employee_id: Optional[int] = None,
        location_id: Optional[int] = None,
    ) -> list[AttendanceRecord]:
        if not 1 <= int(month) <= 12:
            raise ValidationError(f"Invalid month: {month}", month=month)

        def work(uow: UnitOfWork) -> list[AttendanceRecord]:
            return list(
                uow.attendance.list_active_for_month(
                    year=int(year),
                    month=int(month),
                    employee_id=employee_id,
                    location_id=location_id,
                )
            )

        return self._executor.run(work, label="attendance.monthly")

    def _write_mark(
        self,
        uow: UnitOfWork,
        candidate,
        existing: Optional[AttendanceRecord],
        marked_by: Optional[int],
    ) -> MarkResult:
        new = LeaveCharge.of(candidate.date, candidate.status)
        old = LeaveCharge.of(existing.date, existing.status) if existing is not None else None

        def write() -> int:
            if existing is None:
                record = uow.attendance.add(
                    employee_id=candidate.employee_id,
                    location_id=candidate.location_id,
                    date=candidate.date,
                    status=candidate.status,
                    marked_by=marked_by,
                )
                return record.attendance_id
            uow.attendance.update(replace(existing, status=candidate.status, date=candidate.date, marked_by=marked_by))
            return existing.attendance_id

        attendance_id, adjustment = self._adjuster.adjust(
            uow, candidate.employee_id, old=old, new=new, write=write
        )
        return MarkResult(
            attendance_id=attendance_id,
            ledger=adjustment.entries[new.period],
            delta=adjustment.deltas[new.period],
        )
