from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import normalize_attendance_date
from ..common.validators import parse_status, require_id, require_not_future
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..storage.unit_of_work import UnitOfWork
from .model import AttendanceCandidate, AttendanceRecord, ExistingRecord, RecordError

REQUIRED_FIELDS = ("employee_id", "location_id", "date", "status")


def validate_fields(raw: Mapping[str, Any], *, today: date) -> AttendanceCandidate:
    """Field-level checks that need no store access.

    Raises ``ValidationError`` for missing or malformed values and
    ``FutureDateError`` for dates after ``today``.
    """
    missing = [name for name in REQUIRED_FIELDS if raw.get(name) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required fields for employee {raw.get('employee_id')}: {', '.join(missing)}",
            fields=missing,
        )

    candidate = AttendanceCandidate(
        employee_id=require_id(raw["employee_id"], "employee_id"),
        location_id=require_id(raw["location_id"], "location_id"),
        date=normalize_attendance_date(raw["date"]),
        status=parse_status(raw["status"]),
    )
    require_not_future(candidate.day, today)
    return candidate


def check_references(uow: UnitOfWork, candidate: AttendanceCandidate) -> None:
    if uow.employees.get_by_id(candidate.employee_id) is None:
        raise NotFoundError(f"Employee {candidate.employee_id} not found", employee_id=candidate.employee_id)
    if not uow.locations.exists(candidate.location_id):
        raise NotFoundError(f"Location {candidate.location_id} not found", location_id=candidate.location_id)


@dataclass(frozen=True)
class ValidRecord:
    index: int
    candidate: AttendanceCandidate
    existing: Optional[AttendanceRecord] = None


@dataclass
class BatchReport:
    """Outcome of validating a batch: valid rows, failures and occupied slots."""

    valid: list[ValidRecord] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)
    existing: list[ExistingRecord] = field(default_factory=list)

    def fail(self, index: int, employee_id: Optional[int], exc: DomainError) -> None:
        self.errors.append(RecordError(index=index, employee_id=employee_id, code=exc.code, message=exc.message))


def _raw_employee_id(raw: Any) -> Optional[int]:
    try:
        return int(raw.get("employee_id"))
    except (AttributeError, TypeError, ValueError):
        return None


def validate_batch(
    uow: UnitOfWork,
    records: Sequence[Mapping[str, Any]],
    *,
    today: date,
    overwrite: bool,
) -> BatchReport:
    """Validate every record, collecting all failures instead of stopping at the first."""
    report = BatchReport()
    seen_slots: dict[tuple[int, int, date], int] = {}

    for index, raw in enumerate(records):
        employee_id = _raw_employee_id(raw)
        try:
            if not isinstance(raw, Mapping):
                raise ValidationError(f"Record {index} is not an object")
            candidate = validate_fields(raw, today=today)
            check_references(uow, candidate)
        except DomainError as exc:
            report.fail(index, employee_id, exc)
            continue

        slot = (candidate.employee_id, candidate.location_id, candidate.day)
        if slot in seen_slots:
            report.fail(
                index,
                candidate.employee_id,
                ValidationError(f"Record {index} repeats the slot of record {seen_slots[slot]}"),
            )
            continue
        seen_slots[slot] = index

        existing = uow.attendance.find_active(
            employee_id=candidate.employee_id,
            location_id=candidate.location_id,
            day=candidate.day,
        )
        if existing is not None and not overwrite:
            report.existing.append(
                ExistingRecord(
                    index=index,
                    employee_id=candidate.employee_id,
                    attendance_id=existing.attendance_id,
                    date=existing.date.isoformat(),
                    status=existing.status,
                )
            )
            continue

        report.valid.append(ValidRecord(index=index, candidate=candidate, existing=existing))
    return report
