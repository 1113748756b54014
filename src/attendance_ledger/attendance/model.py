from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus
from ..ledger.model import LedgerEntry


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance mark. Soft-deleted, never removed."""

    attendance_id: int
    employee_id: int
    location_id: int
    date: datetime
    status: AttendanceStatus
    marked_by: Optional[int] = None
    edited_by: Optional[int] = None
    deleted_by: Optional[int] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    @property
    def day(self) -> date:
        return self.date.date()

    @property
    def period(self) -> tuple[int, int]:
        return (self.date.year, self.date.month)


@dataclass(frozen=True)
class AttendanceCandidate:
    """A field-validated attendance input, not yet checked against the store."""

    employee_id: int
    location_id: int
    date: datetime
    status: AttendanceStatus

    @property
    def day(self) -> date:
        return self.date.date()


@dataclass(frozen=True)
class RecordError:
    index: Optional[int]
    employee_id: Optional[int]
    code: str
    message: str


@dataclass(frozen=True)
class ExistingRecord:
    index: int
    employee_id: int
    attendance_id: int
    date: str
    status: AttendanceStatus


@dataclass(frozen=True)
class MarkResult:
    attendance_id: int
    ledger: LedgerEntry
    delta: float


@dataclass(frozen=True)
class BulkMarkResult:
    attendance_ids: list[int] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)
    existing: list[ExistingRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and not self.existing


@dataclass(frozen=True)
class UndoResult:
    undone_ids: list[int]
    missing_ids: list[int]
