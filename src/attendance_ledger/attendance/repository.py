from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_active(self, *, employee_id: int, location_id: int, day: date) -> Optional[AttendanceRecord]:
        """The non-deleted record occupying a slot, if any."""

        raise NotImplementedError

    def list_active_for_month(
        self,
        *,
        year: int,
        month: int,
        employee_id: Optional[int] = None,
        location_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def has_activity_in_month(self, *, employee_id: int, year: int, month: int) -> bool:
        """True when a non-deleted present / leave / half-day record exists."""

        raise NotImplementedError

    def add(
        self,
        *,
        employee_id: int,
        location_id: int,
        date: datetime,
        status: AttendanceStatus,
        marked_by: Optional[int] = None,
    ) -> AttendanceRecord:
        raise NotImplementedError

    def update(self, record: AttendanceRecord) -> None:
        raise NotImplementedError
