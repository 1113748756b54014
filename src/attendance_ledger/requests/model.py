from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, RequestStatus


@dataclass(frozen=True)
class AttendanceCorrectionRequest:
    request_id: int
    employee_id: int
    location_id: int
    date: datetime
    requested_status: AttendanceStatus
    reason: str
    status: RequestStatus
    created_at: datetime
    requested_by: Optional[int] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None

    @property
    def day(self) -> date:
        return self.date.date()


@dataclass(frozen=True)
class CorrectionRequestView:
    """Read-model for review screens: the request plus the slot's current status."""

    request: AttendanceCorrectionRequest
    current_status: Optional[AttendanceStatus]
