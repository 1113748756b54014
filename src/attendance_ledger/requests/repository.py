from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.constants import DEFAULT_REQUEST_LIST_LIMIT
from ..core.enums import AttendanceStatus, RequestStatus
from .model import AttendanceCorrectionRequest


class CorrectionRequestRepository(Protocol):
    def get_by_id(self, request_id: int) -> Optional[AttendanceCorrectionRequest]:
        raise NotImplementedError

    def add(
        self,
        *,
        employee_id: int,
        location_id: int,
        date: datetime,
        requested_status: AttendanceStatus,
        reason: str,
        requested_by: Optional[int],
        created_at: datetime,
    ) -> AttendanceCorrectionRequest:
        raise NotImplementedError

    def update(self, request: AttendanceCorrectionRequest) -> None:
        raise NotImplementedError

    def list(
        self,
        *,
        status: Optional[RequestStatus] = None,
        limit: int = DEFAULT_REQUEST_LIST_LIMIT,
    ) -> Sequence[AttendanceCorrectionRequest]:
        raise NotImplementedError
