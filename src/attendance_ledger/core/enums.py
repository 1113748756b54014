from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance status stored per employee, location and calendar day."""

    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"
    HALF_DAY = "half-day"


class RequestStatus(str, Enum):
    """Review state of an attendance correction request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class YearBoundaryPolicy(str, Enum):
    """Whether December's closing balance opens the following January."""

    RESET = "reset"
    CARRY = "carry"


# Statuses that count as "the employee was around this month" for carry-forward.
ACTIVITY_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LEAVE, AttendanceStatus.HALF_DAY})
