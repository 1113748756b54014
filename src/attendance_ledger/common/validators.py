from __future__ import annotations

from datetime import date
from typing import Any

from ..core.enums import AttendanceStatus
from ..core.exceptions import FutureDateError, ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return str(value).strip()


def require_id(value: Any, field_name: str) -> int:
    if value is None or isinstance(value, bool) or value == "":
        raise ValidationError(f"{field_name} is required", field=field_name)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name)


def parse_status(value: Any) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid status '{value}'. Must be one of {allowed}", field="status")


def require_not_future(day: date, today: date) -> date:
    if day > today:
        raise FutureDateError(f"Cannot use future date {day.isoformat()}", date=day.isoformat())
    return day
