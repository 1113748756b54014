from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterator, Union

from ..core.constants import IST
from ..core.exceptions import ValidationError

DateInput = Union[str, date, datetime]


def now_ist() -> datetime:
    """Current time at the fixed +05:30 offset.

    Note: Wrapped so tests can inject a fixed clock instead.
    """
    return datetime.now(IST)


def normalize_attendance_date(value: DateInput) -> datetime:
    """Coerce user input into an aware +05:30 datetime.

    Accepts ``YYYY-MM-DD``, ISO 8601 datetimes (with or without offset),
    ``date`` and ``datetime`` objects. Naive values are read as +05:30.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError("Date is required")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid date format: {value}", value=value)
    else:
        raise ValidationError(f"Invalid date input: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=IST)
    return parsed.astimezone(IST)


def next_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def prev_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def iter_months(start: tuple[int, int], end: tuple[int, int]) -> Iterator[tuple[int, int]]:
    """Yield (year, month) from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current = next_month(*current)
