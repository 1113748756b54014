from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base exception for business rule violations.

    ``context`` carries the structured details a caller needs to act on the
    error (ids, balances, the existing record status, ...).
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class ValidationError(DomainError):
    """Raised when input data is malformed or missing."""

    code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    """Raised when an employee, location, record or request does not exist."""

    code = "NOT_FOUND"


class BusinessRuleError(DomainError):
    """Raised when well-formed input violates a ledger or attendance rule."""

    code = "BUSINESS_RULE"


class FutureDateError(BusinessRuleError):
    code = "FUTURE_DATE"


class DuplicateAttendanceError(BusinessRuleError):
    code = "ATTENDANCE_EXISTS"


class InsufficientLeaveBalanceError(BusinessRuleError):
    code = "INSUFFICIENT_BALANCE"


class RequestAlreadyDecidedError(BusinessRuleError):
    code = "REQUEST_DECIDED"


class StoreError(Exception):
    """I/O failure reported by the record store. Never retried."""


class ConflictError(StoreError):
    """Optimistic-concurrency failure: another transaction won the write."""


class TransactionExhaustedError(Exception):
    """Raised when a unit of work keeps conflicting past the retry ceiling."""

    def __init__(self, label: str, attempts: int):
        super().__init__(f"Transaction '{label}' failed after {attempts} attempts")
        self.label = label
        self.attempts = attempts
