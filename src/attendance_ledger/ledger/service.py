from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_ist, prev_month
from ..common.validators import require_id
from ..core.exceptions import DomainError, StoreError, TransactionExhaustedError, ValidationError
from ..storage.unit_of_work import UnitOfWork
from ..transactions.executor import TransactionalExecutor
from .corrector import LedgerCorrector
from .initializer import LedgerInitializer
from .model import Employee, EmployeeLeaveSummary
from .propagator import CarryForwardPropagator
from .repository import require_employee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeFailure:
    employee_id: int
    error: str


@dataclass(frozen=True)
class LedgerBatchResult:
    """Per-employee outcome of a job that walks every employee."""

    processed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[EmployeeFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class LedgerService:
    """Administrative ledger operations: inspection, rebuilds, month roll-over
    and manual summary overrides. Each employee is its own transaction."""

    def __init__(
        self,
        executor: TransactionalExecutor,
        initializer: LedgerInitializer,
        corrector: LedgerCorrector,
        propagator: CarryForwardPropagator,
        *,
        clock: Callable[[], datetime] = now_ist,
    ):
        self._executor = executor
        self._initializer = initializer
        self._corrector = corrector
        self._propagator = propagator
        self._clock = clock

    def get_ledger(self, employee_id: int) -> Employee:
        employee_id = require_id(employee_id, "employee_id")
        return self._executor.run(lambda uow: require_employee(uow.employees, employee_id), label="ledger.get")

    def recompute(self, employee_id: int, as_of: Optional[date] = None) -> Employee:
        employee_id = require_id(employee_id, "employee_id")
        if as_of is not None and as_of > self._clock().date():
            raise ValidationError(f"as_of {as_of.isoformat()} is in the future", as_of=as_of.isoformat())
        year = as_of.year if as_of else None
        month = as_of.month if as_of else None
        return self._executor.run(
            lambda uow: self._corrector.recompute(uow, employee_id, year, month),
            label="ledger.recompute",
        )

    def recompute_all(self, as_of: Optional[date] = None) -> LedgerBatchResult:
        """Rebuild every employee's ledger; one failure does not stop the rest."""
        result = LedgerBatchResult()
        for employee_id in self._employee_ids():
            try:
                self.recompute(employee_id, as_of)
            except (DomainError, StoreError, TransactionExhaustedError) as exc:
                logger.error("ledger_recompute_failed", extra={"employee_id": employee_id, "error": str(exc)})
                result.failed.append(EmployeeFailure(employee_id=employee_id, error=str(exc)))
                continue
            result.processed.append(employee_id)

        logger.info(
            "ledger_recompute_all_finished",
            extra={"processed": len(result.processed), "failed": len(result.failed)},
        )
        return result

    def roll_forward(self) -> LedgerBatchResult:
        """Open the current month for every employee, carrying last month's balance in.

        Meant to run shortly after midnight on the first of the month.
        """
        today = self._clock().date()
        current = (today.year, today.month)
        result = LedgerBatchResult()

        for employee_id in self._employee_ids():
            try:
                rolled = self._executor.run(
                    lambda uow, employee_id=employee_id: self._roll_employee(uow, employee_id, current),
                    label="ledger.roll_forward",
                )
            except (DomainError, StoreError, TransactionExhaustedError) as exc:
                logger.error("ledger_roll_forward_failed", extra={"employee_id": employee_id, "error": str(exc)})
                result.failed.append(EmployeeFailure(employee_id=employee_id, error=str(exc)))
                continue
            (result.processed if rolled else result.skipped).append(employee_id)

        logger.info(
            "ledger_roll_forward_finished",
            extra={
                "month": f"{current[0]}-{current[1]:02d}",
                "processed": len(result.processed),
                "skipped": len(result.skipped),
                "failed": len(result.failed),
            },
        )
        return result

    def _roll_employee(self, uow: UnitOfWork, employee_id: int, current: tuple[int, int]) -> bool:
        employee = require_employee(uow.employees, employee_id)
        if employee.join_month > current:
            return False

        previous_key = prev_month(*current)
        previous = employee.entry(*previous_key)
        if previous is not None and previous_key >= employee.join_month:
            self._propagator.propagate(uow, employee_id, previous_key[0], previous_key[1], previous.available)
        self._initializer.ensure_month(uow, employee_id, *current)
        self._corrector.refresh_summary(uow, employee_id)
        return True

    def override_summary(
        self,
        employee_id: int,
        used: float,
        available: float,
        allocated: Optional[float] = None,
    ) -> Employee:
        """Pin the yearly summary to manually entered values.

        While pinned, mutations and recomputes leave the summary alone; the
        monthly entries keep being maintained.
        """
        employee_id = require_id(employee_id, "employee_id")
        for name, value in (("used", used), ("available", available), ("allocated", allocated)):
            if value is not None and float(value) < 0:
                raise ValidationError(f"{name} must not be negative", field=name)

        def work(uow: UnitOfWork) -> Employee:
            employee = require_employee(uow.employees, employee_id)
            summary = EmployeeLeaveSummary(
                allocated=float(allocated) if allocated is not None else employee.leave_summary.allocated,
                used=float(used),
                available=float(available),
            )
            return uow.employees.save(replace(employee, manual_override=True, leave_summary=summary))

        employee = self._executor.run(work, label="ledger.override_summary")
        logger.info(
            "leave_summary_overridden",
            extra={"employee_id": employee_id, "used": float(used), "available": float(available)},
        )
        return employee

    def clear_override(self, employee_id: int) -> Employee:
        employee_id = require_id(employee_id, "employee_id")

        def work(uow: UnitOfWork) -> Employee:
            employee = require_employee(uow.employees, employee_id)
            uow.employees.save(replace(employee, manual_override=False))
            return self._corrector.recompute(uow, employee_id)

        employee = self._executor.run(work, label="ledger.clear_override")
        logger.info("leave_summary_override_cleared", extra={"employee_id": employee_id})
        return employee

    def _employee_ids(self) -> list[int]:
        return list(self._executor.run(lambda uow: uow.employees.list_ids(), label="ledger.list_employees"))
