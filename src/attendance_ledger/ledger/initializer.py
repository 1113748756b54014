from __future__ import annotations

import logging

from ..common.datetime_utils import prev_month
from ..core.config import LedgerConfig
from ..storage.unit_of_work import UnitOfWork
from .model import Employee, LedgerEntry
from .repository import require_employee

logger = logging.getLogger(__name__)


class LedgerInitializer:
    """Opens ledger months lazily, the first time a month is touched."""

    def __init__(self, config: LedgerConfig):
        self._config = config

    def ensure_month(self, uow: UnitOfWork, employee_id: int, year: int, month: int) -> LedgerEntry:
        employee = require_employee(uow.employees, employee_id)
        existing = employee.entry(year, month)
        if existing is not None:
            return existing

        entry = self.opening_entry(uow, employee, year, month)
        uow.employees.save(employee.with_entry(entry))
        logger.info(
            "ledger_month_opened",
            extra={
                "employee_id": employee.employee_id,
                "year": year,
                "month": month,
                "allocated": entry.allocated,
                "carried_forward": entry.carried_forward,
            },
        )
        return entry

    def opening_entry(self, uow: UnitOfWork, employee: Employee, year: int, month: int) -> LedgerEntry:
        """Build (without saving) the entry a month would open with.

        The prior month's ``available`` is carried in only when that month is
        on/after the join month and has attendance activity.
        """
        return LedgerEntry.opening(
            employee_id=employee.employee_id,
            year=year,
            month=month,
            allocated=self._config.monthly_allocation(employee.location_id),
            carried_forward=self._carried_in(uow, employee, year, month),
        )

    def _carried_in(self, uow: UnitOfWork, employee: Employee, year: int, month: int) -> float:
        if month == 1 and not self._config.carries_across_years:
            return 0.0
        prior_key = prev_month(year, month)
        prior = employee.entry(*prior_key)
        if prior is None or prior_key < employee.join_month:
            return 0.0
        if not uow.attendance.has_activity_in_month(
            employee_id=employee.employee_id, year=prior_key[0], month=prior_key[1]
        ):
            return 0.0
        return max(prior.available, 0.0)
