from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import iter_months, now_ist, prev_month
from ..core.config import LedgerConfig
from ..storage.unit_of_work import UnitOfWork
from .allocation import prorated_allocation
from .cost import LeaveCostPolicy, StandardLeaveCostPolicy
from .initializer import LedgerInitializer
from .model import Employee, EmployeeLeaveSummary, LedgerEntry
from .repository import require_employee

logger = logging.getLogger(__name__)


class LedgerCorrector:
    """Rebuilds ledger months from the attendance history.

    The stored ``taken`` counters are never trusted: consumption is always
    re-derived from the non-deleted attendance records of the month, so
    running ``recompute`` twice without attendance changes is a no-op.
    """

    def __init__(
        self,
        config: LedgerConfig,
        initializer: LedgerInitializer,
        *,
        cost_policy: Optional[LeaveCostPolicy] = None,
        clock: Callable[[], datetime] = now_ist,
    ):
        self._config = config
        self._initializer = initializer
        self._cost = cost_policy or StandardLeaveCostPolicy(config)
        self._clock = clock

    def recompute(
        self,
        uow: UnitOfWork,
        employee_id: int,
        as_of_year: Optional[int] = None,
        as_of_month: Optional[int] = None,
    ) -> Employee:
        today = self._clock().date()
        as_of = (as_of_year or today.year, as_of_month or today.month)
        employee = require_employee(uow.employees, employee_id)

        entries = self._deduplicate(employee)
        entries = self._backfill(employee, entries, (today.year, today.month))
        entries.sort(key=lambda e: e.key)

        monthly = self._config.monthly_allocation(employee.location_id)
        corrected: list[LedgerEntry] = []
        previous: Optional[LedgerEntry] = None
        for entry in entries:
            if entry.key <= as_of:
                entry = entry.settle(
                    consumption=self._consumption(uow, employee.employee_id, *entry.key),
                    carried_forward=self._opening_balance(uow, employee.employee_id, previous, entry),
                    allocated=monthly,
                )
            corrected.append(entry)
            previous = entry

        employee = replace(employee, monthly_leaves=tuple(corrected))
        employee = self._with_summary(employee, today.year)
        logger.info(
            "ledger_recomputed",
            extra={"employee_id": employee.employee_id, "as_of": f"{as_of[0]}-{as_of[1]:02d}", "months": len(corrected)},
        )
        return uow.employees.save(employee)

    def correct_month(self, uow: UnitOfWork, employee_id: int, year: int, month: int) -> LedgerEntry:
        """Re-derive one month's consumption, keeping its opening balance."""
        employee = require_employee(uow.employees, employee_id)
        entry = employee.entry(year, month) or self._initializer.opening_entry(uow, employee, year, month)
        settled = entry.settle(consumption=self._consumption(uow, employee.employee_id, year, month))
        if settled != employee.entry(year, month):
            uow.employees.save(employee.with_entry(settled))
        return settled

    def refresh_summary(self, uow: UnitOfWork, employee_id: int) -> Employee:
        employee = require_employee(uow.employees, employee_id)
        refreshed = self._with_summary(employee, self._clock().year)
        if refreshed != employee:
            uow.employees.save(refreshed)
        return refreshed

    def _consumption(self, uow: UnitOfWork, employee_id: int, year: int, month: int) -> float:
        records = uow.attendance.list_active_for_month(year=year, month=month, employee_id=employee_id)
        return self._cost.consumption(records)

    def _opening_balance(
        self,
        uow: UnitOfWork,
        employee_id: int,
        previous: Optional[LedgerEntry],
        entry: LedgerEntry,
    ) -> float:
        if previous is None or previous.key != prev_month(*entry.key):
            return 0.0
        if entry.month == 1 and not self._config.carries_across_years:
            return 0.0
        # No attendance in the previous month means nothing to carry.
        if not uow.attendance.has_activity_in_month(employee_id=employee_id, year=previous.year, month=previous.month):
            return 0.0
        return max(previous.available, 0.0)

    def _deduplicate(self, employee: Employee) -> list[LedgerEntry]:
        seen: set[tuple[int, int]] = set()
        unique: list[LedgerEntry] = []
        for entry in employee.monthly_leaves:
            if entry.key in seen:
                logger.warning(
                    "ledger_duplicate_month",
                    extra={"employee_id": employee.employee_id, "year": entry.year, "month": entry.month},
                )
                continue
            seen.add(entry.key)
            unique.append(entry)
        return unique

    def _backfill(
        self,
        employee: Employee,
        entries: list[LedgerEntry],
        current: tuple[int, int],
    ) -> list[LedgerEntry]:
        present = {e.key for e in entries}
        monthly = self._config.monthly_allocation(employee.location_id)
        for year, month in iter_months(employee.join_month, current):
            if (year, month) not in present:
                entries.append(LedgerEntry.opening(employee_id=employee.employee_id, year=year, month=month, allocated=monthly))
        return entries

    def _with_summary(self, employee: Employee, year: int) -> Employee:
        if employee.manual_override:
            return employee
        allocated = prorated_allocation(employee.join_date, self._config.leave_allocation(employee.location_id), year)
        used = round(sum(min(e.taken, e.allowance) for e in employee.monthly_leaves), 4)
        summary = EmployeeLeaveSummary(allocated=allocated, used=used, available=round(max(0.0, allocated - used), 4))
        return replace(employee, leave_summary=summary)
