from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import next_month, now_ist
from ..core.config import LedgerConfig
from ..storage.unit_of_work import UnitOfWork
from .cost import LeaveCostPolicy, StandardLeaveCostPolicy
from .initializer import LedgerInitializer
from .model import LedgerEntry
from .repository import require_employee

logger = logging.getLogger(__name__)


class CarryForwardPropagator:
    """Pushes a month's closing balance into the months after it.

    The carried amount is zero across a year boundary (unless the config
    carries across years) and zero when the source month has no attendance
    activity. Propagation continues through later months while their opening
    balance keeps changing and never opens a month after the current one.
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

    def propagate(
        self,
        uow: UnitOfWork,
        employee_id: int,
        year: int,
        month: int,
        closing_available: float,
    ) -> Optional[LedgerEntry]:
        """Returns the updated entry for the month after (year, month), if any."""
        today = self._clock().date()
        current = (today.year, today.month)
        employee = require_employee(uow.employees, employee_id)
        original = employee

        source = (year, month)
        closing = closing_available
        first: Optional[LedgerEntry] = None
        while True:
            target_key = next_month(*source)
            target = employee.entry(*target_key)
            if target is None:
                if target_key > current:
                    logger.debug(
                        "carry_forward_skipped_future",
                        extra={"employee_id": employee.employee_id, "year": target_key[0], "month": target_key[1]},
                    )
                    break
                target = self._initializer.opening_entry(uow, employee, *target_key)
                is_new = True
            else:
                is_new = False

            records = uow.attendance.list_active_for_month(
                year=target_key[0], month=target_key[1], employee_id=employee.employee_id
            )
            updated = target.settle(
                consumption=self._cost.consumption(records),
                carried_forward=self.carry_amount(uow, employee.employee_id, source, closing),
            )
            employee = employee.with_entry(updated)
            if first is None:
                first = updated
            if updated == target and not is_new:
                break
            source, closing = target_key, updated.available

        if employee != original:
            uow.employees.save(employee)
            logger.info(
                "carry_forward_propagated",
                extra={
                    "employee_id": employee.employee_id,
                    "from": f"{year}-{month:02d}",
                    "carried_forward": first.carried_forward if first else None,
                },
            )
        return first

    def carry_amount(self, uow: UnitOfWork, employee_id: int, source: tuple[int, int], closing: float) -> float:
        year, month = source
        if month == 12 and not self._config.carries_across_years:
            return 0.0
        if not uow.attendance.has_activity_in_month(employee_id=employee_id, year=year, month=month):
            return 0.0
        return max(closing, 0.0)
