from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, TypeVar

from ..core.enums import AttendanceStatus
from ..core.exceptions import InsufficientLeaveBalanceError
from ..storage.unit_of_work import UnitOfWork
from .corrector import LedgerCorrector
from .cost import LeaveCostPolicy
from .initializer import LedgerInitializer
from .model import LedgerEntry
from .propagator import CarryForwardPropagator

logger = logging.getLogger(__name__)

T = TypeVar("T")

Period = tuple[int, int]


@dataclass(frozen=True)
class LeaveCharge:
    """An attendance status placed in a ledger month."""

    year: int
    month: int
    status: AttendanceStatus

    @property
    def period(self) -> Period:
        return (self.year, self.month)

    @classmethod
    def of(cls, when: datetime, status: AttendanceStatus) -> "LeaveCharge":
        return cls(year=when.year, month=when.month, status=status)


@dataclass(frozen=True)
class Adjustment:
    deltas: dict[Period, float]
    entries: dict[Period, LedgerEntry]


class LedgerAdjuster:
    """Applies an attendance status change to the ledger.

    Credits what the old status cost, debits what the new one costs, checks
    the balance of the debited month, runs the attendance write, then
    re-derives the touched months and propagates their closing balances.
    Must run inside the caller's transaction.
    """

    def __init__(
        self,
        initializer: LedgerInitializer,
        corrector: LedgerCorrector,
        propagator: CarryForwardPropagator,
        cost_policy: LeaveCostPolicy,
    ):
        self._initializer = initializer
        self._corrector = corrector
        self._propagator = propagator
        self._cost = cost_policy

    def adjust(
        self,
        uow: UnitOfWork,
        employee_id: int,
        *,
        old: Optional[LeaveCharge],
        new: Optional[LeaveCharge],
        write: Callable[[], T],
    ) -> tuple[T, Adjustment]:
        deltas: dict[Period, float] = defaultdict(float)
        if old is not None:
            deltas[old.period] -= self._cost.cost(old.status)
        if new is not None:
            deltas[new.period] += self._cost.cost(new.status)
        periods = sorted(deltas)

        entries = {p: self._initializer.ensure_month(uow, employee_id, *p) for p in periods}
        if new is not None and self._cost.requires_balance(new.status):
            self._check_balance(employee_id, entries[new.period], deltas[new.period])

        result = write()

        for period in periods:
            entry = self._corrector.correct_month(uow, employee_id, *period)
            self._propagator.propagate(uow, employee_id, period[0], period[1], entry.available)
        employee = self._corrector.refresh_summary(uow, employee_id)

        settled = {p: employee.entry(*p) for p in periods}
        return result, Adjustment(deltas=dict(deltas), entries=settled)

    @staticmethod
    def _check_balance(employee_id: int, entry: LedgerEntry, delta: float) -> None:
        if delta <= 0 or round(entry.available - delta, 4) >= 0:
            return
        logger.info(
            "leave_balance_insufficient",
            extra={"employee_id": employee_id, "year": entry.year, "month": entry.month, "available": entry.available, "required": delta},
        )
        raise InsufficientLeaveBalanceError(
            f"Employee {employee_id} has insufficient leaves for {entry.month}/{entry.year}",
            employee_id=employee_id,
            year=entry.year,
            month=entry.month,
            available=entry.available,
            required=delta,
        )
