from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional


def _amount(value: float) -> float:
    # Ledger amounts are multiples of small fractions; keep float noise out of comparisons.
    return round(float(value), 4)


@dataclass(frozen=True)
class LedgerEntry:
    """One month of leave allocation, consumption and balance for one employee."""

    employee_id: int
    year: int
    month: int
    allocated: float
    taken: float = 0.0
    carried_forward: float = 0.0
    available: float = 0.0

    @property
    def key(self) -> tuple[int, int]:
        return (self.year, self.month)

    @property
    def allowance(self) -> float:
        return _amount(self.allocated + self.carried_forward)

    def settle(
        self,
        *,
        consumption: float,
        carried_forward: Optional[float] = None,
        allocated: Optional[float] = None,
    ) -> "LedgerEntry":
        """Return a copy with capped consumption and a recomputed balance."""
        alloc = _amount(self.allocated if allocated is None else allocated)
        carried = _amount(self.carried_forward if carried_forward is None else max(carried_forward, 0.0))
        allowance = alloc + carried
        taken = _amount(min(max(consumption, 0.0), allowance))
        return replace(
            self,
            allocated=alloc,
            carried_forward=carried,
            taken=taken,
            available=_amount(max(0.0, allowance - taken)),
        )

    @classmethod
    def opening(cls, *, employee_id: int, year: int, month: int, allocated: float, carried_forward: float = 0.0) -> "LedgerEntry":
        return cls(employee_id=employee_id, year=year, month=month, allocated=_amount(allocated)).settle(
            consumption=0.0, carried_forward=carried_forward
        )


@dataclass(frozen=True)
class EmployeeLeaveSummary:
    allocated: float = 0.0
    used: float = 0.0
    available: float = 0.0


@dataclass(frozen=True)
class Employee:
    """Employee aggregate as seen by the ledger.

    Profile data lives elsewhere; this carries only what the ledger owns
    plus the ``version`` token used for optimistic concurrency.
    """

    employee_id: int
    location_id: Optional[int]
    join_date: date
    manual_override: bool = False
    leave_summary: EmployeeLeaveSummary = field(default_factory=EmployeeLeaveSummary)
    monthly_leaves: tuple[LedgerEntry, ...] = ()
    version: int = 0

    @property
    def join_month(self) -> tuple[int, int]:
        return (self.join_date.year, self.join_date.month)

    def entry(self, year: int, month: int) -> Optional[LedgerEntry]:
        for e in self.monthly_leaves:
            if e.year == year and e.month == month:
                return e
        return None

    def with_entry(self, entry: LedgerEntry) -> "Employee":
        """Replace the first entry with the same month, or insert it in order."""
        entries = list(self.monthly_leaves)
        for i, e in enumerate(entries):
            if e.key == entry.key:
                entries[i] = entry
                break
        else:
            entries.append(entry)
            entries.sort(key=lambda e: e.key)
        return replace(self, monthly_leaves=tuple(entries))
