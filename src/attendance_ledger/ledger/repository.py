from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.exceptions import NotFoundError
from .model import Employee


class EmployeeRepository(Protocol):
    """Employee provider: the ledger reads and writes the aggregate as a whole.

    ``save`` must fail with ``ConflictError`` when the stored version moved
    since the aggregate was read in the current transaction.
    """

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def save(self, employee: Employee) -> Employee:
        raise NotImplementedError

    def list_ids(self) -> Sequence[int]:
        raise NotImplementedError


def require_employee(employees: EmployeeRepository, employee_id: int) -> Employee:
    employee = employees.get_by_id(int(employee_id))
    if employee is None:
        raise NotFoundError(f"Employee {employee_id} not found", employee_id=employee_id)
    return employee
