from __future__ import annotations

from typing import ContextManager, Protocol

from ..attendance.repository import AttendanceRepository
from ..ledger.repository import EmployeeRepository
from ..locations.repository import LocationRepository
from ..requests.repository import CorrectionRequestRepository


class UnitOfWork(Protocol):
    """Repositories bound to one open transaction.

    Reads see the transaction's own pending writes. Nothing is visible to
    other transactions until the store commits.
    """

    employees: EmployeeRepository
    attendance: AttendanceRepository
    corrections: CorrectionRequestRepository
    locations: LocationRepository


class TransactionalStore(Protocol):
    def transaction(self) -> ContextManager[UnitOfWork]:
        """Open a transaction; commit on clean exit, roll back on exception.

        Commit raises ``ConflictError`` when a concurrent transaction changed
        data this one wrote.
        """

        raise NotImplementedError
