from __future__ import annotations

import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Iterator, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..core.constants import DEFAULT_REQUEST_LIST_LIMIT
from ..core.enums import ACTIVITY_STATUSES, AttendanceStatus, RequestStatus
from ..core.exceptions import ConflictError
from ..ledger.model import Employee
from ..requests.model import AttendanceCorrectionRequest

logger = logging.getLogger(__name__)

EMPLOYEES = "employees"
ATTENDANCE = "attendance"
CORRECTIONS = "corrections"
_TABLES = (EMPLOYEES, ATTENDANCE, CORRECTIONS)


@dataclass(frozen=True)
class _Snapshot:
    rows: dict[str, dict[int, Any]]
    versions: dict[str, dict[int, int]]
    locations: frozenset[int]


class InMemoryStore:
    """Process-local transactional store with optimistic concurrency.

    Each transaction reads a snapshot taken when it opened and buffers its
    writes. Commit checks every written row against the version seen by the
    transaction and enforces one active attendance record per slot; either
    check failing raises ``ConflictError`` and nothing is applied.
    Rows are frozen dataclasses, so snapshots share them safely.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, dict[int, Any]] = {t: {} for t in _TABLES}
        self._versions: dict[str, dict[int, int]] = {t: {} for t in _TABLES}
        self._locations: set[int] = set()
        self._ids = {ATTENDANCE: itertools.count(1), CORRECTIONS: itertools.count(1)}

    # -------- seeding (outside any transaction) --------
    def add_location(self, location_id: int) -> None:
        with self._lock:
            self._locations.add(int(location_id))

    def add_employee(self, employee: Employee) -> Employee:
        with self._lock:
            version = self._versions[EMPLOYEES].get(employee.employee_id, 0) + 1
            stored = replace(employee, version=version)
            self._rows[EMPLOYEES][employee.employee_id] = stored
            self._versions[EMPLOYEES][employee.employee_id] = version
            return stored

    def add_attendance(
        self,
        *,
        employee_id: int,
        location_id: int,
        date: datetime,
        status: AttendanceStatus,
        marked_by: Optional[int] = None,
    ) -> AttendanceRecord:
        with self.transaction() as uow:
            return uow.attendance.add(
                employee_id=employee_id,
                location_id=location_id,
                date=date,
                status=status,
                marked_by=marked_by,
            )

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        with self._lock:
            return self._rows[EMPLOYEES].get(int(employee_id))

    def get_attendance(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._rows[ATTENDANCE].get(int(attendance_id))

    # -------- transactions --------
    @contextmanager
    def transaction(self) -> Iterator["MemoryUnitOfWork"]:
        with self._lock:
            snapshot = _Snapshot(
                rows={t: dict(rows) for t, rows in self._rows.items()},
                versions={t: dict(v) for t, v in self._versions.items()},
                locations=frozenset(self._locations),
            )
        uow = MemoryUnitOfWork(self, snapshot)
        yield uow
        self._commit(uow)

    def _next_id(self, table: str) -> int:
        with self._lock:
            return next(self._ids[table])

    def _commit(self, uow: "MemoryUnitOfWork") -> None:
        if not uow.pending:
            return
        with self._lock:
            for (table, key), seen in uow.write_set.items():
                current = self._versions[table].get(key, 0)
                if current != seen:
                    logger.debug("commit_conflict", extra={"table": table, "key": key, "seen": seen, "current": current})
                    raise ConflictError(f"{table} row {key} was changed by a concurrent transaction")
            self._check_active_slots(uow)

            for (table, key), row in uow.pending.items():
                version = self._versions[table].get(key, 0) + 1
                if table == EMPLOYEES:
                    row = replace(row, version=version)
                self._rows[table][key] = row
                self._versions[table][key] = version

    def _check_active_slots(self, uow: "MemoryUnitOfWork") -> None:
        merged = dict(self._rows[ATTENDANCE])
        touched = []
        for (table, key), row in uow.pending.items():
            if table == ATTENDANCE:
                merged[key] = row
                if not row.is_deleted:
                    touched.append(row)
        for row in touched:
            slot = (row.employee_id, row.location_id, row.day)
            for other in merged.values():
                if (
                    other.attendance_id != row.attendance_id
                    and not other.is_deleted
                    and (other.employee_id, other.location_id, other.day) == slot
                ):
                    raise ConflictError(
                        f"Attendance slot {row.employee_id}/{row.location_id}/{row.day.isoformat()} is already taken"
                    )


class MemoryUnitOfWork:
    def __init__(self, store: InMemoryStore, snapshot: _Snapshot):
        self._store = store
        self._snapshot = snapshot
        self.pending: dict[tuple[str, int], Any] = {}
        self.write_set: dict[tuple[str, int], int] = {}

        self.employees = _MemoryEmployees(self)
        self.attendance = _MemoryAttendance(self)
        self.corrections = _MemoryCorrections(self)
        self.locations = _MemoryLocations(self)

    def get(self, table: str, key: int) -> Any:
        if (table, key) in self.pending:
            return self.pending[(table, key)]
        return self._snapshot.rows[table].get(key)

    def rows(self, table: str) -> list[Any]:
        merged = dict(self._snapshot.rows[table])
        for (t, key), row in self.pending.items():
            if t == table:
                merged[key] = row
        return [merged[k] for k in sorted(merged)]

    def put(self, table: str, key: int, row: Any) -> None:
        self.write_set.setdefault((table, key), self._snapshot.versions[table].get(key, 0))
        self.pending[(table, key)] = row

    def next_id(self, table: str) -> int:
        return self._store._next_id(table)

    @property
    def location_ids(self) -> frozenset[int]:
        return self._snapshot.locations


class _MemoryEmployees:
    def __init__(self, uow: MemoryUnitOfWork):
        self._uow = uow

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self._uow.get(EMPLOYEES, int(employee_id))

    def save(self, employee: Employee) -> Employee:
        self._uow.put(EMPLOYEES, employee.employee_id, employee)
        return employee

    def list_ids(self) -> Sequence[int]:
        return [e.employee_id for e in self._uow.rows(EMPLOYEES)]


class _MemoryAttendance:
    def __init__(self, uow: MemoryUnitOfWork):
        self._uow = uow

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._uow.get(ATTENDANCE, int(attendance_id))

    def find_active(self, *, employee_id: int, location_id: int, day: date) -> Optional[AttendanceRecord]:
        for r in self._uow.rows(ATTENDANCE):
            if not r.is_deleted and r.employee_id == employee_id and r.location_id == location_id and r.day == day:
                return r
        return None

    def list_active_for_month(
        self,
        *,
        year: int,
        month: int,
        employee_id: Optional[int] = None,
        location_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        out = []
        for r in self._uow.rows(ATTENDANCE):
            if r.is_deleted or r.period != (year, month):
                continue
            if employee_id is not None and r.employee_id != employee_id:
                continue
            if location_id is not None and r.location_id != location_id:
                continue
            out.append(r)
        out.sort(key=lambda r: (r.date, r.attendance_id))
        return out

    def has_activity_in_month(self, *, employee_id: int, year: int, month: int) -> bool:
        return any(
            r.status in ACTIVITY_STATUSES
            for r in self.list_active_for_month(year=year, month=month, employee_id=employee_id)
        )

    def add(
        self,
        *,
        employee_id: int,
        location_id: int,
        date: datetime,
        status: AttendanceStatus,
        marked_by: Optional[int] = None,
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            attendance_id=self._uow.next_id(ATTENDANCE),
            employee_id=int(employee_id),
            location_id=int(location_id),
            date=date,
            status=status,
            marked_by=marked_by,
        )
        self._uow.put(ATTENDANCE, record.attendance_id, record)
        return record

    def update(self, record: AttendanceRecord) -> None:
        self._uow.put(ATTENDANCE, record.attendance_id, record)


class _MemoryCorrections:
    def __init__(self, uow: MemoryUnitOfWork):
        self._uow = uow

    def get_by_id(self, request_id: int) -> Optional[AttendanceCorrectionRequest]:
        return self._uow.get(CORRECTIONS, int(request_id))

    def add(
        self,
        *,
        employee_id: int,
        location_id: int,
        date: datetime,
        requested_status: AttendanceStatus,
        reason: str,
        requested_by: Optional[int],
        created_at: datetime,
    ) -> AttendanceCorrectionRequest:
        request = AttendanceCorrectionRequest(
            request_id=self._uow.next_id(CORRECTIONS),
            employee_id=int(employee_id),
            location_id=int(location_id),
            date=date,
            requested_status=requested_status,
            reason=reason,
            status=RequestStatus.PENDING,
            created_at=created_at,
            requested_by=requested_by,
        )
        self._uow.put(CORRECTIONS, request.request_id, request)
        return request

    def update(self, request: AttendanceCorrectionRequest) -> None:
        self._uow.put(CORRECTIONS, request.request_id, request)

    def list(
        self,
        *,
        status: Optional[RequestStatus] = None,
        limit: int = DEFAULT_REQUEST_LIST_LIMIT,
    ) -> Sequence[AttendanceCorrectionRequest]:
        rows = [r for r in self._uow.rows(CORRECTIONS) if status is None or r.status == status]
        rows.sort(key=lambda r: (r.created_at, r.request_id), reverse=True)
        return rows[: int(limit)]


class _MemoryLocations:
    def __init__(self, uow: MemoryUnitOfWork):
        self._uow = uow

    def exists(self, location_id: int) -> bool:
        return int(location_id) in self._uow.location_ids
