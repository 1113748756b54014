from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Any, Dict, Iterator, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import next_month
from ..core.constants import DEFAULT_REQUEST_LIST_LIMIT
from ..core.enums import ACTIVITY_STATUSES, AttendanceStatus, RequestStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime, to_float
from ..ledger.model import Employee, EmployeeLeaveSummary, LedgerEntry
from ..ledger.repository import require_employee
from ..requests.model import AttendanceCorrectionRequest

logger = logging.getLogger(__name__)

_ATTENDANCE_COLUMNS = """
    attendance_id, employee_id, location_id, attendance_date, status,
    marked_by, edited_by, deleted_by, is_deleted, deleted_at
"""

_REQUEST_COLUMNS = """
    request_id, employee_id, location_id, request_date, requested_status, reason,
    status, created_at, requested_by, reviewed_by, reviewed_at
"""


def _month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1)
    end = datetime(*next_month(year, month), 1)
    return start, end


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, datetime.fromordinal(day.toordinal() + 1)


class MySQLStore:
    """Transactional store on MySQL / InnoDB.

    Each transaction runs on its own connection at REPEATABLE READ. Attendance
    and request writes go straight to the database; employee aggregates are
    buffered and written at commit with a ``version`` check, so a concurrent
    writer surfaces as ``ConflictError``.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator["MySQLUnitOfWork"]:
        with db_cursor(self._conn_factory, isolation_level="REPEATABLE READ") as (_, cur):
            uow = MySQLUnitOfWork(cur)
            yield uow
            uow.flush()


class MySQLUnitOfWork:
    def __init__(self, cur):
        self.employees = MySQLEmployeeRepository(cur)
        self.attendance = MySQLAttendanceRepository(cur)
        self.corrections = MySQLCorrectionRequestRepository(cur)
        self.locations = MySQLLocationRepository(cur)

    def flush(self) -> None:
        self.employees.flush()


class MySQLEmployeeRepository:
    def __init__(self, cur):
        self._cur = cur
        self._loaded: Dict[int, Employee] = {}
        self._dirty: Dict[int, Employee] = {}

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        employee_id = int(employee_id)
        if employee_id in self._dirty:
            return self._dirty[employee_id]
        if employee_id in self._loaded:
            return self._loaded[employee_id]

        self._cur.execute(
            """
            SELECT employee_id, location_id, join_date, manual_override,
                   summary_allocated, summary_used, summary_available, version
            FROM employees
            WHERE employee_id=%s
            """,
            (employee_id,),
        )
        r = fetchone(self._cur)
        if not r:
            return None

        self._cur.execute(
            """
            SELECT year, month, allocated, taken, carried_forward, available
            FROM monthly_leaves
            WHERE employee_id=%s
            ORDER BY year, month
            """,
            (employee_id,),
        )
        entries = tuple(
            LedgerEntry(
                employee_id=employee_id,
                year=int(m["year"]),
                month=int(m["month"]),
                allocated=to_float(m["allocated"]),
                taken=to_float(m["taken"]),
                carried_forward=to_float(m["carried_forward"]),
                available=to_float(m["available"]),
            )
            for m in fetchall(self._cur)
        )
        employee = Employee(
            employee_id=int(r["employee_id"]),
            location_id=int(r["location_id"]) if r.get("location_id") is not None else None,
            join_date=r["join_date"],
            manual_override=bool(r["manual_override"]),
            leave_summary=EmployeeLeaveSummary(
                allocated=to_float(r["summary_allocated"]),
                used=to_float(r["summary_used"]),
                available=to_float(r["summary_available"]),
            ),
            monthly_leaves=entries,
            version=int(r["version"]),
        )
        self._loaded[employee_id] = employee
        return employee

    def save(self, employee: Employee) -> Employee:
        if employee.employee_id not in self._loaded:
            require_employee(self, employee.employee_id)
        self._dirty[employee.employee_id] = employee
        return employee

    def list_ids(self) -> Sequence[int]:
        self._cur.execute("SELECT employee_id FROM employees ORDER BY employee_id")
        return [int(r["employee_id"]) for r in fetchall(self._cur)]

    def flush(self) -> None:
        for employee_id, employee in self._dirty.items():
            seen = self._loaded[employee_id].version
            summary = employee.leave_summary
            self._cur.execute(
                """
                UPDATE employees
                SET manual_override=%s, summary_allocated=%s, summary_used=%s, summary_available=%s,
                    version=version+1
                WHERE employee_id=%s AND version=%s
                """,
                (int(employee.manual_override), summary.allocated, summary.used, summary.available, employee_id, seen),
            )
            if self._cur.rowcount == 0:
                logger.debug("employee_version_conflict", extra={"employee_id": employee_id, "seen": seen})
                raise ConflictError(f"Employee {employee_id} was changed by a concurrent transaction")

            self._cur.execute("DELETE FROM monthly_leaves WHERE employee_id=%s", (employee_id,))
            written: set[tuple[int, int]] = set()
            for e in employee.monthly_leaves:
                if e.key in written:
                    continue
                written.add(e.key)
                self._cur.execute(
                    """
                    INSERT INTO monthly_leaves(employee_id, year, month, allocated, taken, carried_forward, available)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (employee_id, e.year, e.month, e.allocated, e.taken, e.carried_forward, e.available),
                )
        self._dirty.clear()


class MySQLAttendanceRepository:
    def __init__(self, cur):
        self._cur = cur

    @staticmethod
    def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
        return AttendanceRecord(
            attendance_id=int(r["attendance_id"]),
            employee_id=int(r["employee_id"]),
            location_id=int(r["location_id"]),
            date=from_db_datetime(r["attendance_date"]),
            status=AttendanceStatus(r["status"]),
            marked_by=r.get("marked_by"),
            edited_by=r.get("edited_by"),
            deleted_by=r.get("deleted_by"),
            is_deleted=bool(r["is_deleted"]),
            deleted_at=from_db_datetime(r.get("deleted_at")),
        )

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        self._cur.execute(
            f"SELECT {_ATTENDANCE_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
            (int(attendance_id),),
        )
        r = fetchone(self._cur)
        return self._to_record(r) if r else None

    def find_active(self, *, employee_id: int, location_id: int, day: date) -> Optional[AttendanceRecord]:
        start, end = _day_bounds(day)
        self._cur.execute(
            f"""
            SELECT {_ATTENDANCE_COLUMNS}
            FROM attendance_records
            WHERE employee_id=%s AND location_id=%s AND is_deleted=0
              AND attendance_date >= %s AND attendance_date < %s
            ORDER BY attendance_id
            LIMIT 1
            """,
            (int(employee_id), int(location_id), start, end),
        )
        r = fetchone(self._cur)
        return self._to_record(r) if r else None

    def list_active_for_month(
        self,
        *,
        year: int,
        month: int,
        employee_id: Optional[int] = None,
        location_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        start, end = _month_bounds(year, month)
        clauses = ["is_deleted=0", "attendance_date >= %s", "attendance_date < %s"]
        params: list[object] = [start, end]
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        if location_id is not None:
            clauses.append("location_id=%s")
            params.append(int(location_id))

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_ATTENDANCE_COLUMNS}
            FROM attendance_records
            WHERE {where}
            ORDER BY attendance_date, attendance_id
            """,
            tuple(params),
        )
        return [self._to_record(r) for r in fetchall(self._cur)]

    def has_activity_in_month(self, *, employee_id: int, year: int, month: int) -> bool:
        start, end = _month_bounds(year, month)
        statuses = sorted(s.value for s in ACTIVITY_STATUSES)
        placeholders = ",".join(["%s"] * len(statuses))
        self._cur.execute(
            f"""
            SELECT 1 AS hit
            FROM attendance_records
            WHERE employee_id=%s AND is_deleted=0
              AND attendance_date >= %s AND attendance_date < %s
              AND status IN ({placeholders})
            LIMIT 1
            """,
            (int(employee_id), start, end, *statuses),
        )
        return fetchone(self._cur) is not None

    def add(
        self,
        *,
        employee_id: int,
        location_id: int,
        date: datetime,
        status: AttendanceStatus,
        marked_by: Optional[int] = None,
    ) -> AttendanceRecord:
        self._cur.execute(
            """
            INSERT INTO attendance_records(employee_id, location_id, attendance_date, status, marked_by)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (int(employee_id), int(location_id), to_db_datetime(date), status.value, marked_by),
        )
        return AttendanceRecord(
            attendance_id=int(self._cur.lastrowid),
            employee_id=int(employee_id),
            location_id=int(location_id),
            date=from_db_datetime(to_db_datetime(date)),
            status=status,
            marked_by=marked_by,
        )

    def update(self, record: AttendanceRecord) -> None:
        self._cur.execute(
            """
            UPDATE attendance_records
            SET attendance_date=%s, status=%s, marked_by=%s, edited_by=%s, deleted_by=%s,
                is_deleted=%s, deleted_at=%s
            WHERE attendance_id=%s
            """,
            (
                to_db_datetime(record.date),
                record.status.value,
                record.marked_by,
                record.edited_by,
                record.deleted_by,
                int(record.is_deleted),
                to_db_datetime(record.deleted_at) if record.deleted_at else None,
                record.attendance_id,
            ),
        )


class MySQLCorrectionRequestRepository:
    def __init__(self, cur):
        self._cur = cur

    @staticmethod
    def _to_request(r: Dict[str, Any]) -> AttendanceCorrectionRequest:
        return AttendanceCorrectionRequest(
            request_id=int(r["request_id"]),
            employee_id=int(r["employee_id"]),
            location_id=int(r["location_id"]),
            date=from_db_datetime(r["request_date"]),
            requested_status=AttendanceStatus(r["requested_status"]),
            reason=r["reason"],
            status=RequestStatus(r["status"]),
            created_at=from_db_datetime(r["created_at"]),
            requested_by=r.get("requested_by"),
            reviewed_by=r.get("reviewed_by"),
            reviewed_at=from_db_datetime(r.get("reviewed_at")),
        )

    def get_by_id(self, request_id: int) -> Optional[AttendanceCorrectionRequest]:
        self._cur.execute(
            f"SELECT {_REQUEST_COLUMNS} FROM attendance_correction_requests WHERE request_id=%s",
            (int(request_id),),
        )
        r = fetchone(self._cur)
        return self._to_request(r) if r else None

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
        self._cur.execute(
            """
            INSERT INTO attendance_correction_requests(
                employee_id, location_id, request_date, requested_status, reason, status, requested_by, created_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(employee_id),
                int(location_id),
                to_db_datetime(date),
                requested_status.value,
                reason,
                RequestStatus.PENDING.value,
                requested_by,
                to_db_datetime(created_at),
            ),
        )
        return AttendanceCorrectionRequest(
            request_id=int(self._cur.lastrowid),
            employee_id=int(employee_id),
            location_id=int(location_id),
            date=date,
            requested_status=requested_status,
            reason=reason,
            status=RequestStatus.PENDING,
            created_at=created_at,
            requested_by=requested_by,
        )

    def update(self, request: AttendanceCorrectionRequest) -> None:
        self._cur.execute(
            """
            UPDATE attendance_correction_requests
            SET status=%s, reviewed_by=%s, reviewed_at=%s
            WHERE request_id=%s
            """,
            (
                request.status.value,
                request.reviewed_by,
                to_db_datetime(request.reviewed_at) if request.reviewed_at else None,
                request.request_id,
            ),
        )

    def list(
        self,
        *,
        status: Optional[RequestStatus] = None,
        limit: int = DEFAULT_REQUEST_LIST_LIMIT,
    ) -> Sequence[AttendanceCorrectionRequest]:
        if status is None:
            self._cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS} FROM attendance_correction_requests
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
                """,
                (int(limit),),
            )
        else:
            self._cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS} FROM attendance_correction_requests
                WHERE status=%s
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
                """,
                (status.value, int(limit)),
            )
        return [self._to_request(r) for r in fetchall(self._cur)]


class MySQLLocationRepository:
    def __init__(self, cur):
        self._cur = cur

    def exists(self, location_id: int) -> bool:
        self._cur.execute("SELECT 1 AS hit FROM locations WHERE location_id=%s", (int(location_id),))
        return fetchone(self._cur) is not None
