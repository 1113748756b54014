"""Example: the ledger services against the in-process store (no database).

An employee with 2 leave days a month takes two days off, is refused a
third, then has one leave undone.
"""

from datetime import date

from attendance_ledger.container import build_container
from attendance_ledger.core.exceptions import InsufficientLeaveBalanceError
from attendance_ledger.ledger.model import Employee
from attendance_ledger.storage.memory import InMemoryStore


def main():
    store = InMemoryStore()
    store.add_location(1)
    store.add_employee(Employee(employee_id=7, location_id=1, join_date=date(2024, 1, 1)))

    container = build_container(store=store)
    attendance = container.attendance_service

    first = attendance.mark(7, 1, "2025-03-10", "leave", marked_by=1)
    attendance.mark(7, 1, "2025-03-11", "leave", marked_by=1)
    try:
        attendance.mark(7, 1, "2025-03-12", "leave", marked_by=1)
    except InsufficientLeaveBalanceError as exc:
        print("refused:", exc.to_dict())

    attendance.undo([first.attendance_id], deleted_by=1)
    entry = container.ledger_service.get_ledger(7).entry(2025, 3)
    print(f"March 2025: taken={entry.taken} available={entry.available}")


if __name__ == "__main__":
    main()
