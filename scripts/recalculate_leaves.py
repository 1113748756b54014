"""Rebuild every employee's leave ledger from the attendance history.

Run after data repairs or a settings change. Each employee is recomputed
in its own transaction; failures are reported and the run continues.
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from attendance_ledger.main import create_container


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--employee", type=int, help="only recompute this employee")
    parser.add_argument("--as-of", type=date.fromisoformat, help="last month to recompute (YYYY-MM-DD)")
    args = parser.parse_args()

    container = create_container()
    ledger = container.ledger_service

    if args.employee is not None:
        employee = ledger.recompute(args.employee, args.as_of)
        summary = employee.leave_summary
        print(f"Employee {employee.employee_id}: used={summary.used} available={summary.available}")
        return 0

    result = ledger.recompute_all(args.as_of)
    for failure in result.failed:
        print(f"FAILED employee {failure.employee_id}: {failure.error}", file=sys.stderr)
    print(f"Recomputed {len(result.processed)} employee(s), {len(result.failed)} failure(s)")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
