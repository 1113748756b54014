"""Monthly roll-forward: open the current month for every employee.

Schedule it right after midnight IST on the first day of each month, e.g.
``5 0 1 * * python scripts/carry_forward_job.py``. Running it again in the
same month changes nothing.
"""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from attendance_ledger.main import create_container


def main() -> int:
    container = create_container()
    result = container.ledger_service.roll_forward()
    for failure in result.failed:
        print(f"FAILED employee {failure.employee_id}: {failure.error}", file=sys.stderr)
    print(
        f"Carry-forward done: {len(result.processed)} rolled, "
        f"{len(result.skipped)} not yet joined, {len(result.failed)} failed"
    )
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
