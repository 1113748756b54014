"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30), name="IST")

DEFAULT_PAID_LEAVES_PER_YEAR = 24
DEFAULT_HALF_DAY_WEIGHT = 0.5
FULL_LEAVE_WEIGHT = 1.0

DEFAULT_TXN_MAX_ATTEMPTS = 3
DEFAULT_TXN_BASE_DELAY = 0.1
DEFAULT_TXN_BACKOFF_FACTOR = 2.0
DEFAULT_TXN_MAX_DELAY = 2.0

DEFAULT_REQUEST_LIST_LIMIT = 200
