import os

from config import parse_location_leaves

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "leave_ledger_test"),
}

PAID_LEAVES_PER_YEAR = 24
LOCATION_LEAVES_PER_YEAR = parse_location_leaves(os.getenv("LOCATION_LEAVES_PER_YEAR", ""))
HALF_DAY_WEIGHT = 0.5
HALF_DAY_REQUIRES_BALANCE = False
YEAR_BOUNDARY_POLICY = "reset"

TXN_MAX_ATTEMPTS = 3
TXN_BASE_DELAY = 0.0
TXN_MAX_DELAY = 0.0

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
LOG_JSON = False

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
