import os

from config import parse_location_leaves

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "leave_ledger"),
}

PAID_LEAVES_PER_YEAR = float(os.getenv("PAID_LEAVES_PER_YEAR", "24"))
LOCATION_LEAVES_PER_YEAR = parse_location_leaves(os.getenv("LOCATION_LEAVES_PER_YEAR", ""))
HALF_DAY_WEIGHT = float(os.getenv("HALF_DAY_WEIGHT", "0.5"))
HALF_DAY_REQUIRES_BALANCE = bool(int(os.getenv("HALF_DAY_REQUIRES_BALANCE", "0")))
YEAR_BOUNDARY_POLICY = os.getenv("YEAR_BOUNDARY_POLICY", "reset")

TXN_MAX_ATTEMPTS = int(os.getenv("TXN_MAX_ATTEMPTS", "3"))
TXN_BASE_DELAY = float(os.getenv("TXN_BASE_DELAY", "0.1"))
TXN_MAX_DELAY = float(os.getenv("TXN_MAX_DELAY", "2.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = bool(int(os.getenv("LOG_JSON", "1")))

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
