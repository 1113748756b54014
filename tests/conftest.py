from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import pytest

from attendance_ledger.container import Container, build_container
from attendance_ledger.core.config import LedgerConfig
from attendance_ledger.core.constants import IST
from attendance_ledger.ledger.model import Employee
from attendance_ledger.storage.memory import InMemoryStore
from attendance_ledger.transactions.executor import RetryPolicy

FIXED_NOW = datetime(2025, 6, 15, 10, 0, tzinfo=IST)

EMPLOYEE_ID = 7
LOCATION_ID = 1


def fixed_clock() -> datetime:
    return FIXED_NOW


def no_sleep(_seconds: float) -> None:
    return None


def make_container(
    store: InMemoryStore,
    config: Optional[LedgerConfig] = None,
    *,
    max_attempts: int = 3,
) -> Container:
    return build_container(
        store=store,
        config=config,
        retry_policy=RetryPolicy(max_attempts=max_attempts, base_delay=0.0, sleep=no_sleep),
        clock=fixed_clock,
    )


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_location(LOCATION_ID)
    s.add_employee(Employee(employee_id=EMPLOYEE_ID, location_id=LOCATION_ID, join_date=date(2025, 1, 1)))
    return s


@pytest.fixture
def container(store: InMemoryStore) -> Container:
    return make_container(store)


@pytest.fixture
def container_factory():
    """Build a container over a given store, optionally with a custom config."""
    return make_container
