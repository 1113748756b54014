from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.service import AttendanceService
from .common.datetime_utils import now_ist
from .core.config import LedgerConfig
from .database.connection import DatabaseConnection, DBConfig
from .ledger.adjuster import LedgerAdjuster
from .ledger.corrector import LedgerCorrector
from .ledger.cost import LeaveCostPolicy, StandardLeaveCostPolicy
from .ledger.initializer import LedgerInitializer
from .ledger.propagator import CarryForwardPropagator
from .ledger.service import LedgerService
from .requests.service import CorrectionRequestService
from .storage.mysql import MySQLStore
from .storage.unit_of_work import TransactionalStore
from .transactions.executor import RetryPolicy, TransactionalExecutor


@dataclass(frozen=True)
class Container:
    config: LedgerConfig
    store: TransactionalStore
    executor: TransactionalExecutor

    cost_policy: LeaveCostPolicy
    initializer: LedgerInitializer
    corrector: LedgerCorrector
    propagator: CarryForwardPropagator
    adjuster: LedgerAdjuster

    attendance_service: AttendanceService
    request_service: CorrectionRequestService
    ledger_service: LedgerService


def build_container(
    *,
    store: TransactionalStore,
    config: Optional[LedgerConfig] = None,
    retry_policy: Optional[RetryPolicy] = None,
    clock: Callable[[], datetime] = now_ist,
) -> Container:
    config = config or LedgerConfig()
    executor = TransactionalExecutor(store, retry_policy)

    cost_policy = StandardLeaveCostPolicy(config)
    initializer = LedgerInitializer(config)
    corrector = LedgerCorrector(config, initializer, cost_policy=cost_policy, clock=clock)
    propagator = CarryForwardPropagator(config, initializer, cost_policy=cost_policy, clock=clock)
    adjuster = LedgerAdjuster(initializer, corrector, propagator, cost_policy)

    attendance_service = AttendanceService(executor, adjuster, clock=clock)
    request_service = CorrectionRequestService(executor, attendance_service, clock=clock)
    ledger_service = LedgerService(executor, initializer, corrector, propagator, clock=clock)

    return Container(
        config=config,
        store=store,
        executor=executor,
        cost_policy=cost_policy,
        initializer=initializer,
        corrector=corrector,
        propagator=propagator,
        adjuster=adjuster,
        attendance_service=attendance_service,
        request_service=request_service,
        ledger_service=ledger_service,
    )


def build_mysql_container(
    *,
    db_config: dict,
    config: Optional[LedgerConfig] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return build_container(store=MySQLStore(conn), config=config, retry_policy=retry_policy)
