from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from ..attendance.model import AttendanceRecord
from ..core.config import LedgerConfig
from ..core.constants import FULL_LEAVE_WEIGHT
from ..core.enums import AttendanceStatus


class LeaveCostPolicy(ABC):
    """Strategy: what an attendance status costs against the leave balance."""

    @abstractmethod
    def cost(self, status: Optional[AttendanceStatus]) -> float:
        raise NotImplementedError

    @abstractmethod
    def requires_balance(self, status: AttendanceStatus) -> bool:
        """Whether marking this status is refused when the balance is short."""

        raise NotImplementedError

    def consumption(self, records: Iterable[AttendanceRecord]) -> float:
        return sum(self.cost(r.status) for r in records if not r.is_deleted)


class StandardLeaveCostPolicy(LeaveCostPolicy):
    """Full leave costs one day, half-day costs the configured weight."""

    def __init__(self, config: LedgerConfig):
        self._config = config

    def cost(self, status: Optional[AttendanceStatus]) -> float:
        if status == AttendanceStatus.LEAVE:
            return FULL_LEAVE_WEIGHT
        if status == AttendanceStatus.HALF_DAY:
            return float(self._config.half_day_weight)
        return 0.0

    def requires_balance(self, status: AttendanceStatus) -> bool:
        if status == AttendanceStatus.LEAVE:
            return True
        if status == AttendanceStatus.HALF_DAY:
            return bool(self._config.half_day_requires_balance)
        return False
