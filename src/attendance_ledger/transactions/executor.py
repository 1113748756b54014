from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from ..core.constants import (
    DEFAULT_TXN_BACKOFF_FACTOR,
    DEFAULT_TXN_BASE_DELAY,
    DEFAULT_TXN_MAX_ATTEMPTS,
    DEFAULT_TXN_MAX_DELAY,
)
from ..core.exceptions import ConflictError, TransactionExhaustedError, ValidationError
from ..storage.unit_of_work import TransactionalStore, UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times a conflicting unit of work is re-run, and how long to wait.

    ``delay(n)`` is the pause after the n-th failed attempt:
    ``base_delay * backoff_factor ** (n - 1)``, capped at ``max_delay``.
    """

    max_attempts: int = DEFAULT_TXN_MAX_ATTEMPTS
    base_delay: float = DEFAULT_TXN_BASE_DELAY
    backoff_factor: float = DEFAULT_TXN_BACKOFF_FACTOR
    max_delay: float = DEFAULT_TXN_MAX_DELAY
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValidationError("retry delays must not be negative")

    def delay(self, attempt: int) -> float:
        return min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        return cls(
            max_attempts=int(getattr(settings, "TXN_MAX_ATTEMPTS", DEFAULT_TXN_MAX_ATTEMPTS)),
            base_delay=float(getattr(settings, "TXN_BASE_DELAY", DEFAULT_TXN_BASE_DELAY)),
            max_delay=float(getattr(settings, "TXN_MAX_DELAY", DEFAULT_TXN_MAX_DELAY)),
        )


class TransactionalExecutor:
    """Runs a unit of work atomically, re-running it on write conflicts.

    The work function receives a fresh ``UnitOfWork`` on every attempt and
    must not have side effects outside it: a retry re-reads all state.
    Anything other than ``ConflictError`` aborts immediately.
    """

    def __init__(self, store: TransactionalStore, policy: RetryPolicy | None = None):
        self._store = store
        self._policy = policy or RetryPolicy()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def run(self, work: Callable[[UnitOfWork], T], *, label: str = "unit_of_work") -> T:
        attempt = 1
        while True:
            try:
                with self._store.transaction() as uow:
                    result = work(uow)
                if attempt > 1:
                    logger.info("transaction_succeeded_after_retry", extra={"label": label, "attempt": attempt})
                return result
            except ConflictError as exc:
                if attempt >= self._policy.max_attempts:
                    logger.error(
                        "transaction_exhausted",
                        extra={"label": label, "attempts": attempt, "error": str(exc)},
                    )
                    raise TransactionExhaustedError(label, attempt) from exc
                wait = self._policy.delay(attempt)
                logger.warning(
                    "transaction_conflict_retry",
                    extra={
                        "label": label,
                        "attempt": attempt,
                        "max_attempts": self._policy.max_attempts,
                        "delay": wait,
                        "error": str(exc),
                    },
                )
                self._policy.sleep(wait)
                attempt += 1
