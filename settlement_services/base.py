"""
settlement_services.base -- transaction boundary shared by the orchestrators.

Responsibility:
    ``OperationResult`` is what every public orchestrator method returns.
    ``TransactionalOrchestrator._execute`` runs one unit of work inside a
    log context, commits it on success, and on failure rolls it back and
    converts the error into a failed result.

Invariants enforced:
    - One operation, one transaction: either every write of the operation
      is committed or none is.
    - SettlementError -> failed result carrying the error's ``code``.
    - SQLAlchemyError -> failed result with PersistenceError; the low-level
      driver message is logged, never returned.
    - A rollback that itself fails -> failed result with PartialFailureError.
    - Any other exception -> failed result with UnexpectedError; the
      traceback is logged, the message is generic.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import (
    PartialFailureError,
    PersistenceError,
    SettlementError,
    UnexpectedError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.services.reference_resolvers import (
    PermissionResolver,
    ProfilePermissionResolver,
)

logger = get_logger("services.orchestrator")

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of an orchestrated operation."""

    success: bool
    data: T | None = None
    message: str | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: T, message: str | None = None) -> "OperationResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, exc: SettlementError, data: T | None = None) -> "OperationResult[T]":
        return cls(success=False, data=data, error=str(exc), error_code=exc.code)


class TransactionalOrchestrator:
    """
    Base for orchestrators that own the transaction boundary.

    With ``auto_commit=False`` the caller owns commit/rollback and errors
    are still converted to failed results.
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionResolver | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._permissions = permissions or ProfilePermissionResolver(session)
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

    def _execute(
        self,
        operation: str,
        actor_id: UUID | None,
        work: Callable[[], tuple[T, str]],
        *,
        action: str,
        **context: Any,
    ) -> OperationResult[T]:
        """
        Run ``work`` as one transaction.

        ``work`` returns ``(data, message)``.  ``action`` is the plain
        phrase used in the PersistenceError message ("create contract").
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            operation=operation,
            **context,
        ):
            logger.info(f"{operation}_started")
            t0 = time.monotonic()

            try:
                data, message = work()
                if self._auto_commit:
                    self._session.commit()
            except SettlementError as exc:
                partial = self._rollback(operation, exc)
                logger.warning(
                    f"{operation}_rejected",
                    extra={
                        "error_code": exc.code,
                        "error": str(exc),
                        "duration_ms": self._elapsed(t0),
                    },
                )
                return OperationResult.fail(partial or exc)
            except SQLAlchemyError as exc:
                partial = self._rollback(operation, exc)
                logger.error(
                    f"{operation}_persistence_failed",
                    extra={"duration_ms": self._elapsed(t0)},
                    exc_info=True,
                )
                return OperationResult.fail(partial or PersistenceError(action))
            except Exception as exc:
                partial = self._rollback(operation, exc)
                logger.error(
                    f"{operation}_failed",
                    extra={"duration_ms": self._elapsed(t0)},
                    exc_info=True,
                )
                return OperationResult.fail(partial or UnexpectedError(action))

            logger.info(
                f"{operation}_completed",
                extra={"duration_ms": self._elapsed(t0)},
            )
            return OperationResult.ok(data, message)

    def _rollback(self, operation: str, cause: Exception | None) -> PartialFailureError | None:
        if not self._auto_commit:
            return None
        try:
            self._session.rollback()
        except SQLAlchemyError as rollback_exc:
            logger.error(
                f"{operation}_rollback_failed",
                extra={"cause": str(cause) if cause else None},
                exc_info=True,
            )
            return PartialFailureError(operation, str(rollback_exc))
        return None

    @staticmethod
    def _elapsed(t0: float) -> float:
        return round((time.monotonic() - t0) * 1000, 2)
