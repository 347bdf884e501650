"""
ContractCodeAllocator -- human-readable contract codes (CT-0001).

Responsibility:
    Produces the code for a new contract and inserts the contract header
    under that code.  The number is ``count(contracts) + 1`` zero-padded to
    at least four digits; it widens naturally past 9999 (CT-10000).

Architecture position:
    Kernel > Services -- imperative shell.  Called by the contract
    orchestrator inside its transaction.

Invariants enforced:
    - Codes are unique: contracts.code carries uq_contract_code.  Two
      writers that read the same count both try the same code; the loser's
      savepoint is rolled back and it tries the next number, up to
      ``max_attempts`` numbers.
    - Sequential creates by a single writer yield CT-0001, CT-0002, ...

Failure modes:
    - Counting fails (datastore error): a degraded-mode code is returned,
      ``CT-`` + the last four digits of the clock's epoch milliseconds.  It
      is NOT guaranteed unique and is logged as a warning.
    - CodeAllocationError when every tried code collides.
"""

from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import CodeAllocationError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.contract import ContractModel

logger = get_logger("services.sequence")


class ContractCodeAllocator:
    """
    Allocates contract codes and claims them by inserting the header.

    Contract:
        ``insert_with_next_code(build)`` calls ``build(code)`` for each
        candidate code and flushes the returned ContractModel inside a
        savepoint.  The first insert that does not violate uq_contract_code
        wins and is returned.

    Non-goals:
        - Does NOT commit.  A rolled-back caller transaction releases the code.
        - Does NOT guarantee gap-free numbering after deletions.
    """

    DEFAULT_PREFIX = "CT"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        prefix: str = DEFAULT_PREFIX,
        min_digits: int = 4,
        max_attempts: int = 5,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._prefix = prefix
        self._min_digits = min_digits
        self._max_attempts = max_attempts

    def format_code(self, number: int) -> str:
        digits = str(number)
        return f"{self._prefix}-{digits.zfill(max(self._min_digits, len(digits)))}"

    def fallback_code(self) -> str:
        millis = int(self._clock.now().timestamp() * 1000)
        return f"{self._prefix}-{str(millis)[-4:]}"

    def next_code(self) -> str:
        """Code the next contract would get, without claiming it."""
        try:
            count = self._count_contracts()
        except SQLAlchemyError:
            code = self.fallback_code()
            logger.warning(
                "contract_code_fallback",
                extra={"code": code},
                exc_info=True,
            )
            return code
        return self.format_code(count + 1)

    def insert_with_next_code(
        self,
        build: Callable[[str], ContractModel],
    ) -> ContractModel:
        """
        Insert the contract returned by ``build`` under the next free code.

        Raises:
            CodeAllocationError: every candidate code was already taken.
            IntegrityError: the insert failed for a reason other than the code.
        """
        try:
            first = self._count_contracts() + 1
        except SQLAlchemyError:
            code = self.fallback_code()
            logger.warning(
                "contract_code_fallback",
                extra={"code": code},
                exc_info=True,
            )
            candidates = [code]
        else:
            candidates = [self.format_code(first + i) for i in range(self._max_attempts)]

        attempts = 0
        code = candidates[0]
        for code in candidates:
            attempts += 1
            savepoint = self._session.begin_nested()
            contract = build(code)
            self._session.add(contract)
            try:
                self._session.flush()
            except IntegrityError:
                savepoint.rollback()
                if not self._code_taken(code):
                    raise
                logger.info(
                    "contract_code_collision",
                    extra={"code": code, "attempt": attempts},
                )
                continue
            savepoint.commit()
            logger.debug(
                "contract_code_allocated",
                extra={"code": code, "attempt": attempts},
            )
            return contract

        raise CodeAllocationError(attempts, code)

    def _count_contracts(self) -> int:
        savepoint = self._session.begin_nested()
        try:
            count = self._session.execute(
                select(func.count()).select_from(ContractModel)
            ).scalar_one()
        except SQLAlchemyError:
            savepoint.rollback()
            raise
        savepoint.commit()
        return count

    def _code_taken(self, code: str) -> bool:
        return (
            self._session.execute(
                select(ContractModel.id).where(ContractModel.code == code)
            ).first()
            is not None
        )
