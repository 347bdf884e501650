"""
Ledger expansion plan -- what a contract's payment conditions turn into.

Responsibility:
    Given the contract code and its payment conditions, list the ledger
    writes without performing them:

    ======== =========== ==========================================
    in       single      one incoming cash movement
    in       installment n receivables {code}-R01 .. {code}-Rnn
    out      single      one outgoing cash movement
    out      installment n payables {code}-P01 .. {code}-Pnn (one group)
    ======== =========== ==========================================

    The ledger expander service executes the plan against the database.

Architecture position:
    Engines -- pure calculation, zero I/O.

Invariants enforced:
    - Conditions are planned in input order; installment lines are in
      ascending number order within each condition.
    - Numbering restarts at 01 for every installment condition.
    - Due dates come from project_due_date(start_date, i, frequency).
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from settlement_kernel.domain.contract_terms import (
    InstallmentRounding,
    PaymentConditionSpec,
    PaymentDirection,
)
from settlement_engines.schedule import project_due_date, split_installments
from settlement_engines.tracer import traced_engine


class LedgerKind(str, Enum):
    RECEIVABLE = "receivable"
    PAYABLE = "payable"


_CODE_MARKERS = {
    LedgerKind.RECEIVABLE: "R",
    LedgerKind.PAYABLE: "P",
}


def installment_code(contract_code: str, ledger: LedgerKind, number: int) -> str:
    return f"{contract_code}-{_CODE_MARKERS[ledger]}{number:02d}"


@dataclass(frozen=True)
class CashMovement:
    condition_index: int
    direction: PaymentDirection
    value: Decimal
    payment_method: str | None = None

    @property
    def signed_value(self) -> Decimal:
        return self.value if self.direction == PaymentDirection.IN else -self.value


@dataclass(frozen=True)
class InstallmentLine:
    condition_index: int
    ledger: LedgerKind
    code: str
    number: int
    total: int
    value: Decimal
    due_date: date


@dataclass(frozen=True)
class LedgerPlan:
    cash_movements: tuple[CashMovement, ...] = ()
    installments: tuple[InstallmentLine, ...] = ()

    @property
    def receivables(self) -> tuple[InstallmentLine, ...]:
        return tuple(i for i in self.installments if i.ledger == LedgerKind.RECEIVABLE)

    @property
    def payables(self) -> tuple[InstallmentLine, ...]:
        return tuple(i for i in self.installments if i.ledger == LedgerKind.PAYABLE)

    @property
    def is_empty(self) -> bool:
        return not self.cash_movements and not self.installments


@traced_engine("ledger_expansion", "1.0", fingerprint_fields=("contract_code", "conditions"))
def plan_ledger_writes(
    *,
    contract_code: str,
    conditions: Iterable[PaymentConditionSpec],
    rounding: InstallmentRounding = InstallmentRounding.NONE,
) -> LedgerPlan:
    movements: list[CashMovement] = []
    lines: list[InstallmentLine] = []

    for index, condition in enumerate(conditions):
        if condition.is_single:
            movements.append(
                CashMovement(
                    condition_index=index,
                    direction=PaymentDirection(condition.direction),
                    value=condition.value,
                    payment_method=condition.payment_method,
                )
            )
            continue

        ledger = (
            LedgerKind.RECEIVABLE
            if condition.direction == PaymentDirection.IN
            else LedgerKind.PAYABLE
        )
        count = max(1, condition.installments)
        values = split_installments(condition.value, count, rounding)
        for i, value in enumerate(values):
            lines.append(
                InstallmentLine(
                    condition_index=index,
                    ledger=ledger,
                    code=installment_code(contract_code, ledger, i + 1),
                    number=i + 1,
                    total=count,
                    value=value,
                    due_date=project_due_date(condition.start_date, i, condition.frequency),
                )
            )

    return LedgerPlan(cash_movements=tuple(movements), installments=tuple(lines))
