"""
Module: settlement_engines
Responsibility:
    Re-exports the pure calculation engines: installment schedules, contract
    balance, ledger expansion plans and installment settlement.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel domain terms, db types and exceptions.
    MUST NOT import settlement_services or settlement_modules.

Invariants enforced:
    - Engines never read the clock; dates are passed in.
    - Decimal-only arithmetic for money.
    - Identical inputs always produce identical outputs.
"""

from settlement_engines.balance import (
    ACTIVATION_TOLERANCE,
    ContractBalance,
    can_activate,
    compute_balance,
    evaluate_balance,
)
from settlement_engines.expansion import (
    CashMovement,
    InstallmentLine,
    LedgerKind,
    LedgerPlan,
    installment_code,
    plan_ledger_writes,
)
from settlement_engines.schedule import (
    installment_due_dates,
    project_due_date,
    split_installments,
)
from settlement_engines.settlement import PaymentApplication, apply_payment, is_overdue
from settlement_engines.tracer import traced_engine

__all__ = [
    "ACTIVATION_TOLERANCE",
    "ContractBalance",
    "can_activate",
    "compute_balance",
    "evaluate_balance",
    "CashMovement",
    "InstallmentLine",
    "LedgerKind",
    "LedgerPlan",
    "installment_code",
    "plan_ledger_writes",
    "project_due_date",
    "installment_due_dates",
    "split_installments",
    "PaymentApplication",
    "apply_payment",
    "is_overdue",
    "traced_engine",
]
