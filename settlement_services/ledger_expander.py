"""
settlement_services.ledger_expander -- writes a contract's payment conditions
into the cash register and the installment ledgers.

Responsibility:
    Executes the plan produced by ``plan_ledger_writes``:

    - single payments become one settled cash transaction on a bank account
      (balance moved atomically);
    - incoming installments become receivables ``{code}-Rnn`` linked to the
      contract;
    - outgoing installments become payables ``{code}-Pnn`` sharing one
      installment group per condition.

Architecture position:
    Services layer, flush-only.  Runs inside the contract orchestrator's
    transaction, so a failure here rolls the whole contract back.

Invariants enforced:
    - Conditions are written in input order.
    - Cash transactions are dated on the contract date and carry the
      contract id.
    - Single payments use the given bank account, which must be active, or
      else the first active account.  With no active account the cash
      movement is skipped and a warning is logged; installments are still
      written.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from settlement_config.schema import LedgerSettings
from settlement_kernel.domain.contract_terms import (
    PaymentConditionSpec,
    PaymentDirection,
    PaymentFrequency,
)
from settlement_kernel.logging_config import get_logger
from settlement_engines.expansion import LedgerKind, plan_ledger_writes
from settlement_modules.ap.service import PayableLedgerService
from settlement_modules.ar.service import ReceivableLedgerService
from settlement_modules.cash.orm import BankAccountModel
from settlement_modules.cash.service import CashLedgerService

logger = get_logger("services.ledger_expander")

_DIRECTION_LABELS = {
    PaymentDirection.IN: "receipt",
    PaymentDirection.OUT: "payment",
}


@dataclass(frozen=True)
class ExpansionSummary:
    cash_transaction_ids: tuple[UUID, ...] = ()
    receivable_codes: tuple[str, ...] = ()
    payable_codes: tuple[str, ...] = ()
    payable_group_ids: tuple[UUID, ...] = ()
    skipped_conditions: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (
            self.cash_transaction_ids or self.receivable_codes or self.payable_codes
        )


class LedgerExpander:
    """
    Contract:
        ``expand`` writes every ledger row for the given conditions and
        returns what it wrote.  It never commits.
    """

    def __init__(self, session: Session, settings: LedgerSettings | None = None):
        self._settings = settings or LedgerSettings()
        self._cash = CashLedgerService(session)
        self._receivables = ReceivableLedgerService(session)
        self._payables = PayableLedgerService(session)

    def expand(
        self,
        *,
        contract_id: UUID,
        contract_code: str,
        contract_date: date,
        conditions: Sequence[PaymentConditionSpec],
        actor_id: UUID,
        bank_account_id: UUID | None = None,
        counterparty: str | None = None,
    ) -> ExpansionSummary:
        conditions = tuple(conditions)
        plan = plan_ledger_writes(
            contract_code=contract_code,
            conditions=conditions,
            rounding=self._settings.installment_rounding,
        )
        if plan.is_empty:
            return ExpansionSummary()

        movements = {m.condition_index: m for m in plan.cash_movements}
        lines_by_condition = defaultdict(list)
        for line in plan.installments:
            lines_by_condition[line.condition_index].append(line)

        counterparty = counterparty or f"Contract {contract_code}"
        account: BankAccountModel | None = None
        account_resolved = False

        cash_ids: list[UUID] = []
        receivable_codes: list[str] = []
        payable_codes: list[str] = []
        group_ids: list[UUID] = []
        skipped: list[int] = []

        for index, condition in enumerate(conditions):
            movement = movements.get(index)
            if movement is not None:
                if not account_resolved:
                    account = self._resolve_account(bank_account_id)
                    account_resolved = True
                if account is None:
                    logger.warning(
                        "ledger_cash_skipped_no_account",
                        extra={
                            "contract_code": contract_code,
                            "condition_index": index,
                            "value": str(movement.value),
                        },
                    )
                    skipped.append(index)
                    continue
                transaction = self._cash.record_transaction(
                    account_id=account.id,
                    direction=movement.direction,
                    value=movement.value,
                    transaction_date=contract_date,
                    description=(
                        f"Contract {contract_code} - single "
                        f"{_DIRECTION_LABELS[PaymentDirection(movement.direction)]}"
                    ),
                    actor_id=actor_id,
                    contract_id=contract_id,
                    link_tag=self._settings.link_tag,
                    cost_center=self._settings.cost_center,
                    settlement_form=(
                        movement.payment_method or self._settings.default_settlement_form
                    ),
                    notes=condition.notes,
                )
                cash_ids.append(transaction.id)
                continue

            lines = lines_by_condition.get(index, [])
            if not lines:
                continue
            if lines[0].ledger == LedgerKind.RECEIVABLE:
                rows = self._receivables.create_installments(
                    lines,
                    contract_id=contract_id,
                    registration_date=contract_date,
                    description=f"Contract {contract_code} receivable",
                    counterparty=counterparty,
                    actor_id=actor_id,
                    link_tag=self._settings.link_tag,
                    cost_center=self._settings.cost_center,
                )
                receivable_codes.extend(r.code for r in rows)
            else:
                group_id = uuid4()
                rows = self._payables.create_installments(
                    lines,
                    group_id=group_id,
                    registration_date=contract_date,
                    description=f"Contract {contract_code} payable",
                    counterparty=counterparty,
                    actor_id=actor_id,
                    installment_value=lines[0].value,
                    periodicity=(
                        PaymentFrequency(condition.frequency).value
                        if condition.frequency
                        else None
                    ),
                    link_tag=self._settings.link_tag,
                    cost_center=self._settings.cost_center,
                )
                payable_codes.extend(r.code for r in rows)
                group_ids.append(group_id)

        summary = ExpansionSummary(
            cash_transaction_ids=tuple(cash_ids),
            receivable_codes=tuple(receivable_codes),
            payable_codes=tuple(payable_codes),
            payable_group_ids=tuple(group_ids),
            skipped_conditions=tuple(skipped),
        )
        logger.info(
            "ledger_expanded",
            extra={
                "contract_code": contract_code,
                "cash_transactions": len(cash_ids),
                "receivables": len(receivable_codes),
                "payables": len(payable_codes),
                "skipped_conditions": list(skipped),
            },
        )
        return summary

    def _resolve_account(self, bank_account_id: UUID | None) -> BankAccountModel | None:
        if bank_account_id is not None:
            return self._cash.require_active_account(bank_account_id)
        return self._cash.first_active_account()
