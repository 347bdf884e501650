"""
settlement_services.contract_deletion -- remove a contract and undo its ledger effects.

Responsibility:
    Deletes a contract together with everything that was written because of
    it, in dependency order:

    1. payments recorded against its receivables and payables;
    2. cash transactions linked to the contract or to those installments,
       each reversed on its bank account before it is deleted;
    3. the receivables (by contract id) and payables (by ``{code}-`` prefix);
    4. item participants, items, payment conditions, parties;
    5. the contract header.

Architecture position:
    Services layer.  Owns the transaction: a failure at any step rolls back
    every earlier step, so balances and rows are never left half-removed.

Invariants enforced:
    - For every bank account, balance after == balance before minus the
      net signed value of the reversed transactions.
    - Payables of CT-1000 never include those of CT-10000.
    - Only admins delete contracts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from settlement_kernel.domain.clock import Clock
from settlement_kernel.exceptions import ContractNotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.contract import (
    ContractItemModel,
    ContractItemParticipantModel,
    ContractModel,
    ContractPartyModel,
    ContractPaymentConditionModel,
)
from settlement_kernel.services.reference_resolvers import PermissionResolver
from settlement_modules.ap.service import PayableLedgerService
from settlement_modules.ar.service import ReceivableLedgerService
from settlement_modules.cash.service import CashLedgerService
from settlement_services.base import OperationResult, TransactionalOrchestrator
from settlement_services.rbac_authority import CONTRACT_DELETE, require_permission

logger = get_logger("services.contract_deletion")


@dataclass(frozen=True)
class DeletionSummary:
    contract_id: UUID
    contract_code: str
    cash_transactions_reversed: int
    receivables_deleted: int
    payables_deleted: int
    net_adjustment: dict[UUID, Decimal]


class ContractDeletionOrchestrator(TransactionalOrchestrator):

    def __init__(
        self,
        session: Session,
        permissions: PermissionResolver | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, permissions, clock, auto_commit)
        self._cash = CashLedgerService(session)
        self._receivables = ReceivableLedgerService(session)
        self._payables = PayableLedgerService(session)

    def delete(self, actor_id: UUID, contract_id: UUID) -> OperationResult[DeletionSummary]:
        return self._execute(
            "contract_delete",
            actor_id,
            lambda: self._delete(actor_id, contract_id),
            action="delete contract",
            contract_id=contract_id,
        )

    def _delete(self, actor_id: UUID, contract_id: UUID) -> tuple[DeletionSummary, str]:
        require_permission(self._permissions, actor_id, CONTRACT_DELETE)

        contract = self._session.execute(
            select(ContractModel)
            .where(ContractModel.id == contract_id)
            .with_for_update()
        ).scalar_one_or_none()
        if contract is None:
            raise ContractNotFoundError(contract_id)
        code = contract.code

        receivable_ids = self._receivables.ids_for_contract(contract_id)
        payable_ids = self._payables.ids_for_contract_code(code)

        self._receivables.delete_payments(receivable_ids)
        self._payables.delete_payments(payable_ids)

        transactions = self._cash.transactions_linked_to(
            contract_id=contract_id,
            receivable_ids=receivable_ids,
            payable_ids=payable_ids,
        )
        reversal = self._cash.reverse_transactions(transactions)

        receivables_deleted = self._receivables.delete_ids(receivable_ids)
        payables_deleted = self._payables.delete_ids(payable_ids)

        self._delete_contract_rows(contract_id)

        summary = DeletionSummary(
            contract_id=contract_id,
            contract_code=code,
            cash_transactions_reversed=reversal.transactions_reversed,
            receivables_deleted=receivables_deleted,
            payables_deleted=payables_deleted,
            net_adjustment=reversal.net_adjustment,
        )
        logger.info(
            "contract_deleted",
            extra={
                "contract_id": str(contract_id),
                "contract_code": code,
                "cash_transactions_reversed": reversal.transactions_reversed,
                "receivables_deleted": receivables_deleted,
                "payables_deleted": payables_deleted,
            },
        )
        return summary, f"Contract {code} deleted"

    def _delete_contract_rows(self, contract_id: UUID) -> None:
        item_ids = select(ContractItemModel.id).where(
            ContractItemModel.contract_id == contract_id
        )
        statements = (
            delete(ContractItemParticipantModel).where(
                ContractItemParticipantModel.contract_item_id.in_(item_ids)
            ),
            delete(ContractItemModel).where(ContractItemModel.contract_id == contract_id),
            delete(ContractPaymentConditionModel).where(
                ContractPaymentConditionModel.contract_id == contract_id
            ),
            delete(ContractPartyModel).where(ContractPartyModel.contract_id == contract_id),
            delete(ContractModel).where(ContractModel.id == contract_id),
        )
        for statement in statements:
            self._session.execute(
                statement.execution_options(synchronize_session="fetch")
            )
        self._session.flush()
