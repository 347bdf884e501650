"""
settlement_services.installment_payments -- settling receivables and payables.

Responsibility:
    Records a receipt against a receivable or a payment against a payable:
    the cash transaction on the bank account, the payment row, and the
    installment's new remaining value and status, in one transaction.
    Batches share date, method and account across entries and settle each
    entry in its own transaction.  Also refreshes overdue status and removes
    unpaid payable groups.

Architecture position:
    Services layer.  Uses the pure settlement engine for the arithmetic and
    the module ledger services for the writes.

Invariants enforced:
    - A payment never exceeds the installment's remaining value.
    - An outgoing payment never takes the bank account below zero.
    - Every payment row references the cash transaction that moved the money.
    - A payable group with recorded payments cannot be deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from settlement_config.schema import SettlementConfig
from settlement_kernel.db.types import to_money
from settlement_kernel.domain.clock import Clock
from settlement_kernel.domain.contract_terms import InstallmentStatus, PaymentDirection
from settlement_kernel.exceptions import (
    BankAccountNotFoundError,
    BatchSettlementError,
    InstallmentGroupLockedError,
    InstallmentNotFoundError,
    InsufficientFundsError,
    SettlementPaymentError,
)
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.reference_resolvers import PermissionResolver
from settlement_engines.settlement import apply_payment
from settlement_modules.ap.service import PayableLedgerService
from settlement_modules.ar.service import ReceivableLedgerService
from settlement_modules.cash.orm import BankAccountModel
from settlement_modules.cash.service import CashLedgerService
from settlement_modules.installment_ledger import InstallmentLedgerService
from settlement_services.base import OperationResult, TransactionalOrchestrator
from settlement_services.rbac_authority import (
    PAYABLE_GROUP_DELETE,
    PAYABLE_PAYMENT,
    RECEIVABLE_RECEIPT,
    require_permission,
)

logger = get_logger("services.installment_payments")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class InstallmentSettlement:
    installment_id: UUID
    installment_code: str
    payment_id: UUID
    cash_transaction_id: UUID
    payment_value: Decimal
    remaining_value: Decimal
    status: InstallmentStatus
    balance_after: Decimal


@dataclass(frozen=True)
class BatchFailure:
    installment_id: Any
    error: str
    error_code: str


@dataclass(frozen=True)
class BatchSettlement:
    """Outcome of a batch: the entries recorded and the ones that failed."""

    settlements: tuple[InstallmentSettlement, ...]
    failures: tuple[BatchFailure, ...]

    @property
    def processed(self) -> int:
        return len(self.settlements)


@dataclass(frozen=True)
class OverdueRefresh:
    as_of: date
    receivables_marked: int
    payables_marked: int


@dataclass(frozen=True)
class PayableGroupDeletion:
    group_id: UUID
    payables_deleted: int


class InstallmentPaymentOrchestrator(TransactionalOrchestrator):

    def __init__(
        self,
        session: Session,
        permissions: PermissionResolver | None = None,
        clock: Clock | None = None,
        config: SettlementConfig | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, permissions, clock, auto_commit)
        self._config = config or SettlementConfig()
        self._cash = CashLedgerService(session)
        self._receivables = ReceivableLedgerService(session)
        self._payables = PayableLedgerService(session)

    # =========================================================================
    # Public API
    # =========================================================================

    def record_receipt(
        self,
        actor_id: UUID,
        receivable_id: UUID,
        payment_value: Any,
        *,
        bank_account_id: UUID | None = None,
        payment_date: date | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[InstallmentSettlement]:
        """Receive money for a receivable into a bank account (default: first active)."""
        return self._execute(
            "receivable_receipt",
            actor_id,
            lambda: self._settle(
                actor_id,
                self._receivables,
                receivable_id,
                payment_value,
                direction=PaymentDirection.IN,
                bank_account_id=bank_account_id,
                payment_date=payment_date,
                payment_method=payment_method,
                notes=notes,
            ),
            action="record receipt",
        )

    def record_payment(
        self,
        actor_id: UUID,
        payable_id: UUID,
        payment_value: Any,
        *,
        bank_account_id: UUID | None = None,
        payment_date: date | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[InstallmentSettlement]:
        """
        Pay a payable from a bank account (default: first active).

        Fails with InsufficientFundsError when the account balance is lower
        than the payment.
        """
        return self._execute(
            "payable_payment",
            actor_id,
            lambda: self._settle(
                actor_id,
                self._payables,
                payable_id,
                payment_value,
                direction=PaymentDirection.OUT,
                bank_account_id=bank_account_id,
                payment_date=payment_date,
                payment_method=payment_method,
                notes=notes,
            ),
            action="record payment",
        )

    def record_receipts(
        self,
        actor_id: UUID,
        entries: Iterable[Mapping[str, Any]],
        *,
        bank_account_id: UUID | None = None,
        payment_date: date | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[BatchSettlement]:
        """
        Receive several receivables with a shared date, method and account.

        Each entry carries ``account_receivable_id`` and ``payment_value``
        and is recorded in its own transaction, so one failing entry does
        not undo the others.  The result fails with BatchSettlementError
        when any entry failed; its data still lists what was recorded.
        """
        return self._settle_batch(
            actor_id,
            entries,
            operation="receivable_receipt_batch",
            action=RECEIVABLE_RECEIPT,
            ledger=self._receivables,
            id_key="account_receivable_id",
            settle_one=self.record_receipt,
            kind="receipts",
            bank_account_id=bank_account_id,
            payment_date=payment_date,
            payment_method=payment_method,
            notes=notes,
        )

    def record_payments(
        self,
        actor_id: UUID,
        entries: Iterable[Mapping[str, Any]],
        *,
        bank_account_id: UUID | None = None,
        payment_date: date | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[BatchSettlement]:
        """Pay several payables; entries carry ``account_payable_id`` and ``payment_value``."""
        return self._settle_batch(
            actor_id,
            entries,
            operation="payable_payment_batch",
            action=PAYABLE_PAYMENT,
            ledger=self._payables,
            id_key="account_payable_id",
            settle_one=self.record_payment,
            kind="payments",
            bank_account_id=bank_account_id,
            payment_date=payment_date,
            payment_method=payment_method,
            notes=notes,
        )

    def refresh_overdue(self, as_of: date | None = None) -> OperationResult[OverdueRefresh]:
        """Mark open and partially paid installments due before ``as_of`` as overdue."""
        return self._execute(
            "installments_refresh_overdue",
            None,
            lambda: self._refresh_overdue(as_of or self._clock.today()),
            action="refresh overdue installments",
        )

    def delete_payable_group(
        self,
        actor_id: UUID,
        group_id: UUID,
    ) -> OperationResult[PayableGroupDeletion]:
        return self._execute(
            "payable_group_delete",
            actor_id,
            lambda: self._delete_payable_group(actor_id, group_id),
            action="delete payable group",
        )

    # =========================================================================
    # Units of work
    # =========================================================================

    def _settle(
        self,
        actor_id: UUID,
        ledger: InstallmentLedgerService,
        installment_id: UUID,
        payment_value: Any,
        *,
        direction: PaymentDirection,
        bank_account_id: UUID | None,
        payment_date: date | None,
        payment_method: str | None,
        notes: str | None,
    ) -> tuple[InstallmentSettlement, str]:
        action = RECEIVABLE_RECEIPT if direction == PaymentDirection.IN else PAYABLE_PAYMENT
        require_permission(self._permissions, actor_id, action)

        value = self._payment_amount(payment_value)
        installment = ledger.get_for_update(installment_id)
        application = apply_payment(
            installment_code=installment.code,
            remaining_value=installment.remaining_value,
            payment_value=value,
        )

        account = self._account(bank_account_id)
        if direction == PaymentDirection.OUT and account.balance < value:
            raise InsufficientFundsError(account.name, account.balance, value)

        ledger_settings = self._config.ledger
        payment_date = payment_date or self._clock.today()
        label = "Receipt" if direction == PaymentDirection.IN else "Payment"
        transaction = self._cash.record_transaction(
            account_id=account.id,
            direction=direction,
            value=value,
            transaction_date=payment_date,
            description=f"{label} {installment.code} - {installment.description}",
            actor_id=actor_id,
            contract_id=getattr(installment, "contract_id", None),
            account_receivable_id=installment.id if direction == PaymentDirection.IN else None,
            account_payable_id=installment.id if direction == PaymentDirection.OUT else None,
            link_tag=installment.link_tag or ledger_settings.link_tag,
            cost_center=installment.cost_center or ledger_settings.cost_center,
            settlement_form=payment_method or ledger_settings.default_settlement_form,
            notes=notes,
        )
        payment = ledger.apply_payment(
            installment,
            application,
            cash_transaction_id=transaction.id,
            payment_date=payment_date,
            payment_method=payment_method,
            notes=notes,
            actor_id=actor_id,
        )

        logger.info(
            "installment_payment_recorded",
            extra={
                "ledger": ledger.ledger_name,
                "installment_code": installment.code,
                "payment_value": str(value),
                "remaining_value": str(application.remaining_value),
                "status": application.status.value,
            },
        )
        settlement = InstallmentSettlement(
            installment_id=installment.id,
            installment_code=installment.code,
            payment_id=payment.id,
            cash_transaction_id=transaction.id,
            payment_value=value,
            remaining_value=application.remaining_value,
            status=application.status,
            balance_after=transaction.balance_after,
        )
        return settlement, f"{label} of {value} recorded for {installment.code}"

    def _settle_batch(
        self,
        actor_id: UUID,
        entries: Iterable[Mapping[str, Any]],
        *,
        operation: str,
        action: str,
        ledger: InstallmentLedgerService,
        id_key: str,
        settle_one: Callable[..., OperationResult[InstallmentSettlement]],
        kind: str,
        **common: Any,
    ) -> OperationResult[BatchSettlement]:
        authorized = self._execute(
            operation,
            actor_id,
            lambda: (require_permission(self._permissions, actor_id, action), ""),
            action=f"record {kind}",
        )
        if not authorized.is_success:
            return OperationResult(
                success=False,
                error=authorized.error,
                error_code=authorized.error_code,
            )

        settlements: list[InstallmentSettlement] = []
        failures: list[BatchFailure] = []
        for entry in entries:
            raw_id = entry.get(id_key)
            try:
                installment_id = raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id))
            except ValueError:
                missing = InstallmentNotFoundError(ledger.ledger_name, raw_id)
                failures.append(BatchFailure(raw_id, str(missing), missing.code))
                continue
            result = settle_one(actor_id, installment_id, entry.get("payment_value"), **common)
            if result.is_success:
                settlements.append(result.data)
            else:
                failures.append(BatchFailure(installment_id, result.error, result.error_code))

        batch = BatchSettlement(settlements=tuple(settlements), failures=tuple(failures))
        logger.info(
            f"{operation}_finished",
            extra={"processed": batch.processed, "failed": len(failures)},
        )
        if failures:
            total = batch.processed + len(failures)
            return OperationResult.fail(BatchSettlementError(kind, len(failures), total), data=batch)
        return OperationResult.ok(batch, f"{batch.processed} {kind} recorded")

    def _refresh_overdue(self, as_of: date) -> tuple[OverdueRefresh, str]:
        receivables = self._receivables.refresh_overdue(as_of)
        payables = self._payables.refresh_overdue(as_of)
        refresh = OverdueRefresh(
            as_of=as_of,
            receivables_marked=receivables,
            payables_marked=payables,
        )
        return refresh, f"{receivables + payables} installments marked overdue"

    def _delete_payable_group(
        self,
        actor_id: UUID,
        group_id: UUID,
    ) -> tuple[PayableGroupDeletion, str]:
        require_permission(self._permissions, actor_id, PAYABLE_GROUP_DELETE)

        ids = self._payables.ids_in_group(group_id)
        if not ids:
            raise InstallmentNotFoundError("payable group", group_id)
        paid = self._payables.ids_with_payments(ids)
        if paid:
            raise InstallmentGroupLockedError(group_id, self._payables.codes_for(paid))

        deleted = self._payables.delete_ids(ids)
        logger.info(
            "payable_group_deleted",
            extra={"installment_group_id": str(group_id), "count": deleted},
        )
        return (
            PayableGroupDeletion(group_id=group_id, payables_deleted=deleted),
            f"{deleted} payables deleted",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _account(self, bank_account_id: UUID | None) -> BankAccountModel:
        if bank_account_id is not None:
            return self._cash.require_active_account(bank_account_id, lock=True)
        account = self._cash.first_active_account()
        if account is None:
            raise BankAccountNotFoundError("no active bank account")
        return self._cash.require_active_account(account.id, lock=True)

    @staticmethod
    def _payment_amount(value: Any) -> Decimal:
        try:
            amount = to_money(value)
        except ValueError as exc:
            raise SettlementPaymentError(f"Invalid payment value: {value!r}") from exc
        if amount <= _ZERO:
            raise SettlementPaymentError(f"Payment value must be positive, got {amount}")
        return amount
