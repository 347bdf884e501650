"""
settlement_modules.installment_ledger
=====================================

Responsibility:
    Behaviour shared by the receivable and payable ledgers: creating the
    rows of an installment plan, locking an installment for payment,
    recording a payment, refreshing overdue status, and deleting rows with
    their payments.

Architecture:
    Module layer, flush-only.  ``ReceivableLedgerService`` and
    ``PayableLedgerService`` bind it to their ORM models.
"""

from __future__ import annotations

from datetime import date
from typing import Any, ClassVar, Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, select, update

from settlement_kernel.domain.contract_terms import InstallmentStatus
from settlement_kernel.exceptions import InstallmentNotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.base import BaseService
from settlement_engines.expansion import InstallmentLine
from settlement_engines.settlement import PaymentApplication

logger = get_logger("modules.installment_ledger")


class InstallmentLedgerService(BaseService):
    """
    Base for installment ledgers.

    Subclasses set ``model``, ``payment_model``, ``payment_fk`` (name of the
    payment column referencing the installment) and ``ledger_name``.
    """

    model: ClassVar[type]
    payment_model: ClassVar[type]
    payment_fk: ClassVar[str]
    ledger_name: ClassVar[str]

    def _build_rows(
        self,
        lines: Iterable[InstallmentLine],
        *,
        registration_date: date,
        description: str,
        counterparty: str,
        actor_id: UUID,
        link_tag: str | None,
        cost_center: str | None,
        **extra: Any,
    ) -> list:
        rows = []
        for line in lines:
            row = self.model(
                code=line.code,
                description=f"{description} ({line.number}/{line.total})",
                counterparty=counterparty,
                original_value=line.value,
                remaining_value=line.value,
                due_date=line.due_date,
                registration_date=registration_date,
                status=InstallmentStatus.OPEN.value,
                installment_current=line.number,
                installment_total=line.total,
                link_tag=link_tag,
                cost_center=cost_center,
                created_by_id=actor_id,
                **extra,
            )
            self.session.add(row)
            rows.append(row)
        self.session.flush()
        return rows

    def get_for_update(self, installment_id: UUID):
        row = self.session.execute(
            select(self.model)
            .where(self.model.id == installment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise InstallmentNotFoundError(self.ledger_name, installment_id)
        return row

    def apply_payment(
        self,
        installment,
        application: PaymentApplication,
        *,
        cash_transaction_id: UUID | None,
        payment_date: date,
        payment_method: str | None,
        notes: str | None,
        actor_id: UUID,
    ):
        """Store the payment row and the installment's new remaining value/status."""
        payment = self.payment_model(
            cash_transaction_id=cash_transaction_id,
            payment_date=payment_date,
            payment_value=application.payment_value,
            payment_method=payment_method,
            notes=notes,
            created_by_id=actor_id,
            **{self.payment_fk: installment.id},
        )
        self.session.add(payment)

        installment.remaining_value = application.remaining_value
        installment.status = application.status.value
        installment.updated_by_id = actor_id
        self.session.flush()
        return payment

    def refresh_overdue(self, as_of: date) -> int:
        """Mark open and partially paid installments due before ``as_of`` as overdue."""
        result = self.session.execute(
            update(self.model)
            .where(
                self.model.status.in_(
                    [InstallmentStatus.OPEN.value, InstallmentStatus.PARTIALLY_PAID.value]
                ),
                self.model.due_date < as_of,
            )
            .values(status=InstallmentStatus.OVERDUE.value)
            .execution_options(synchronize_session="fetch")
        )
        self.session.flush()
        logger.info(
            "installments_marked_overdue",
            extra={"ledger": self.ledger_name, "as_of": as_of, "count": result.rowcount},
        )
        return result.rowcount

    def ids_with_payments(self, installment_ids: Sequence[UUID]) -> list[UUID]:
        if not installment_ids:
            return []
        fk = getattr(self.payment_model, self.payment_fk)
        return list(
            self.session.execute(
                select(fk).where(fk.in_(list(installment_ids))).distinct()
            ).scalars()
        )

    def delete_payments(self, installment_ids: Sequence[UUID]) -> int:
        if not installment_ids:
            return 0
        fk = getattr(self.payment_model, self.payment_fk)
        result = self.session.execute(
            delete(self.payment_model)
            .where(fk.in_(list(installment_ids)))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def delete_ids(self, installment_ids: Sequence[UUID]) -> int:
        if not installment_ids:
            return 0
        result = self.session.execute(
            delete(self.model)
            .where(self.model.id.in_(list(installment_ids)))
            .execution_options(synchronize_session="fetch")
        )
        self.session.flush()
        return result.rowcount
