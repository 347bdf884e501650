"""
settlement_modules.ar.service
=============================

Responsibility:
    The receivables ledger: writes ``{code}-Rnn`` installment rows for a
    contract and finds them again by contract id.

Architecture:
    Module layer, flush-only.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.logging_config import get_logger
from settlement_engines.expansion import InstallmentLine
from settlement_modules.ar.orm import AccountReceivableModel, ReceivablePaymentModel
from settlement_modules.installment_ledger import InstallmentLedgerService

logger = get_logger("modules.ar.service")


class ReceivableLedgerService(InstallmentLedgerService):
    model = AccountReceivableModel
    payment_model = ReceivablePaymentModel
    payment_fk = "account_receivable_id"
    ledger_name = "receivable"

    def create_installments(
        self,
        lines: Iterable[InstallmentLine],
        *,
        contract_id: UUID,
        registration_date: date,
        description: str,
        counterparty: str,
        actor_id: UUID,
        link_tag: str | None = None,
        cost_center: str | None = None,
    ) -> list[AccountReceivableModel]:
        rows = self._build_rows(
            lines,
            registration_date=registration_date,
            description=description,
            counterparty=counterparty,
            actor_id=actor_id,
            link_tag=link_tag,
            cost_center=cost_center,
            contract_id=contract_id,
        )
        logger.info(
            "receivables_created",
            extra={
                "contract_id": str(contract_id),
                "count": len(rows),
                "codes": [r.code for r in rows],
            },
        )
        return rows

    def ids_for_contract(self, contract_id: UUID) -> list[UUID]:
        return list(
            self.session.execute(
                select(AccountReceivableModel.id).where(
                    AccountReceivableModel.contract_id == contract_id
                )
            ).scalars()
        )

    def for_contract(self, contract_id: UUID) -> list[AccountReceivableModel]:
        return list(
            self.session.execute(
                select(AccountReceivableModel)
                .where(AccountReceivableModel.contract_id == contract_id)
                .order_by(AccountReceivableModel.due_date, AccountReceivableModel.code)
            ).scalars()
        )
