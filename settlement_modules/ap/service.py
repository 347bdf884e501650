"""
settlement_modules.ap.service
=============================

Responsibility:
    The payables ledger: writes ``{code}-Pnn`` installment rows sharing an
    installment group, and finds a contract's payables by code prefix.

Architecture:
    Module layer, flush-only.

Invariants enforced:
    - Prefix matching is anchored on the separator: payables of CT-1000 are
      ``CT-1000-...`` and never ``CT-10000-...``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select

from settlement_kernel.logging_config import get_logger
from settlement_engines.expansion import InstallmentLine
from settlement_modules.ap.orm import AccountPayableModel, PayablePaymentModel
from settlement_modules.installment_ledger import InstallmentLedgerService

logger = get_logger("modules.ap.service")


def contract_code_prefix(contract_code: str) -> str:
    return f"{contract_code}-"


class PayableLedgerService(InstallmentLedgerService):
    model = AccountPayableModel
    payment_model = PayablePaymentModel
    payment_fk = "account_payable_id"
    ledger_name = "payable"

    def create_installments(
        self,
        lines: Iterable[InstallmentLine],
        *,
        group_id: UUID,
        registration_date: date,
        description: str,
        counterparty: str,
        actor_id: UUID,
        installment_value: Decimal | None = None,
        periodicity: str | None = None,
        link_tag: str | None = None,
        cost_center: str | None = None,
    ) -> list[AccountPayableModel]:
        rows = self._build_rows(
            lines,
            registration_date=registration_date,
            description=description,
            counterparty=counterparty,
            actor_id=actor_id,
            link_tag=link_tag,
            cost_center=cost_center,
            installment_group_id=group_id,
            installment_value=installment_value,
            periodicity=periodicity,
        )
        logger.info(
            "payables_created",
            extra={
                "installment_group_id": str(group_id),
                "count": len(rows),
                "codes": [r.code for r in rows],
            },
        )
        return rows

    def ids_for_contract_code(self, contract_code: str) -> list[UUID]:
        return list(
            self.session.execute(
                select(AccountPayableModel.id).where(
                    AccountPayableModel.code.startswith(
                        contract_code_prefix(contract_code), autoescape=True
                    )
                )
            ).scalars()
        )

    def for_contract_code(self, contract_code: str) -> list[AccountPayableModel]:
        return list(
            self.session.execute(
                select(AccountPayableModel)
                .where(
                    AccountPayableModel.code.startswith(
                        contract_code_prefix(contract_code), autoescape=True
                    )
                )
                .order_by(AccountPayableModel.due_date, AccountPayableModel.code)
            ).scalars()
        )

    def ids_in_group(self, group_id: UUID) -> list[UUID]:
        return list(
            self.session.execute(
                select(AccountPayableModel.id).where(
                    AccountPayableModel.installment_group_id == group_id
                )
            ).scalars()
        )

    def codes_for(self, payable_ids: Iterable[UUID]) -> list[str]:
        ids = list(payable_ids)
        if not ids:
            return []
        return list(
            self.session.execute(
                select(AccountPayableModel.code)
                .where(AccountPayableModel.id.in_(ids))
                .order_by(AccountPayableModel.code)
            ).scalars()
        )
