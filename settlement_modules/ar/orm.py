"""
Receivables ORM Models (``settlement_modules.ar.orm``).

Responsibility
--------------
Installments the organisation expects to receive from a contract
(``{code}-R01`` ...) and the payments recorded against them.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``settlement_kernel.db``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.contract_terms import InstallmentStatus


# ---------------------------------------------------------------------------
# AccountReceivableModel
# ---------------------------------------------------------------------------

class AccountReceivableModel(TrackedBase):
    """
    One receivable installment, linked to its contract by ``contract_id``.

    Table: ``accounts_receivable``
    """

    __tablename__ = "accounts_receivable"

    code: Mapped[str] = mapped_column(String(60))
    contract_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contracts.id"), nullable=True,
    )
    description: Mapped[str] = mapped_column(String(500))
    counterparty: Mapped[str] = mapped_column(String(500), default="")
    original_value: Mapped[Decimal]
    remaining_value: Mapped[Decimal]
    due_date: Mapped[date]
    registration_date: Mapped[date]
    status: Mapped[InstallmentStatus] = mapped_column(
        String(20), default=InstallmentStatus.OPEN,
    )
    installment_current: Mapped[int] = mapped_column(Integer, default=1)
    installment_total: Mapped[int] = mapped_column(Integer, default=1)
    link_tag: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    payments: Mapped[list["ReceivablePaymentModel"]] = relationship(
        back_populates="receivable",
    )

    __table_args__ = (
        Index("idx_accounts_receivable_contract", "contract_id"),
        Index("idx_accounts_receivable_status_due", "status", "due_date"),
        Index("idx_accounts_receivable_code", "code"),
    )

    def __repr__(self) -> str:
        return (
            f"<AccountReceivableModel({self.code!r}, {self.remaining_value}/"
            f"{self.original_value}, due={self.due_date}, {self.status})>"
        )


# ---------------------------------------------------------------------------
# ReceivablePaymentModel
# ---------------------------------------------------------------------------

class ReceivablePaymentModel(TrackedBase):
    """
    Money received against a receivable, with the cash transaction it
    produced.

    Table: ``receivable_payments``
    """

    __tablename__ = "receivable_payments"

    account_receivable_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts_receivable.id"),
    )
    cash_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("cash_transactions.id"), nullable=True,
    )
    payment_date: Mapped[date]
    payment_value: Mapped[Decimal]
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    receivable: Mapped[AccountReceivableModel] = relationship(back_populates="payments")

    __table_args__ = (
        Index("idx_receivable_payments_receivable", "account_receivable_id"),
    )
