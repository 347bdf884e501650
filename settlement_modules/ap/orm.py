"""
Payables ORM Models (``settlement_modules.ap.orm``).

Responsibility
--------------
Installments the organisation owes because of a contract
(``{code}-P01`` ...) and the payments made against them.

Payables carry no contract foreign key: they are tied to their contract
only through the code prefix ``{contract code}-``.  Installments created
from one payment condition share an ``installment_group_id`` so the whole
plan can be handled as a unit.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``settlement_kernel.db``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase, UUIDString
from settlement_kernel.domain.contract_terms import InstallmentStatus


# ---------------------------------------------------------------------------
# AccountPayableModel
# ---------------------------------------------------------------------------

class AccountPayableModel(TrackedBase):
    """
    One payable installment.

    Table: ``accounts_payable``
    """

    __tablename__ = "accounts_payable"

    code: Mapped[str] = mapped_column(String(60))
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
    installment_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    periodicity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    installment_group_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    link_tag: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    payments: Mapped[list["PayablePaymentModel"]] = relationship(
        back_populates="payable",
    )

    __table_args__ = (
        Index("idx_accounts_payable_code", "code"),
        Index("idx_accounts_payable_group", "installment_group_id"),
        Index("idx_accounts_payable_status_due", "status", "due_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<AccountPayableModel({self.code!r}, {self.remaining_value}/"
            f"{self.original_value}, due={self.due_date}, {self.status})>"
        )


# ---------------------------------------------------------------------------
# PayablePaymentModel
# ---------------------------------------------------------------------------

class PayablePaymentModel(TrackedBase):
    """
    Money paid against a payable.

    Table: ``payable_payments``
    """

    __tablename__ = "payable_payments"

    account_payable_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts_payable.id"),
    )
    cash_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("cash_transactions.id"), nullable=True,
    )
    payment_date: Mapped[date]
    payment_value: Mapped[Decimal]
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    payable: Mapped[AccountPayableModel] = relationship(back_populates="payments")

    __table_args__ = (
        Index("idx_payable_payments_payable", "account_payable_id"),
    )
