"""
Cash ORM Models (``settlement_modules.cash.orm``).

Responsibility
--------------
Bank accounts and the cash register.  Contracts with single payment
conditions, and every installment payment, land here as settled cash
transactions that move a bank account's balance.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``settlement_kernel.db``.
MUST NOT be imported by ``settlement_kernel``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.contract_terms import CashTransactionStatus, PaymentDirection


# ---------------------------------------------------------------------------
# BankAccountModel
# ---------------------------------------------------------------------------

class BankAccountModel(TrackedBase):
    """
    A bank or cash account.  Only ``balance`` is mutated by settlement, and
    only through atomic increments.

    Table: ``bank_accounts``
    """

    __tablename__ = "bank_accounts"

    name: Mapped[str] = mapped_column(String(200))
    account_type: Mapped[str] = mapped_column(String(30), default="checking")
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    balance: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    initial_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    transactions: Mapped[list["CashTransactionModel"]] = relationship(
        back_populates="bank_account",
    )

    __table_args__ = (
        UniqueConstraint("code", name="uq_bank_accounts_code"),
        Index("idx_bank_accounts_active_name", "is_active", "name"),
    )

    def __repr__(self) -> str:
        return (
            f"<BankAccountModel(name={self.name!r}, balance={self.balance}, "
            f"active={self.is_active})>"
        )


# ---------------------------------------------------------------------------
# CashTransactionModel
# ---------------------------------------------------------------------------

class CashTransactionModel(TrackedBase):
    """
    One movement in the cash register.

    ``balance_after`` is the account balance right after this movement was
    applied.  ``link_tag``/``cost_center`` classify the movement for cash
    reporting; ``settlement_form`` is how it was paid (cash, transfer,
    exchange).

    Table: ``cash_transactions``
    """

    __tablename__ = "cash_transactions"

    bank_account_id: Mapped[UUID] = mapped_column(ForeignKey("bank_accounts.id"))
    transaction_date: Mapped[date]
    direction: Mapped[PaymentDirection] = mapped_column(String(3))
    description: Mapped[str] = mapped_column(String(500))
    link_tag: Mapped[str | None] = mapped_column(String(50), nullable=True)
    settlement_form: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)
    value: Mapped[Decimal]
    balance_after: Mapped[Decimal]
    status: Mapped[CashTransactionStatus] = mapped_column(
        String(20), default=CashTransactionStatus.SETTLED,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    contract_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contracts.id"), nullable=True,
    )
    account_receivable_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("accounts_receivable.id"), nullable=True,
    )
    account_payable_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("accounts_payable.id"), nullable=True,
    )

    bank_account: Mapped[BankAccountModel] = relationship(back_populates="transactions")

    __table_args__ = (
        Index("idx_cash_transactions_account_date", "bank_account_id", "transaction_date"),
        Index("idx_cash_transactions_contract", "contract_id"),
        Index("idx_cash_transactions_receivable", "account_receivable_id"),
        Index("idx_cash_transactions_payable", "account_payable_id"),
    )

    @property
    def signed_value(self) -> Decimal:
        return self.value if self.direction == PaymentDirection.IN else -self.value

    def __repr__(self) -> str:
        return (
            f"<CashTransactionModel({self.direction} {self.value}, "
            f"balance_after={self.balance_after}, date={self.transaction_date})>"
        )
