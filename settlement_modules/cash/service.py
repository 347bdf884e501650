"""
settlement_modules.cash.service
===============================

Responsibility:
    Bank account selection, atomic balance movement, and the cash register
    (recording and reversing cash transactions).

Architecture:
    Module layer.  Flush-only: the contract, deletion and installment
    payment orchestrators own the transaction boundary.

Invariants enforced:
    - Balances change only through ``UPDATE ... SET balance = balance + delta``
      executed by the database.  Concurrent movements on one account never
      lose an update, and the running balance is re-read from the row after
      every movement.
    - A recorded transaction's ``balance_after`` is the balance produced by
      its own movement.
    - Reversal applies the exact inverse (``-value`` for in, ``+value`` for
      out), so recording then reversing ``V`` on balance ``B`` leaves ``B``.

Failure modes:
    - BankAccountNotFoundError for an unknown or inactive account.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, or_, select, update

from settlement_kernel.domain.contract_terms import CashTransactionStatus, PaymentDirection
from settlement_kernel.exceptions import BankAccountNotFoundError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.base import BaseService
from settlement_modules.cash.orm import BankAccountModel, CashTransactionModel

logger = get_logger("modules.cash.service")


@dataclass(frozen=True)
class ReversalSummary:
    transactions_reversed: int
    net_adjustment: dict[UUID, Decimal]


class CashLedgerService(BaseService[CashTransactionModel]):
    """
    Cash register writer.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT decide whether a movement is allowed (overdraft checks
          belong to the caller).
    """

    # =========================================================================
    # Accounts
    # =========================================================================

    def first_active_account(self) -> BankAccountModel | None:
        """The active account that sorts first by name, if any."""
        return self.session.execute(
            select(BankAccountModel)
            .where(BankAccountModel.is_active.is_(True))
            .order_by(BankAccountModel.name, BankAccountModel.id)
            .limit(1)
        ).scalar_one_or_none()

    def require_active_account(self, account_id: UUID, lock: bool = False) -> BankAccountModel:
        if lock:
            account = self.session.execute(
                select(BankAccountModel)
                .where(BankAccountModel.id == account_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        else:
            account = self.session.get(BankAccountModel, account_id)
        if account is None or not account.is_active:
            raise BankAccountNotFoundError(account_id)
        return account

    def current_balance(self, account_id: UUID) -> Decimal:
        balance = self.session.execute(
            select(BankAccountModel.balance).where(BankAccountModel.id == account_id)
        ).scalar_one_or_none()
        if balance is None:
            raise BankAccountNotFoundError(account_id)
        return balance

    def adjust_balance(self, account_id: UUID, delta: Decimal) -> Decimal:
        """Atomically add ``delta`` to the account balance; return the new balance."""
        result = self.session.execute(
            update(BankAccountModel)
            .where(BankAccountModel.id == account_id)
            .values(balance=BankAccountModel.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise BankAccountNotFoundError(account_id)

        # Refresh any instance already in the identity map.
        account = self.session.execute(
            select(BankAccountModel)
            .where(BankAccountModel.id == account_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
        return account.balance

    # =========================================================================
    # Transactions
    # =========================================================================

    def record_transaction(
        self,
        *,
        account_id: UUID,
        direction: PaymentDirection,
        value: Decimal,
        transaction_date: date,
        description: str,
        actor_id: UUID,
        contract_id: UUID | None = None,
        account_receivable_id: UUID | None = None,
        account_payable_id: UUID | None = None,
        link_tag: str | None = None,
        cost_center: str | None = None,
        settlement_form: str | None = None,
        notes: str | None = None,
    ) -> CashTransactionModel:
        """Move the account balance and record a settled cash transaction."""
        direction = PaymentDirection(direction)
        delta = value if direction == PaymentDirection.IN else -value
        balance_after = self.adjust_balance(account_id, delta)

        transaction = CashTransactionModel(
            bank_account_id=account_id,
            transaction_date=transaction_date,
            direction=direction.value,
            description=description,
            link_tag=link_tag,
            settlement_form=settlement_form,
            cost_center=cost_center,
            value=value,
            balance_after=balance_after,
            status=CashTransactionStatus.SETTLED.value,
            notes=notes,
            contract_id=contract_id,
            account_receivable_id=account_receivable_id,
            account_payable_id=account_payable_id,
            created_by_id=actor_id,
        )
        self.session.add(transaction)
        self.session.flush()

        logger.info(
            "cash_transaction_recorded",
            extra={
                "cash_transaction_id": str(transaction.id),
                "bank_account_id": str(account_id),
                "direction": direction.value,
                "value": str(value),
                "balance_after": str(balance_after),
            },
        )
        return transaction

    def transactions_linked_to(
        self,
        *,
        contract_id: UUID | None = None,
        receivable_ids: Sequence[UUID] = (),
        payable_ids: Sequence[UUID] = (),
    ) -> list[CashTransactionModel]:
        """Cash transactions of a contract and of its installments."""
        clauses = []
        if contract_id is not None:
            clauses.append(CashTransactionModel.contract_id == contract_id)
        if receivable_ids:
            clauses.append(CashTransactionModel.account_receivable_id.in_(list(receivable_ids)))
        if payable_ids:
            clauses.append(CashTransactionModel.account_payable_id.in_(list(payable_ids)))
        if not clauses:
            return []

        return list(
            self.session.execute(
                select(CashTransactionModel)
                .where(or_(*clauses))
                .order_by(CashTransactionModel.created_at, CashTransactionModel.id)
            ).scalars()
        )

    def reverse_transactions(
        self,
        transactions: Sequence[CashTransactionModel],
    ) -> ReversalSummary:
        """
        Undo each transaction's balance effect, then delete the transactions.

        Each inverse adjustment is its own atomic increment against the
        account's current balance.
        """
        net: dict[UUID, Decimal] = {}
        for transaction in transactions:
            inverse = -transaction.signed_value
            self.adjust_balance(transaction.bank_account_id, inverse)
            net[transaction.bank_account_id] = net.get(
                transaction.bank_account_id, Decimal("0")
            ) + inverse

        ids = [t.id for t in transactions]
        if ids:
            self.session.execute(
                delete(CashTransactionModel)
                .where(CashTransactionModel.id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            self.session.flush()

        logger.info(
            "cash_transactions_reversed",
            extra={
                "count": len(ids),
                "net_adjustment": {str(k): str(v) for k, v in net.items()},
            },
        )
        return ReversalSummary(transactions_reversed=len(ids), net_adjustment=net)
