"""
Tests for InstallmentPaymentOrchestrator.

Validates:
- Receipts and payments move the bank balance and settle the installment
- Overpayment, overdraft and invalid values are rejected without side effects
- Batches settle each entry independently and report the failures
- Overdue refresh marks only open installments due before the cutoff
- Payable groups can be deleted only while unpaid, and only by admins
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from settlement_kernel.domain.contract_terms import InstallmentStatus
from settlement_modules.ap.orm import AccountPayableModel, PayablePaymentModel
from settlement_modules.ap.service import PayableLedgerService
from settlement_modules.ar.orm import ReceivablePaymentModel
from settlement_modules.ar.service import ReceivableLedgerService
from settlement_modules.cash.orm import CashTransactionModel


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def receivables(session, contract_orchestrator, editor_id, contract_form, monthly_receivables):
    form = contract_form(side_a="100000", side_b="220000", conditions=monthly_receivables)
    contract = contract_orchestrator.create(editor_id, form).data
    return ReceivableLedgerService(session).for_contract(contract.id)


@pytest.fixture
def payables(session, contract_orchestrator, editor_id, contract_form):
    conditions = [
        {
            "condition_value": "3000",
            "direction": "out",
            "payment_type": "installment",
            "installments": 3,
            "frequency": "monthly",
            "start_date": "2024-02-01",
        }
    ]
    contract = contract_orchestrator.create(editor_id, contract_form(conditions=conditions)).data
    return PayableLedgerService(session).for_contract_code(contract.code)


class TestReceipts:

    def test_partial_receipt(self, session, payment_orchestrator, editor_id, make_bank_account, receivables):
        account = make_bank_account(balance=Decimal("50000"))
        first = receivables[0]

        result = payment_orchestrator.record_receipt(
            editor_id, first.id, "4000", payment_date=date(2024, 1, 20), payment_method="pix"
        )

        assert result.is_success, result.error
        settlement = result.data
        assert settlement.installment_code == "CT-0001-R01"
        assert settlement.remaining_value == Decimal("6000")
        assert settlement.status == InstallmentStatus.PARTIALLY_PAID
        assert settlement.balance_after == Decimal("54000")
        assert result.message == "Receipt of 4000 recorded for CT-0001-R01"

        session.refresh(account)
        assert account.balance == Decimal("54000")
        session.refresh(first)
        assert first.status == InstallmentStatus.PARTIALLY_PAID.value
        assert first.remaining_value == Decimal("6000")

        payment = session.execute(select(ReceivablePaymentModel)).scalar_one()
        assert payment.account_receivable_id == first.id
        assert payment.cash_transaction_id == settlement.cash_transaction_id
        assert payment.payment_value == Decimal("4000")

        tx = session.get(CashTransactionModel, settlement.cash_transaction_id)
        assert tx.direction == "in"
        assert tx.account_receivable_id == first.id
        assert tx.settlement_form == "pix"
        assert str(tx.transaction_date) == "2024-01-20"

    def test_full_receipt_settles(self, payment_orchestrator, editor_id, make_bank_account, receivables):
        make_bank_account()
        first = receivables[0]

        assert payment_orchestrator.record_receipt(editor_id, first.id, "4000").is_success
        result = payment_orchestrator.record_receipt(editor_id, first.id, "6000")

        assert result.is_success, result.error
        assert result.data.status == InstallmentStatus.SETTLED
        assert result.data.remaining_value == Decimal("0")

    def test_overpayment_rejected_without_cash_movement(
        self, session, payment_orchestrator, editor_id, make_bank_account, receivables
    ):
        account = make_bank_account(balance=Decimal("50000"))

        result = payment_orchestrator.record_receipt(editor_id, receivables[0].id, "15000")

        assert not result.is_success
        assert result.error_code == "OVERPAYMENT"
        assert _count(session, CashTransactionModel) == 0
        assert _count(session, ReceivablePaymentModel) == 0
        session.refresh(account)
        assert account.balance == Decimal("50000")

    def test_no_active_account(self, payment_orchestrator, editor_id, make_bank_account, receivables):
        make_bank_account(is_active=False)

        result = payment_orchestrator.record_receipt(editor_id, receivables[0].id, "1000")

        assert not result.is_success
        assert result.error_code == "BANK_ACCOUNT_NOT_FOUND"

    def test_explicit_account(self, session, payment_orchestrator, editor_id, make_bank_account, receivables):
        make_bank_account(name="A default", balance=Decimal("0"))
        savings = make_bank_account(name="Savings", balance=Decimal("100"))

        result = payment_orchestrator.record_receipt(
            editor_id, receivables[0].id, "100", bank_account_id=savings.id
        )

        assert result.is_success, result.error
        assert result.data.balance_after == Decimal("200")

    @pytest.mark.parametrize(
        "value", ["0", "-5", "abc", None, "NaN", "sNaN", "Infinity", Decimal("NaN")]
    )
    def test_invalid_value(self, payment_orchestrator, editor_id, make_bank_account, receivables, value):
        make_bank_account()

        result = payment_orchestrator.record_receipt(editor_id, receivables[0].id, value)

        assert not result.is_success
        assert result.error_code == "SETTLEMENT_PAYMENT_ERROR"

    def test_unknown_installment(self, payment_orchestrator, editor_id, make_bank_account):
        make_bank_account()

        result = payment_orchestrator.record_receipt(editor_id, uuid4(), "100")

        assert not result.is_success
        assert result.error_code == "INSTALLMENT_NOT_FOUND"

    def test_viewer_cannot_record(self, payment_orchestrator, viewer_id, make_bank_account, receivables):
        make_bank_account()

        result = payment_orchestrator.record_receipt(viewer_id, receivables[0].id, "100")

        assert not result.is_success
        assert result.error_code == "UNAUTHORIZED"


class TestPayments:

    def test_payment_debits_account(self, session, payment_orchestrator, editor_id, make_bank_account, payables):
        account = make_bank_account(balance=Decimal("5000"))
        first = payables[0]

        result = payment_orchestrator.record_payment(editor_id, first.id, "1000")

        assert result.is_success, result.error
        assert result.data.status == InstallmentStatus.SETTLED
        assert result.data.balance_after == Decimal("4000")
        session.refresh(account)
        assert account.balance == Decimal("4000")

        payment = session.execute(select(PayablePaymentModel)).scalar_one()
        assert payment.account_payable_id == first.id
        tx = session.get(CashTransactionModel, result.data.cash_transaction_id)
        assert tx.direction == "out"
        assert tx.account_payable_id == first.id

    def test_insufficient_funds(self, session, payment_orchestrator, editor_id, make_bank_account, payables):
        account = make_bank_account(balance=Decimal("500"))

        result = payment_orchestrator.record_payment(editor_id, payables[0].id, "1000")

        assert not result.is_success
        assert result.error_code == "INSUFFICIENT_FUNDS"
        assert _count(session, PayablePaymentModel) == 0
        session.refresh(account)
        assert account.balance == Decimal("500")


class TestBatchSettlement:

    def test_receipts_share_date_method_and_account(
        self, session, payment_orchestrator, editor_id, make_bank_account, receivables
    ):
        make_bank_account(name="A default", balance=Decimal("0"))
        savings = make_bank_account(name="Savings", balance=Decimal("1000"))
        entries = [
            {"account_receivable_id": receivables[0].id, "payment_value": "10000"},
            {"account_receivable_id": str(receivables[1].id), "payment_value": "2500"},
        ]

        result = payment_orchestrator.record_receipts(
            editor_id,
            entries,
            bank_account_id=savings.id,
            payment_date=date(2024, 2, 20),
            payment_method="boleto",
        )

        assert result.is_success, result.error
        batch = result.data
        assert batch.processed == 2
        assert batch.failures == ()
        assert result.message == "2 receipts recorded"
        assert [s.status for s in batch.settlements] == [
            InstallmentStatus.SETTLED,
            InstallmentStatus.PARTIALLY_PAID,
        ]
        session.refresh(savings)
        assert savings.balance == Decimal("13500")
        txs = session.execute(select(CashTransactionModel)).scalars().all()
        assert {str(tx.transaction_date) for tx in txs} == {"2024-02-20"}
        assert {tx.settlement_form for tx in txs} == {"boleto"}
        assert {tx.bank_account_id for tx in txs} == {savings.id}

    def test_failed_entry_does_not_undo_the_others(
        self, session, payment_orchestrator, editor_id, make_bank_account, receivables
    ):
        account = make_bank_account(balance=Decimal("0"))
        unknown = uuid4()
        entries = [
            {"account_receivable_id": receivables[0].id, "payment_value": "4000"},
            {"account_receivable_id": receivables[1].id, "payment_value": "99999"},
            {"account_receivable_id": unknown, "payment_value": "100"},
            {"account_receivable_id": "not-an-id", "payment_value": "100"},
            {"account_receivable_id": receivables[2].id, "payment_value": "1000"},
        ]

        result = payment_orchestrator.record_receipts(editor_id, entries)

        assert not result.is_success
        assert result.error_code == "BATCH_SETTLEMENT_FAILED"
        assert result.error == "3 of 5 receipts failed"
        batch = result.data
        assert batch.processed == 2
        assert [f.error_code for f in batch.failures] == [
            "OVERPAYMENT",
            "INSTALLMENT_NOT_FOUND",
            "INSTALLMENT_NOT_FOUND",
        ]
        assert batch.failures[0].installment_id == receivables[1].id
        assert batch.failures[1].installment_id == unknown
        assert batch.failures[2].installment_id == "not-an-id"
        assert _count(session, ReceivablePaymentModel) == 2
        session.refresh(account)
        assert account.balance == Decimal("5000")

    def test_payments_stop_at_insufficient_funds(
        self, session, payment_orchestrator, editor_id, make_bank_account, payables
    ):
        account = make_bank_account(balance=Decimal("1500"))
        entries = [{"account_payable_id": p.id, "payment_value": "1000"} for p in payables]

        result = payment_orchestrator.record_payments(editor_id, entries)

        assert not result.is_success
        assert result.data.processed == 1
        assert [f.error_code for f in result.data.failures] == ["INSUFFICIENT_FUNDS"] * 2
        assert result.error == "2 of 3 payments failed"
        session.refresh(account)
        assert account.balance == Decimal("500")
        assert _count(session, PayablePaymentModel) == 1

    def test_viewer_rejected_before_any_entry(
        self, session, payment_orchestrator, viewer_id, make_bank_account, receivables
    ):
        make_bank_account()
        entries = [{"account_receivable_id": receivables[0].id, "payment_value": "100"}]

        result = payment_orchestrator.record_receipts(viewer_id, entries)

        assert not result.is_success
        assert result.error_code == "UNAUTHORIZED"
        assert result.data is None
        assert _count(session, ReceivablePaymentModel) == 0

    def test_empty_batch(self, payment_orchestrator, editor_id):
        result = payment_orchestrator.record_payments(editor_id, [])

        assert result.is_success
        assert result.data.processed == 0


class TestRefreshOverdue:

    def test_marks_installments_due_before_cutoff(self, session, payment_orchestrator, receivables):
        result = payment_orchestrator.refresh_overdue(as_of=date(2024, 3, 1))

        assert result.is_success, result.error
        assert result.data.receivables_marked == 2
        assert result.data.payables_marked == 0

        statuses = [
            r.status for r in ReceivableLedgerService(session).for_contract(receivables[0].contract_id)
        ]
        assert statuses[:2] == [InstallmentStatus.OVERDUE.value] * 2
        assert set(statuses[2:]) == {InstallmentStatus.OPEN.value}

    def test_settled_installments_untouched(
        self, session, payment_orchestrator, editor_id, make_bank_account, receivables
    ):
        make_bank_account()
        payment_orchestrator.record_receipt(editor_id, receivables[0].id, "10000")

        result = payment_orchestrator.refresh_overdue(as_of=date(2024, 3, 1))

        assert result.data.receivables_marked == 1
        session.refresh(receivables[0])
        assert receivables[0].status == InstallmentStatus.SETTLED.value


class TestDeletePayableGroup:

    @staticmethod
    def _group_id(payables):
        return payables[0].installment_group_id

    def test_admin_deletes_unpaid_group(self, session, payment_orchestrator, admin_id, payables):
        result = payment_orchestrator.delete_payable_group(admin_id, self._group_id(payables))

        assert result.is_success, result.error
        assert result.data.payables_deleted == 3
        assert _count(session, AccountPayableModel) == 0

    def test_editor_cannot_delete(self, session, payment_orchestrator, editor_id, payables):
        result = payment_orchestrator.delete_payable_group(editor_id, self._group_id(payables))

        assert not result.is_success
        assert result.error_code == "UNAUTHORIZED"
        assert _count(session, AccountPayableModel) == 3

    def test_paid_group_is_locked(
        self, session, payment_orchestrator, editor_id, admin_id, make_bank_account, payables
    ):
        make_bank_account()
        assert payment_orchestrator.record_payment(editor_id, payables[1].id, "500").is_success

        result = payment_orchestrator.delete_payable_group(admin_id, self._group_id(payables))

        assert not result.is_success
        assert result.error_code == "INSTALLMENT_GROUP_LOCKED"
        assert "CT-0001-P02" in result.error
        assert _count(session, AccountPayableModel) == 3

    def test_unknown_group(self, payment_orchestrator, admin_id):
        result = payment_orchestrator.delete_payable_group(admin_id, uuid4())

        assert not result.is_success
        assert result.error_code == "INSTALLMENT_NOT_FOUND"
