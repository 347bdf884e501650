"""
Tests for ContractOrchestrator.

Validates:
- Creation persists header, parties, items, participants and conditions
- Balance is computed from the form and guards activation
- Payment conditions are expanded into cash, receivables and payables
- A failed create leaves nothing behind
- Role checks and reference validation
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from settlement_kernel.domain.contract_terms import ContractStatus
from settlement_kernel.models.contract import (
    ContractItemModel,
    ContractItemParticipantModel,
    ContractModel,
    ContractPartyModel,
    ContractPaymentConditionModel,
)
from settlement_kernel.selectors.contract_selector import ContractSelector
from settlement_modules.ap.orm import AccountPayableModel
from settlement_modules.ar.orm import AccountReceivableModel
from settlement_modules.ar.service import ReceivableLedgerService
from settlement_modules.cash.orm import CashTransactionModel


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def _single_out(value="20000"):
    return [
        {
            "condition_value": value,
            "direction": "out",
            "payment_type": "single",
            "start_date": "2024-01-15",
            "payment_method": "wire",
        }
    ]


class TestCreate:

    def test_balanced_contract_created_as_draft(self, contract_orchestrator, editor_id, contract_form):
        result = contract_orchestrator.create(editor_id, contract_form())

        assert result.is_success, result.error
        contract = result.data
        assert contract.code == "CT-0001"
        assert contract.status == ContractStatus.DRAFT
        assert contract.side_a_total == Decimal("100000.00")
        assert contract.side_b_total == Decimal("100000.00")
        assert contract.balance == Decimal("0")
        assert result.message == "Contract CT-0001 created"

    def test_codes_are_sequential(self, contract_orchestrator, editor_id, contract_form):
        codes = [contract_orchestrator.create(editor_id, contract_form()).data.code for _ in range(3)]
        assert codes == ["CT-0001", "CT-0002", "CT-0003"]

    def test_rows_and_participants_persisted(self, session, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(editor_id, contract_form()).data

        detail = ContractSelector(session).get_detail(contract.id)
        assert [p.side for p in detail.parties] == ["A", "B"]
        assert [i.item_type for i in detail.items] == ["property", "cash"]
        party_ids = {p.id for p in detail.parties}
        participant = detail.items[0].participants[0]
        assert participant.contract_party_id in party_ids
        assert participant.party_name == "Ana Souza"
        assert participant.percentage == Decimal("100")
        assert detail.parties[1].gra_percentage == Decimal("10")

    def test_created_as_active_when_balanced(self, contract_orchestrator, editor_id, contract_form):
        result = contract_orchestrator.create(editor_id, contract_form(status="active"))
        assert result.is_success, result.error
        assert result.data.status == ContractStatus.ACTIVE

    def test_out_condition_balances_and_moves_cash(
        self, session, contract_orchestrator, editor_id, contract_form, make_bank_account
    ):
        account = make_bank_account(balance=Decimal("50000"))
        form = contract_form(side_a="100000", side_b="80000", conditions=_single_out())

        result = contract_orchestrator.create(editor_id, form)
        assert result.is_success, result.error
        assert result.data.balance == Decimal("0")

        (tx,) = session.execute(
            select(CashTransactionModel).where(CashTransactionModel.contract_id == result.data.id)
        ).scalars()
        assert tx.direction == "out"
        assert tx.value == Decimal("20000")
        assert tx.bank_account_id == account.id
        session.refresh(account)
        assert account.balance == Decimal("30000")

        activated = contract_orchestrator.activate(editor_id, result.data.id)
        assert activated.is_success, activated.error
        assert activated.data.status == ContractStatus.ACTIVE

    def test_installment_condition_creates_receivables(
        self, session, contract_orchestrator, editor_id, contract_form, monthly_receivables
    ):
        form = contract_form(side_a="100000", side_b="220000", conditions=monthly_receivables)
        result = contract_orchestrator.create(editor_id, form)
        assert result.is_success, result.error
        assert result.data.balance == Decimal("0")

        rows = ReceivableLedgerService(session).for_contract(result.data.id)
        assert [r.code for r in rows] == [f"CT-0001-R{n:02d}" for n in range(1, 13)]
        assert all(r.original_value == Decimal("10000") for r in rows)
        assert str(rows[0].due_date) == "2024-01-15"
        assert str(rows[-1].due_date) == "2024-12-15"
        assert rows[0].counterparty == "Ana Souza / Construtora Horizonte Ltda"

    def test_outgoing_installments_create_payables(self, session, contract_orchestrator, editor_id, contract_form):
        conditions = [
            {
                "condition_value": "3000",
                "direction": "out",
                "payment_type": "installment",
                "installments": 3,
                "frequency": "quarterly",
                "start_date": "2024-02-01",
            }
        ]
        result = contract_orchestrator.create(editor_id, contract_form(conditions=conditions))
        assert result.is_success, result.error

        codes = session.execute(
            select(AccountPayableModel.code).order_by(AccountPayableModel.code)
        ).scalars().all()
        assert codes == ["CT-0001-P01", "CT-0001-P02", "CT-0001-P03"]

    def test_zero_installments_means_one_receivable(
        self, session, contract_orchestrator, editor_id, contract_form
    ):
        conditions = [
            {
                "condition_value": "5000",
                "direction": "in",
                "payment_type": "installment",
                "installments": 0,
                "frequency": "monthly",
                "start_date": "2024-03-10",
            }
        ]
        result = contract_orchestrator.create(editor_id, contract_form(conditions=conditions))
        assert result.is_success, result.error

        rows = ReceivableLedgerService(session).for_contract(result.data.id)
        assert [r.code for r in rows] == ["CT-0001-R01"]
        assert rows[0].original_value == Decimal("5000")
        assert str(rows[0].due_date) == "2024-03-10"
        stored = session.execute(select(ContractPaymentConditionModel.installments)).scalar_one()
        assert stored == 1

    def test_accepts_typed_draft(self, contract_orchestrator, editor_id, contract_form):
        from settlement_kernel.domain.contract_terms import ContractDraft

        draft = ContractDraft.from_form(contract_form())
        assert contract_orchestrator.create(editor_id, draft).is_success


class TestCreateFailures:

    def test_active_but_unbalanced_leaves_nothing(
        self, session, contract_orchestrator, editor_id, contract_form, make_bank_account, monthly_receivables
    ):
        account = make_bank_account(balance=Decimal("50000"))
        conditions = monthly_receivables + _single_out("5000")
        form = contract_form(side_a="100000", side_b="80000", conditions=conditions, status="active")

        result = contract_orchestrator.create(editor_id, form)

        assert not result.is_success
        assert result.error_code == "UNBALANCED_CONTRACT"
        for model in (
            ContractModel,
            ContractPartyModel,
            ContractItemModel,
            ContractItemParticipantModel,
            ContractPaymentConditionModel,
            AccountReceivableModel,
            CashTransactionModel,
        ):
            assert _count(session, model) == 0, model.__tablename__
        session.refresh(account)
        assert account.balance == Decimal("50000")

    def test_inactive_bank_account_rolls_back(
        self, session, contract_orchestrator, editor_id, contract_form, make_bank_account
    ):
        inactive = make_bank_account(is_active=False)
        form = contract_form(side_a="100000", side_b="80000", conditions=_single_out())

        result = contract_orchestrator.create(editor_id, form, bank_account_id=inactive.id)

        assert result.error_code == "BANK_ACCOUNT_NOT_FOUND"
        assert _count(session, ContractModel) == 0

    def test_missing_asset(self, contract_orchestrator, editor_id, contract_form):
        form = contract_form()
        form["items"][0]["item_id"] = str(uuid4())
        result = contract_orchestrator.create(editor_id, form)
        assert result.error_code == "ITEM_NOT_FOUND"

    def test_missing_party(self, contract_orchestrator, editor_id, contract_form):
        form = contract_form()
        form["parties"][0]["party_id"] = str(uuid4())
        form["items"][0]["participants"] = []
        result = contract_orchestrator.create(editor_id, form)
        assert result.error_code == "PARTY_NOT_FOUND"

    def test_invalid_form(self, contract_orchestrator, editor_id, contract_form):
        form = contract_form()
        form["items"][1]["item_value"] = "-5"
        result = contract_orchestrator.create(editor_id, form)
        assert result.error_code == "INVALID_CONTRACT_DATA"
        assert "items.item_value" in result.error

    def test_viewer_cannot_create(self, session, contract_orchestrator, viewer_id, contract_form):
        result = contract_orchestrator.create(viewer_id, contract_form())
        assert result.error_code == "UNAUTHORIZED"
        assert _count(session, ContractModel) == 0

    def test_unknown_actor(self, contract_orchestrator, contract_form):
        result = contract_orchestrator.create(uuid4(), contract_form())
        assert result.error_code == "PROFILE_NOT_FOUND"

    def test_datastore_error_is_persistence_error(
        self, session, contract_orchestrator, editor_id, contract_form, monkeypatch, captured_logs
    ):
        def _fail(**kwargs):
            raise SQLAlchemyError("connection reset by peer")

        monkeypatch.setattr(contract_orchestrator._expander, "expand", _fail)

        result = contract_orchestrator.create(editor_id, contract_form())

        assert result.error_code == "PERSISTENCE_ERROR"
        assert result.error == "Failed to create contract"
        assert "connection reset" not in result.error
        assert _count(session, ContractModel) == 0
        assert any(r["message"] == "contract_create_persistence_failed" for r in captured_logs())

    def test_unexpected_error_becomes_failed_result(
        self, session, contract_orchestrator, editor_id, contract_form, monkeypatch, captured_logs
    ):
        def _fail(**kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(contract_orchestrator._expander, "expand", _fail)

        result = contract_orchestrator.create(editor_id, contract_form())

        assert not result.is_success
        assert result.error_code == "UNEXPECTED_ERROR"
        assert result.error == "Unexpected error while trying to create contract"
        assert "boom" not in result.error
        assert _count(session, ContractModel) == 0
        failed = [r for r in captured_logs() if r["message"] == "contract_create_failed"]
        assert failed and failed[0]["exc_type"] == "RuntimeError"

    @pytest.mark.parametrize(
        "field",
        ["condition_value", "item_value", "gra_percentage", "percentage"],
    )
    @pytest.mark.parametrize("raw", ["NaN", "Infinity"])
    def test_non_finite_amount_is_invalid_data(
        self, session, contract_orchestrator, editor_id, contract_form, field, raw
    ):
        form = contract_form()
        if field == "condition_value":
            form["payment_conditions"] = [
                {
                    "condition_value": raw,
                    "direction": "in",
                    "payment_type": "single",
                    "start_date": "2024-01-15",
                }
            ]
        elif field == "item_value":
            form["items"][0]["item_value"] = raw
        elif field == "gra_percentage":
            form["parties"][0]["gra_percentage"] = raw
        else:
            form["items"][0]["participants"][0]["percentage"] = raw

        result = contract_orchestrator.create(editor_id, form)

        assert not result.is_success
        assert result.error_code == "INVALID_CONTRACT_DATA"
        assert _count(session, ContractModel) == 0

    def test_failed_rollback_reports_partial_failure(
        self, session, contract_orchestrator, viewer_id, contract_form, monkeypatch
    ):
        form = contract_form()

        def _broken_rollback():
            raise SQLAlchemyError("rollback failed")

        monkeypatch.setattr(session, "rollback", _broken_rollback)

        result = contract_orchestrator.create(viewer_id, form)
        assert result.error_code == "PARTIAL_FAILURE"


class TestActivate:

    def test_unbalanced_contract_stays_draft(self, session, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(
            editor_id, contract_form(side_a="100000", side_b="80000")
        ).data

        result = contract_orchestrator.activate(editor_id, contract.id)

        assert result.error_code == "UNBALANCED_CONTRACT"
        assert result.error == "Contract CT-0001 is not balanced. Difference: 20000.00"
        assert ContractSelector(session).get(contract.id).status == ContractStatus.DRAFT

    @pytest.mark.parametrize(
        "side_a, expected",
        [("100000.0099", True), ("100000.0100", True), ("100000.0101", False)],
    )
    def test_tolerance_boundary(self, contract_orchestrator, editor_id, contract_form, side_a, expected):
        contract = contract_orchestrator.create(
            editor_id, contract_form(side_a=side_a, side_b="100000")
        ).data
        assert contract_orchestrator.activate(editor_id, contract.id).is_success is expected

    def test_only_drafts_activate(self, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(editor_id, contract_form(status="active")).data
        result = contract_orchestrator.activate(editor_id, contract.id)
        assert result.error_code == "INVALID_CONTRACT_STATE"

    def test_unknown_contract(self, contract_orchestrator, editor_id):
        assert contract_orchestrator.activate(editor_id, uuid4()).error_code == "CONTRACT_NOT_FOUND"

    def test_logs_carry_correlation(self, contract_orchestrator, editor_id, contract_form, captured_logs):
        contract = contract_orchestrator.create(editor_id, contract_form()).data
        contract_orchestrator.activate(editor_id, contract.id)

        records = [r for r in captured_logs() if r.get("operation") == "contract_activate"]
        messages = [r["message"] for r in records]
        assert messages[0] == "contract_activate_started"
        assert "contract_activated" in messages
        assert messages[-1] == "contract_activate_completed"
        assert len({r["correlation_id"] for r in records}) == 1
        assert {r["actor_id"] for r in records} == {str(editor_id)}


class TestUpdate:

    def test_header_fields(self, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(editor_id, contract_form()).data
        result = contract_orchestrator.update(
            editor_id,
            contract.id,
            {"notes": "Signed", "contract_date": "2024-02-01", "attachment_urls": ["s3://deed.pdf"]},
        )
        assert result.is_success, result.error
        assert result.data.notes == "Signed"
        assert str(result.data.contract_date) == "2024-02-01"
        assert result.data.attachment_urls == ("s3://deed.pdf",)

    def test_status_active_goes_through_balance_check(self, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(
            editor_id, contract_form(side_a="100", side_b="50")
        ).data
        result = contract_orchestrator.update(editor_id, contract.id, {"status": "active"})
        assert result.error_code == "UNBALANCED_CONTRACT"

    def test_cancel_then_no_return_to_draft(self, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(editor_id, contract_form()).data
        cancelled = contract_orchestrator.update(editor_id, contract.id, {"status": "cancelled"})
        assert cancelled.data.status == ContractStatus.CANCELLED

        back = contract_orchestrator.update(editor_id, contract.id, {"status": "draft"})
        assert back.error_code == "INVALID_CONTRACT_STATE"

    def test_items_cannot_be_updated(self, contract_orchestrator, editor_id, contract_form):
        contract = contract_orchestrator.create(editor_id, contract_form()).data
        result = contract_orchestrator.update(editor_id, contract.id, {"items": []})
        assert result.error_code == "INVALID_CONTRACT_DATA"
