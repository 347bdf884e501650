"""
Tests for the ledger expansion plan.

Validates:
- Single conditions become cash movements, installments become ledger lines
- Receivable/payable codes {code}-Rnn / {code}-Pnn restart per condition
- Conditions are planned in input order
"""

from datetime import date
from decimal import Decimal

from settlement_kernel.domain.contract_terms import (
    InstallmentRounding,
    PaymentConditionSpec,
    PaymentDirection,
    PaymentFrequency,
    PaymentType,
)
from settlement_engines.expansion import LedgerKind, installment_code, plan_ledger_writes


def _installments(value, count, direction, frequency=PaymentFrequency.MONTHLY):
    return PaymentConditionSpec(
        value=Decimal(value),
        direction=direction,
        payment_type=PaymentType.INSTALLMENT,
        installments=count,
        frequency=frequency,
        start_date=date(2024, 1, 15),
    )


def _single(value, direction, method=None):
    return PaymentConditionSpec(
        value=Decimal(value),
        direction=direction,
        payment_type=PaymentType.SINGLE,
        start_date=date(2024, 1, 15),
        payment_method=method,
    )


class TestInstallmentCode:

    def test_codes_are_two_digit_padded(self):
        assert installment_code("CT-0001", LedgerKind.RECEIVABLE, 1) == "CT-0001-R01"
        assert installment_code("CT-0001", LedgerKind.PAYABLE, 12) == "CT-0001-P12"

    def test_more_than_99_installments_widen(self):
        assert installment_code("CT-0001", LedgerKind.RECEIVABLE, 120) == "CT-0001-R120"


class TestPlanLedgerWrites:

    def test_no_conditions_is_empty(self):
        plan = plan_ledger_writes(contract_code="CT-0001", conditions=[])
        assert plan.is_empty

    def test_single_out_is_cash_movement(self):
        plan = plan_ledger_writes(
            contract_code="CT-0001",
            conditions=[_single("20000", PaymentDirection.OUT, method="wire")],
        )
        assert plan.installments == ()
        (movement,) = plan.cash_movements
        assert movement.direction == PaymentDirection.OUT
        assert movement.value == Decimal("20000")
        assert movement.signed_value == Decimal("-20000")
        assert movement.payment_method == "wire"

    def test_incoming_installments_are_receivables(self):
        plan = plan_ledger_writes(
            contract_code="CT-0001",
            conditions=[_installments("120000", 12, PaymentDirection.IN)],
        )
        receivables = plan.receivables
        assert [r.code for r in receivables] == [f"CT-0001-R{n:02d}" for n in range(1, 13)]
        assert all(r.value == Decimal("10000") for r in receivables)
        assert receivables[0].due_date == date(2024, 1, 15)
        assert receivables[-1].due_date == date(2024, 12, 15)
        assert [(r.number, r.total) for r in receivables[:2]] == [(1, 12), (2, 12)]
        assert plan.payables == ()

    def test_outgoing_installments_are_payables(self):
        plan = plan_ledger_writes(
            contract_code="CT-0042",
            conditions=[_installments("3000", 3, PaymentDirection.OUT, PaymentFrequency.QUARTERLY)],
        )
        assert [p.code for p in plan.payables] == ["CT-0042-P01", "CT-0042-P02", "CT-0042-P03"]
        assert [p.due_date for p in plan.payables] == [
            date(2024, 1, 15),
            date(2024, 4, 15),
            date(2024, 7, 15),
        ]

    def test_numbering_restarts_per_condition(self):
        plan = plan_ledger_writes(
            contract_code="CT-0001",
            conditions=[
                _installments("200", 2, PaymentDirection.IN),
                _installments("300", 3, PaymentDirection.IN),
            ],
        )
        codes = [r.code for r in plan.receivables]
        assert codes == ["CT-0001-R01", "CT-0001-R02", "CT-0001-R01", "CT-0001-R02", "CT-0001-R03"]
        assert [r.condition_index for r in plan.receivables] == [0, 0, 1, 1, 1]

    def test_mixed_conditions_keep_input_order(self):
        plan = plan_ledger_writes(
            contract_code="CT-0001",
            conditions=[
                _single("100", PaymentDirection.IN),
                _installments("200", 2, PaymentDirection.OUT),
                _single("50", PaymentDirection.OUT),
            ],
        )
        assert [m.condition_index for m in plan.cash_movements] == [0, 2]
        assert {line.condition_index for line in plan.installments} == {1}

    def test_rounding_last_puts_remainder_on_last_line(self):
        plan = plan_ledger_writes(
            contract_code="CT-0001",
            conditions=[_installments("100", 3, PaymentDirection.IN)],
            rounding=InstallmentRounding.LAST,
        )
        assert [r.value for r in plan.receivables] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]
