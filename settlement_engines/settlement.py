"""
Installment settlement engine -- applying a payment to an installment.

Responsibility:
    Decide the new remaining value and status when a payment is recorded
    against a receivable or payable, and whether an installment is overdue
    on a given date.

Architecture position:
    Engines -- pure calculation, zero I/O.

Invariants enforced:
    - A payment is positive and never exceeds the remaining value.
    - remaining == 0 -> settled; otherwise partially_paid.
    - Only open and partially paid installments can become overdue.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from settlement_kernel.domain.contract_terms import InstallmentStatus
from settlement_kernel.exceptions import OverpaymentError
from settlement_engines.tracer import traced_engine

_ZERO = Decimal("0")

_OVERDUE_ELIGIBLE = frozenset({InstallmentStatus.OPEN, InstallmentStatus.PARTIALLY_PAID})


@dataclass(frozen=True)
class PaymentApplication:
    payment_value: Decimal
    remaining_value: Decimal
    status: InstallmentStatus

    @property
    def is_settled(self) -> bool:
        return self.status == InstallmentStatus.SETTLED


@traced_engine("installment_settlement", "1.0", fingerprint_fields=("remaining_value", "payment_value"))
def apply_payment(
    *,
    installment_code: str,
    remaining_value: Decimal,
    payment_value: Decimal,
) -> PaymentApplication:
    """
    Raises:
        ValueError: payment_value is not positive.
        OverpaymentError: payment_value exceeds remaining_value.
    """
    if payment_value <= _ZERO:
        raise ValueError(f"Payment value must be positive, got {payment_value}")
    if payment_value > remaining_value:
        raise OverpaymentError(installment_code, payment_value, remaining_value)

    remaining = remaining_value - payment_value
    status = InstallmentStatus.SETTLED if remaining == _ZERO else InstallmentStatus.PARTIALLY_PAID
    return PaymentApplication(
        payment_value=payment_value,
        remaining_value=remaining,
        status=status,
    )


def is_overdue(status: InstallmentStatus | str, due_date: date, as_of: date) -> bool:
    return InstallmentStatus(status) in _OVERDUE_ELIGIBLE and due_date < as_of
