"""
Contract balance engine.

Responsibility:
    balance = (side A items + incoming conditions) - (side B items + outgoing
    conditions).  A contract may be activated when |balance| is within the
    activation tolerance.  Item gaps that payment conditions offset count
    as balanced.

Architecture position:
    Engines -- pure calculation, zero I/O.

Invariants enforced:
    - Decimal arithmetic only.
    - can_activate is inclusive: |balance| == tolerance activates.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.domain.contract_terms import PaymentConditionSpec, PaymentDirection
from settlement_engines.tracer import traced_engine

ACTIVATION_TOLERANCE = Decimal("0.01")
_ZERO = Decimal("0")


@dataclass(frozen=True)
class ContractBalance:
    side_a_total: Decimal
    side_b_total: Decimal
    incoming: Decimal
    outgoing: Decimal
    balance: Decimal
    is_balanced: bool


def _condition_totals(conditions: Iterable[PaymentConditionSpec]) -> tuple[Decimal, Decimal]:
    incoming = outgoing = _ZERO
    for condition in conditions:
        if condition.direction == PaymentDirection.IN:
            incoming += condition.value
        else:
            outgoing += condition.value
    return incoming, outgoing


def compute_balance(
    side_a_total: Decimal,
    side_b_total: Decimal,
    conditions: Iterable[PaymentConditionSpec],
) -> Decimal:
    incoming, outgoing = _condition_totals(conditions)
    return (side_a_total + incoming) - (side_b_total + outgoing)


def can_activate(balance: Decimal, tolerance: Decimal = ACTIVATION_TOLERANCE) -> bool:
    return abs(balance) <= tolerance


@traced_engine("contract_balance", "1.0", fingerprint_fields=("side_a_total", "side_b_total"))
def evaluate_balance(
    *,
    side_a_total: Decimal,
    side_b_total: Decimal,
    conditions: Iterable[PaymentConditionSpec],
    tolerance: Decimal = ACTIVATION_TOLERANCE,
) -> ContractBalance:
    """All balance components plus the activation verdict."""
    conditions = tuple(conditions)
    incoming, outgoing = _condition_totals(conditions)
    balance = (side_a_total + incoming) - (side_b_total + outgoing)
    return ContractBalance(
        side_a_total=side_a_total,
        side_b_total=side_b_total,
        incoming=incoming,
        outgoing=outgoing,
        balance=balance,
        is_balanced=can_activate(balance, tolerance),
    )
