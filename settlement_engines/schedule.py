"""
Installment schedule engine -- due dates and per-installment values.

Responsibility:
    ``project_due_date`` gives the due date of installment ``i`` of a plan
    starting on ``start_date``; ``split_installments`` divides a condition's
    value across ``n`` installments.

Architecture position:
    Engines -- pure calculation, zero I/O.

Invariants enforced:
    - Each due date is computed from the start date, never chained from
      the previous one, so a clamped month does not drift the plan.
    - Month and year steps are calendar-aware (dateutil.relativedelta):
      the day of month is clamped to the last day of a shorter month.
      2024-01-31 + 1 month = 2024-02-29; 2024-02-29 + 12 months = 2025-02-28.
    - Index 0 or a missing frequency is the start date itself.
    - An unrecognised frequency steps monthly.
    - With InstallmentRounding.NONE every installment is value / n at
      money scale; the sum differs from the value by at most n * 1e-9.
"""

from datetime import date
from decimal import ROUND_DOWN, Decimal

from dateutil.relativedelta import relativedelta

from settlement_kernel.db.types import CENT, round_money
from settlement_kernel.domain.contract_terms import InstallmentRounding, PaymentFrequency

_STEPS = {
    PaymentFrequency.WEEKLY: lambda i: relativedelta(weeks=i),
    PaymentFrequency.MONTHLY: lambda i: relativedelta(months=i),
    PaymentFrequency.QUARTERLY: lambda i: relativedelta(months=3 * i),
    PaymentFrequency.SEMIANNUAL: lambda i: relativedelta(months=6 * i),
    PaymentFrequency.ANNUAL: lambda i: relativedelta(years=i),
}


def _as_frequency(frequency: PaymentFrequency | str) -> PaymentFrequency:
    try:
        return PaymentFrequency(frequency)
    except ValueError:
        return PaymentFrequency.MONTHLY


def project_due_date(
    start_date: date,
    installment_index: int,
    frequency: PaymentFrequency | str | None,
) -> date:
    """Due date of the zero-based ``installment_index``."""
    if installment_index == 0 or not frequency:
        return start_date
    return start_date + _STEPS[_as_frequency(frequency)](installment_index)


def installment_due_dates(
    start_date: date,
    count: int,
    frequency: PaymentFrequency | str | None,
) -> tuple[date, ...]:
    return tuple(project_due_date(start_date, i, frequency) for i in range(count))


def split_installments(
    total: Decimal,
    count: int,
    rounding: InstallmentRounding = InstallmentRounding.NONE,
) -> tuple[Decimal, ...]:
    """
    Per-installment values for ``total`` paid in ``count`` installments.

    NONE: every installment is ``total / count`` rounded to money scale.
    LAST: installments are truncated to cents and the last one carries the
    remainder, so the values sum exactly to ``total``.
    """
    count = max(1, count)
    if InstallmentRounding(rounding) == InstallmentRounding.LAST:
        base = (total / count).quantize(CENT, rounding=ROUND_DOWN)
        return (base,) * (count - 1) + (total - base * (count - 1),)
    return (round_money(total / count),) * count
