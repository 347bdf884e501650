"""
Module: settlement_kernel.db.types
Responsibility: Annotated column aliases and money helpers shared by models,
    engines and services.
Architecture position: Kernel > DB.  Importable from every layer; imports
    nothing from the kernel itself.

Invariants enforced:
    - Monetary amounts are Decimal with MONEY_DECIMAL_PLACES (9) of scale.
    - to_money() is the only sanctioned way to turn caller input (int, str,
      float from a form) into a Decimal; floats go through str() so 0.1
      stays 0.1.
    - to_money() never returns NaN or Infinity.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Percentages (participant share, GRA)
Percentage = Annotated[Decimal, Numeric(9, 4)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP

_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """
    Coerce caller input to Decimal.

    Raises:
        ValueError: value is None, a bool, not numeric, or not finite
            (NaN, sNaN, Infinity).
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a finite monetary amount: {value!r}")
    return amount


def round_money(value: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round to ``places`` decimal places with ROUND_HALF_UP."""
    quantum = _MONEY_QUANTUM if places == MONEY_DECIMAL_PLACES else Decimal(1).scaleb(-places)
    return value.quantize(quantum, rounding=DEFAULT_ROUNDING)
