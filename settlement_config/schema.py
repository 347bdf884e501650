"""
Settlement configuration schema (``settlement_config.schema``).

Frozen dataclasses with defaults for every setting the settlement engine
reads.  Values come from YAML via ``settlement_config.loader``; services
receive the relevant section by constructor injection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from settlement_kernel.domain.contract_terms import InstallmentRounding
from settlement_kernel.logging_config import get_logger

logger = get_logger("config.schema")


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite+pysqlite:///:memory:"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10

    def __post_init__(self):
        if not self.url:
            raise ValueError("database url cannot be empty")
        if self.pool_size < 1:
            raise ValueError("pool_size must be at least 1")


@dataclass(frozen=True)
class ContractCodeSettings:
    """Contract code shape: ``{prefix}-{number padded to min_digits}``."""

    prefix: str = "CT"
    min_digits: int = 4
    max_attempts: int = 5

    def __post_init__(self):
        if not self.prefix or not self.prefix.strip():
            raise ValueError("contract code prefix cannot be empty")
        if "-" in self.prefix:
            raise ValueError("contract code prefix cannot contain '-'")
        if self.min_digits < 1:
            raise ValueError("min_digits must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True)
class LedgerSettings:
    """
    How contracts land in the cash register and installment ledgers.

    installment_rounding:
        ``none`` keeps value / n on every installment (remainder not
        corrected); ``last`` rounds to cents and puts the remainder on the
        last installment.
    """

    balance_tolerance: Decimal = Decimal("0.01")
    installment_rounding: InstallmentRounding = InstallmentRounding.NONE
    link_tag: str = "contract"
    cost_center: str = "contracts"
    default_settlement_form: str = "cash"

    def __post_init__(self):
        if self.balance_tolerance < 0:
            raise ValueError("balance_tolerance cannot be negative")
        if not isinstance(self.installment_rounding, InstallmentRounding):
            object.__setattr__(
                self, "installment_rounding", InstallmentRounding(self.installment_rounding)
            )
        if self.installment_rounding != InstallmentRounding.NONE:
            logger.debug(
                "installment_rounding_enabled",
                extra={"installment_rounding": self.installment_rounding.value},
            )


@dataclass(frozen=True)
class SettlementConfig:
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    codes: ContractCodeSettings = field(default_factory=ContractCodeSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    checksum: str = ""
