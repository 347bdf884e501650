"""
Pure domain layer.

Immutable contract terms, status enumerations and the injectable clock.
No ORM, no database access.
"""

from settlement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from settlement_kernel.domain.contract_terms import (
    CashItem,
    CashTransactionStatus,
    CompanyParty,
    ContractDraft,
    ContractItem,
    ContractStatus,
    CreditItem,
    DevelopmentItem,
    InstallmentRounding,
    InstallmentStatus,
    ItemType,
    ParticipantSpec,
    PartyType,
    PaymentConditionSpec,
    PaymentDirection,
    PaymentFrequency,
    PaymentType,
    PersonParty,
    PropertyItem,
    Side,
    UserRole,
    VehicleItem,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ContractDraft",
    "ContractItem",
    "PersonParty",
    "CompanyParty",
    "ParticipantSpec",
    "PropertyItem",
    "VehicleItem",
    "CreditItem",
    "DevelopmentItem",
    "CashItem",
    "PaymentConditionSpec",
    "ContractStatus",
    "Side",
    "PartyType",
    "ItemType",
    "PaymentDirection",
    "PaymentType",
    "PaymentFrequency",
    "InstallmentStatus",
    "CashTransactionStatus",
    "UserRole",
    "InstallmentRounding",
]
