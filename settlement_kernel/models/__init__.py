"""ORM models owned by the settlement kernel."""

from settlement_kernel.models.asset import (
    CreditModel,
    DevelopmentModel,
    PropertyModel,
    VehicleModel,
)
from settlement_kernel.models.contract import (
    ContractItemModel,
    ContractItemParticipantModel,
    ContractModel,
    ContractPartyModel,
    ContractPaymentConditionModel,
)
from settlement_kernel.models.party import CompanyModel, PersonModel
from settlement_kernel.models.user_profile import UserProfileModel

__all__ = [
    "ContractModel",
    "ContractPartyModel",
    "ContractItemModel",
    "ContractItemParticipantModel",
    "ContractPaymentConditionModel",
    "PersonModel",
    "CompanyModel",
    "PropertyModel",
    "VehicleModel",
    "CreditModel",
    "DevelopmentModel",
    "UserProfileModel",
]
