"""
Reference resolvers -- seams to the registries a contract points into.

Responsibility:
    The contract orchestrator never queries asset, party or profile tables
    directly.  It asks three small collaborators:

    - AssetResolver.exists(item_type, item_id)
    - PartyResolver.exists(party_type, party_id)
    - PermissionResolver.role_for(actor_id)

    Each is a Protocol so callers may inject their own lookup (a remote
    registry, a cache, a test double).  The Sql* classes are the default
    implementations over the kernel's ORM models.

Failure modes:
    - ProfilePermissionResolver raises ProfileNotFoundError when the actor
      has no profile.
    - Cash items have no registry; SqlAssetResolver reports them missing.
"""

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from settlement_kernel.domain.contract_terms import ItemType, PartyType, UserRole
from settlement_kernel.exceptions import ProfileNotFoundError
from settlement_kernel.models.asset import (
    CreditModel,
    DevelopmentModel,
    PropertyModel,
    VehicleModel,
)
from settlement_kernel.models.party import CompanyModel, PersonModel
from settlement_kernel.models.user_profile import UserProfileModel


class AssetResolver(Protocol):
    def exists(self, item_type: ItemType, item_id: UUID) -> bool: ...


class PartyResolver(Protocol):
    def exists(self, party_type: PartyType, party_id: UUID) -> bool: ...


class PermissionResolver(Protocol):
    def role_for(self, actor_id: UUID) -> UserRole: ...


_ASSET_MODELS = {
    ItemType.PROPERTY: PropertyModel,
    ItemType.VEHICLE: VehicleModel,
    ItemType.CREDIT: CreditModel,
    ItemType.DEVELOPMENT: DevelopmentModel,
}

_PARTY_MODELS = {
    PartyType.PERSON: PersonModel,
    PartyType.COMPANY: CompanyModel,
}


class SqlAssetResolver:

    def __init__(self, session: Session):
        self._session = session

    def exists(self, item_type: ItemType, item_id: UUID) -> bool:
        model = _ASSET_MODELS.get(ItemType(item_type))
        if model is None:
            return False
        return self._session.get(model, item_id) is not None


class SqlPartyResolver:

    def __init__(self, session: Session):
        self._session = session

    def exists(self, party_type: PartyType, party_id: UUID) -> bool:
        model = _PARTY_MODELS[PartyType(party_type)]
        return self._session.get(model, party_id) is not None


class ProfilePermissionResolver:
    """Resolves an actor's role from user_profiles."""

    def __init__(self, session: Session):
        self._session = session

    def role_for(self, actor_id: UUID) -> UserRole:
        role = self._session.execute(
            select(UserProfileModel.role).where(UserProfileModel.user_id == actor_id)
        ).scalar_one_or_none()
        if role is None:
            raise ProfileNotFoundError(actor_id)
        return UserRole(role)
