"""Kernel services - flush-only writers and reference resolvers."""

from settlement_kernel.services.base import BaseService
from settlement_kernel.services.reference_resolvers import (
    AssetResolver,
    PartyResolver,
    PermissionResolver,
    ProfilePermissionResolver,
    SqlAssetResolver,
    SqlPartyResolver,
)
from settlement_kernel.services.sequence_service import ContractCodeAllocator

__all__ = [
    "BaseService",
    "ContractCodeAllocator",
    "AssetResolver",
    "PartyResolver",
    "PermissionResolver",
    "SqlAssetResolver",
    "SqlPartyResolver",
    "ProfilePermissionResolver",
]
