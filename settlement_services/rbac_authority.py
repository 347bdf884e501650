"""
settlement_services.rbac_authority -- role checks at the orchestrator boundary.

Responsibility:
    Map each settlement action to the roles allowed to perform it and check
    an actor's role before any write happens.

Architecture position:
    Services layer.  Identity is resolved by a PermissionResolver (the
    caller's authentication already happened); this module only decides.

Invariants:
    - Editors and admins create, update and activate contracts and record
      installment payments.
    - Only admins delete contracts or installment groups.
    - Viewers never write.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from settlement_kernel.domain.contract_terms import UserRole
from settlement_kernel.exceptions import UnauthorizedError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.services.reference_resolvers import PermissionResolver

logger = get_logger("services.rbac")

CONTRACT_CREATE = "contract.create"
CONTRACT_UPDATE = "contract.update"
CONTRACT_ACTIVATE = "contract.activate"
CONTRACT_DELETE = "contract.delete"
RECEIVABLE_RECEIPT = "receivable.receipt"
PAYABLE_PAYMENT = "payable.payment"
PAYABLE_GROUP_DELETE = "payable.group.delete"

_EDITORS = frozenset({UserRole.ADMIN, UserRole.EDITOR})
_ADMINS = frozenset({UserRole.ADMIN})

# action -> roles allowed to perform it
ACTION_ROLES: dict[str, frozenset[UserRole]] = {
    CONTRACT_CREATE: _EDITORS,
    CONTRACT_UPDATE: _EDITORS,
    CONTRACT_ACTIVATE: _EDITORS,
    CONTRACT_DELETE: _ADMINS,
    RECEIVABLE_RECEIPT: _EDITORS,
    PAYABLE_PAYMENT: _EDITORS,
    PAYABLE_GROUP_DELETE: _ADMINS,
}


@dataclass(frozen=True)
class RolePermissions:
    role: UserRole
    can_edit: bool
    can_delete: bool


def check_permission(role: UserRole | str, action: str) -> tuple[bool, str]:
    """(allowed, reason); reason is empty when allowed."""
    allowed_roles = ACTION_ROLES.get(action)
    if allowed_roles is None:
        return (False, f"RBAC: unknown action '{action}'")
    if UserRole(role) not in allowed_roles:
        return (False, f"RBAC: role '{UserRole(role).value}' may not perform '{action}'")
    return (True, "")


def require_permission(
    resolver: PermissionResolver,
    actor_id: UUID,
    action: str,
) -> UserRole:
    """
    Resolve the actor's role and check it against ``action``.

    Raises:
        ProfileNotFoundError: the actor has no profile.
        UnauthorizedError: the role does not grant the action.
    """
    role = resolver.role_for(actor_id)
    allowed, reason = check_permission(role, action)
    if not allowed:
        logger.warning(
            "permission_denied",
            extra={"action": action, "role": UserRole(role).value, "reason": reason},
        )
        raise UnauthorizedError(actor_id, action, UserRole(role).value)
    return UserRole(role)


def permissions_for(role: UserRole | str) -> RolePermissions:
    role = UserRole(role)
    return RolePermissions(
        role=role,
        can_edit=role in _EDITORS,
        can_delete=role in _ADMINS,
    )
