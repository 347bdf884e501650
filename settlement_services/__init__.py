"""
settlement_services -- package init and public API.

Responsibility:
    Orchestrators that own transaction boundaries and compose the pure
    engines (settlement_engines/) with sessions, resolvers and the ledger
    modules (settlement_modules/).  This is the only layer that commits.

Architecture position:
    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        settlement_services/ -> settlement_modules/, settlement_engines/,
                                settlement_kernel/, settlement_config/
        settlement_engines/  -> settlement_services/ (FORBIDDEN)
        settlement_kernel/   -> settlement_services/ (FORBIDDEN)
"""

from settlement_services.base import OperationResult, TransactionalOrchestrator
from settlement_services.contract_deletion import ContractDeletionOrchestrator, DeletionSummary
from settlement_services.contract_orchestrator import ContractOrchestrator
from settlement_services.installment_payments import (
    BatchFailure,
    BatchSettlement,
    InstallmentPaymentOrchestrator,
    InstallmentSettlement,
    OverdueRefresh,
    PayableGroupDeletion,
)
from settlement_services.ledger_expander import ExpansionSummary, LedgerExpander
from settlement_services.rbac_authority import (
    RolePermissions,
    check_permission,
    permissions_for,
    require_permission,
)

__all__ = [
    "OperationResult",
    "TransactionalOrchestrator",
    "ContractOrchestrator",
    "ContractDeletionOrchestrator",
    "DeletionSummary",
    "InstallmentPaymentOrchestrator",
    "BatchSettlement",
    "BatchFailure",
    "InstallmentSettlement",
    "OverdueRefresh",
    "PayableGroupDeletion",
    "LedgerExpander",
    "ExpansionSummary",
    "RolePermissions",
    "check_permission",
    "permissions_for",
    "require_permission",
]
