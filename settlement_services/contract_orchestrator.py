"""
settlement_services.contract_orchestrator -- create, update and activate contracts.

Responsibility:
    Owns the transaction for every contract write.  ``create`` persists the
    header under a freshly allocated code, then parties, items with their
    participants, payment conditions and the ledger rows the conditions
    produce, all in one transaction.  ``activate`` moves a draft to active
    only when its balance is within tolerance.

Architecture position:
    Services layer.  Calls the kernel (allocator, resolvers, models), the
    pure engines (balance) and the ledger expander.  Its public methods
    return OperationResult and never raise SettlementError.

Invariants enforced:
    - Either the contract and all of its rows and ledger writes are
      committed, or none are.  Nothing is left behind by a failed create.
    - side_a_total, side_b_total and balance are computed from the draft
      and persisted on the header.
    - draft -> active requires |balance| <= tolerance, both through
      ``activate`` and when a contract is created or updated as active.
    - Participants point at the contract party rows of the same contract.
    - Every item asset and every party must exist in its registry.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from settlement_config.schema import SettlementConfig
from settlement_kernel.domain.clock import Clock
from settlement_kernel.domain.contract_terms import (
    ContractDraft,
    ContractStatus,
    PaymentDirection,
    PaymentFrequency,
    PaymentType,
    Side,
)
from settlement_kernel.exceptions import (
    ContractNotFoundError,
    InvalidContractDataError,
    InvalidContractStateError,
    ItemNotFoundError,
    PartyNotFoundError,
    UnbalancedContractError,
)
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.contract import (
    ContractItemModel,
    ContractItemParticipantModel,
    ContractModel,
    ContractPartyModel,
    ContractPaymentConditionModel,
)
from settlement_kernel.selectors.contract_selector import ContractInfo, to_contract_info
from settlement_kernel.services.reference_resolvers import (
    AssetResolver,
    PartyResolver,
    PermissionResolver,
    SqlAssetResolver,
    SqlPartyResolver,
)
from settlement_kernel.services.sequence_service import ContractCodeAllocator
from settlement_engines.balance import can_activate, evaluate_balance
from settlement_services.base import OperationResult, TransactionalOrchestrator
from settlement_services.ledger_expander import LedgerExpander
from settlement_services.rbac_authority import (
    CONTRACT_ACTIVATE,
    CONTRACT_CREATE,
    CONTRACT_UPDATE,
    require_permission,
)

logger = get_logger("services.contract_orchestrator")

UPDATABLE_FIELDS = frozenset({"contract_date", "notes", "attachment_urls", "status"})


class ContractOrchestrator(TransactionalOrchestrator):
    """
    Contract write path.

    Usage:
        orchestrator = ContractOrchestrator(session, clock=clock)
        result = orchestrator.create(actor_id, form)
        if result.is_success:
            contract = result.data
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionResolver | None = None,
        assets: AssetResolver | None = None,
        parties: PartyResolver | None = None,
        clock: Clock | None = None,
        config: SettlementConfig | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, permissions, clock, auto_commit)
        self._config = config or SettlementConfig()
        self._assets = assets or SqlAssetResolver(session)
        self._parties = parties or SqlPartyResolver(session)
        self._allocator = ContractCodeAllocator(
            session,
            clock=self._clock,
            prefix=self._config.codes.prefix,
            min_digits=self._config.codes.min_digits,
            max_attempts=self._config.codes.max_attempts,
        )
        self._expander = LedgerExpander(session, self._config.ledger)

    # =========================================================================
    # Public API
    # =========================================================================

    def create(
        self,
        actor_id: UUID,
        form: ContractDraft | Mapping[str, Any],
        bank_account_id: UUID | None = None,
    ) -> OperationResult[ContractInfo]:
        """
        Create a contract with everything it contains.

        ``form`` is a ContractDraft or form data accepted by
        ``ContractDraft.from_form``.  ``bank_account_id`` selects the
        account for single payment conditions; by default the first active
        account is used.
        """
        return self._execute(
            "contract_create",
            actor_id,
            lambda: self._create(actor_id, form, bank_account_id),
            action="create contract",
        )

    def activate(self, actor_id: UUID, contract_id: UUID) -> OperationResult[ContractInfo]:
        return self._execute(
            "contract_activate",
            actor_id,
            lambda: self._activate(actor_id, contract_id),
            action="activate contract",
            contract_id=contract_id,
        )

    def update(
        self,
        actor_id: UUID,
        contract_id: UUID,
        changes: Mapping[str, Any],
    ) -> OperationResult[ContractInfo]:
        """
        Change header fields: contract_date, notes, attachment_urls, status.

        A status change to active goes through the same balance check as
        ``activate``.  Items and conditions are fixed once created.
        """
        return self._execute(
            "contract_update",
            actor_id,
            lambda: self._update(actor_id, contract_id, changes),
            action="update contract",
            contract_id=contract_id,
        )

    # =========================================================================
    # Units of work
    # =========================================================================

    def _create(
        self,
        actor_id: UUID,
        form: ContractDraft | Mapping[str, Any],
        bank_account_id: UUID | None,
    ) -> tuple[ContractInfo, str]:
        require_permission(self._permissions, actor_id, CONTRACT_CREATE)
        draft = form if isinstance(form, ContractDraft) else ContractDraft.from_form(form)
        self._check_references(draft)

        balance = evaluate_balance(
            side_a_total=draft.side_total(Side.A),
            side_b_total=draft.side_total(Side.B),
            conditions=draft.payment_conditions,
            tolerance=self._config.ledger.balance_tolerance,
        )

        def build(code: str) -> ContractModel:
            return ContractModel(
                code=code,
                contract_date=draft.contract_date,
                status=ContractStatus.DRAFT.value,
                notes=draft.notes,
                attachment_urls=list(draft.attachment_urls),
                side_a_total=balance.side_a_total,
                side_b_total=balance.side_b_total,
                balance=balance.balance,
                created_by_id=actor_id,
            )

        contract = self._allocator.insert_with_next_code(build)
        self._write_parties_and_items(contract, draft, actor_id)
        self._write_conditions(contract, draft, actor_id)

        if draft.status == ContractStatus.ACTIVE:
            self._activate_model(contract, actor_id)

        expansion = self._expander.expand(
            contract_id=contract.id,
            contract_code=contract.code,
            contract_date=contract.contract_date,
            conditions=draft.payment_conditions,
            actor_id=actor_id,
            bank_account_id=bank_account_id,
            counterparty=" / ".join(p.name for p in draft.parties if p.name) or None,
        )

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract.id),
                "contract_code": contract.code,
                "status": contract.status,
                "balance": str(contract.balance),
                "parties": len(draft.parties),
                "items": len(draft.items),
                "payment_conditions": len(draft.payment_conditions),
                "cash_transactions": len(expansion.cash_transaction_ids),
                "receivables": len(expansion.receivable_codes),
                "payables": len(expansion.payable_codes),
            },
        )
        return to_contract_info(contract), f"Contract {contract.code} created"

    def _activate(self, actor_id: UUID, contract_id: UUID) -> tuple[ContractInfo, str]:
        require_permission(self._permissions, actor_id, CONTRACT_ACTIVATE)
        contract = self._lock_contract(contract_id)
        self._activate_model(contract, actor_id)
        return to_contract_info(contract), f"Contract {contract.code} activated"

    def _update(
        self,
        actor_id: UUID,
        contract_id: UUID,
        changes: Mapping[str, Any],
    ) -> tuple[ContractInfo, str]:
        require_permission(self._permissions, actor_id, CONTRACT_UPDATE)
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidContractDataError(
                ", ".join(sorted(unknown)), "field cannot be updated"
            )

        contract = self._lock_contract(contract_id)

        if "contract_date" in changes:
            value = changes["contract_date"]
            if not isinstance(value, date):
                try:
                    value = date.fromisoformat(str(value)[:10])
                except ValueError as exc:
                    raise InvalidContractDataError(
                        "contract_date", f"{value!r} is not a date"
                    ) from exc
            contract.contract_date = value
        if "notes" in changes:
            contract.notes = changes["notes"]
        if "attachment_urls" in changes:
            contract.attachment_urls = list(changes["attachment_urls"] or ())

        if "status" in changes:
            try:
                target = ContractStatus(changes["status"])
            except ValueError as exc:
                raise InvalidContractDataError(
                    "status", f"unknown value {changes['status']!r}"
                ) from exc
            self._change_status(contract, target, actor_id)

        contract.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "contract_updated",
            extra={
                "contract_id": str(contract.id),
                "contract_code": contract.code,
                "fields": sorted(changes),
            },
        )
        return to_contract_info(contract), f"Contract {contract.code} updated"

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_references(self, draft: ContractDraft) -> None:
        for party in draft.parties:
            if not self._parties.exists(party.party_type, party.party_id):
                raise PartyNotFoundError(party.party_type.value, party.party_id)
        for item in draft.items:
            ref = item.item_ref
            if ref is not None and not self._assets.exists(item.item_type, ref):
                raise ItemNotFoundError(item.item_type.value, ref)

    def _write_parties_and_items(
        self,
        contract: ContractModel,
        draft: ContractDraft,
        actor_id: UUID,
    ) -> None:
        party_rows: dict[UUID, ContractPartyModel] = {}
        for position, party in enumerate(draft.parties):
            row = ContractPartyModel(
                contract_id=contract.id,
                side=Side(party.side).value,
                party_type=party.party_type.value,
                party_id=party.party_id,
                party_name=party.name,
                party_document=party.document,
                gra_percentage=party.gra_percentage,
                position=position,
                created_by_id=actor_id,
            )
            self._session.add(row)
            party_rows[party.party_id] = row

        item_rows: list[ContractItemModel] = []
        for position, item in enumerate(draft.items):
            row = ContractItemModel(
                contract_id=contract.id,
                side=Side(item.side).value,
                item_type=item.item_type.value,
                item_id=item.item_ref,
                description=item.description,
                item_value=item.value,
                notes=item.notes,
                position=position,
                created_by_id=actor_id,
            )
            self._session.add(row)
            item_rows.append(row)
        self._session.flush()

        for item, row in zip(draft.items, item_rows):
            for participant in item.participants:
                self._session.add(
                    ContractItemParticipantModel(
                        contract_item_id=row.id,
                        party_id=party_rows[participant.party_id].id,
                        percentage=participant.percentage,
                        created_by_id=actor_id,
                    )
                )
        self._session.flush()

    def _write_conditions(
        self,
        contract: ContractModel,
        draft: ContractDraft,
        actor_id: UUID,
    ) -> None:
        for position, condition in enumerate(draft.payment_conditions):
            self._session.add(
                ContractPaymentConditionModel(
                    contract_id=contract.id,
                    condition_value=condition.value,
                    direction=PaymentDirection(condition.direction).value,
                    payment_type=PaymentType(condition.payment_type).value,
                    installments=condition.installments,
                    frequency=(
                        PaymentFrequency(condition.frequency).value
                        if condition.frequency
                        else None
                    ),
                    start_date=condition.start_date,
                    payment_method=condition.payment_method,
                    notes=condition.notes,
                    position=position,
                    created_by_id=actor_id,
                )
            )
        self._session.flush()

    def _lock_contract(self, contract_id: UUID) -> ContractModel:
        contract = self._session.execute(
            select(ContractModel)
            .where(ContractModel.id == contract_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if contract is None:
            raise ContractNotFoundError(contract_id)
        return contract

    def _activate_model(self, contract: ContractModel, actor_id: UUID) -> None:
        """Guarded draft -> active transition on a loaded contract."""
        if contract.status != ContractStatus.DRAFT.value:
            raise InvalidContractStateError(
                contract.code, contract.status, ContractStatus.DRAFT.value
            )
        if not can_activate(contract.balance, self._config.ledger.balance_tolerance):
            raise UnbalancedContractError(contract.code, contract.balance)

        contract.status = ContractStatus.ACTIVE.value
        contract.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "contract_activated",
            extra={
                "contract_id": str(contract.id),
                "contract_code": contract.code,
                "balance": str(contract.balance),
            },
        )

    def _change_status(
        self,
        contract: ContractModel,
        target: ContractStatus,
        actor_id: UUID,
    ) -> None:
        current = ContractStatus(contract.status)
        if target == current:
            return
        if target == ContractStatus.ACTIVE:
            self._activate_model(contract, actor_id)
            return
        if target == ContractStatus.DRAFT:
            # active, completed and cancelled contracts never return to draft
            raise InvalidContractStateError(
                contract.code, current.value, ContractStatus.DRAFT.value
            )
        contract.status = target.value
        logger.info(
            "contract_status_changed",
            extra={
                "contract_id": str(contract.id),
                "contract_code": contract.code,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
