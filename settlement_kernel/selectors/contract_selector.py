"""
ContractSelector -- read model for contracts.

Responsibility:
    Loads a contract with its parties, items (with participants and their
    party names) and payment conditions as frozen DTOs, and lists contracts
    by status, code fragment and date range.

Architecture position:
    Kernel > Selectors -- read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from settlement_kernel.domain.contract_terms import ContractStatus
from settlement_kernel.exceptions import ContractNotFoundError
from settlement_kernel.models.contract import (
    ContractItemModel,
    ContractItemParticipantModel,
    ContractModel,
)
from settlement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ContractInfo:
    id: UUID
    code: str
    contract_date: date
    status: ContractStatus
    side_a_total: Decimal
    side_b_total: Decimal
    balance: Decimal
    notes: str | None = None
    attachment_urls: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContractPartyInfo:
    id: UUID
    side: str
    party_type: str
    party_id: UUID
    party_name: str
    party_document: str | None
    gra_percentage: Decimal


@dataclass(frozen=True)
class ParticipantInfo:
    contract_party_id: UUID
    party_name: str
    percentage: Decimal


@dataclass(frozen=True)
class ContractItemInfo:
    id: UUID
    side: str
    item_type: str
    item_id: UUID | None
    description: str | None
    item_value: Decimal
    participants: tuple[ParticipantInfo, ...] = ()


@dataclass(frozen=True)
class PaymentConditionInfo:
    id: UUID
    condition_value: Decimal
    direction: str
    payment_type: str
    installments: int
    frequency: str | None
    start_date: date
    payment_method: str | None


@dataclass(frozen=True)
class ContractDetail:
    contract: ContractInfo
    parties: tuple[ContractPartyInfo, ...]
    items: tuple[ContractItemInfo, ...]
    payment_conditions: tuple[PaymentConditionInfo, ...]


def to_contract_info(model: ContractModel) -> ContractInfo:
    return ContractInfo(
        id=model.id,
        code=model.code,
        contract_date=model.contract_date,
        status=ContractStatus(model.status),
        side_a_total=model.side_a_total,
        side_b_total=model.side_b_total,
        balance=model.balance,
        notes=model.notes,
        attachment_urls=tuple(model.attachment_urls or ()),
    )


class ContractSelector(BaseSelector[ContractModel]):

    def get(self, contract_id: UUID) -> ContractInfo:
        return to_contract_info(self._load(contract_id))

    def get_by_code(self, code: str) -> ContractInfo:
        model = self.session.execute(
            select(ContractModel).where(ContractModel.code == code)
        ).scalar_one_or_none()
        if model is None:
            raise ContractNotFoundError(code)
        return to_contract_info(model)

    def get_detail(self, contract_id: UUID) -> ContractDetail:
        """Contract with parties, items, participants and conditions."""
        model = self.session.execute(
            select(ContractModel)
            .where(ContractModel.id == contract_id)
            .options(
                selectinload(ContractModel.parties),
                selectinload(ContractModel.items)
                .selectinload(ContractItemModel.participants)
                .selectinload(ContractItemParticipantModel.party),
                selectinload(ContractModel.payment_conditions),
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise ContractNotFoundError(contract_id)

        parties = tuple(
            ContractPartyInfo(
                id=p.id,
                side=p.side,
                party_type=p.party_type,
                party_id=p.party_id,
                party_name=p.party_name,
                party_document=p.party_document,
                gra_percentage=p.gra_percentage,
            )
            for p in model.parties
        )
        items = tuple(
            ContractItemInfo(
                id=i.id,
                side=i.side,
                item_type=i.item_type,
                item_id=i.item_id,
                description=i.description,
                item_value=i.item_value,
                participants=tuple(
                    ParticipantInfo(
                        contract_party_id=pt.party_id,
                        party_name=pt.party.party_name,
                        percentage=pt.percentage,
                    )
                    for pt in i.participants
                ),
            )
            for i in model.items
        )
        conditions = tuple(
            PaymentConditionInfo(
                id=c.id,
                condition_value=c.condition_value,
                direction=c.direction,
                payment_type=c.payment_type,
                installments=c.installments,
                frequency=c.frequency,
                start_date=c.start_date,
                payment_method=c.payment_method,
            )
            for c in model.payment_conditions
        )
        return ContractDetail(
            contract=to_contract_info(model),
            parties=parties,
            items=items,
            payment_conditions=conditions,
        )

    def list_contracts(
        self,
        status: ContractStatus | None = None,
        code_contains: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[ContractInfo]:
        """Contracts matching every given filter, newest contract date first."""
        stmt = select(ContractModel)
        if status is not None:
            stmt = stmt.where(ContractModel.status == ContractStatus(status).value)
        if code_contains:
            stmt = stmt.where(ContractModel.code.ilike(f"%{code_contains}%"))
        if date_from is not None:
            stmt = stmt.where(ContractModel.contract_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(ContractModel.contract_date <= date_to)
        stmt = stmt.order_by(ContractModel.contract_date.desc(), ContractModel.code.desc())
        return [to_contract_info(m) for m in self.session.execute(stmt).scalars()]

    def _load(self, contract_id: UUID) -> ContractModel:
        model = self.session.get(ContractModel, contract_id)
        if model is None:
            raise ContractNotFoundError(contract_id)
        return model
