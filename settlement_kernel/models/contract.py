"""
Module: settlement_kernel.models.contract
Responsibility: ORM persistence for two-sided contracts: the header, the
    parties on each side, the items each side brings, the participants that
    split an item's value, and the payment conditions that close the gap.
Architecture position: Kernel > Models.  May import from db/ and domain/
    enumerations only.

Invariants enforced:
    - contracts.code is unique (uq_contract_code).  The code allocator relies
      on this constraint to detect concurrent allocations.
    - side_a_total, side_b_total and balance are maintained by the contract
      orchestrator whenever items or conditions change.
    - A contract moves draft -> active only when |balance| <= 0.01
      (enforced by the orchestrator, not the ORM).

Failure modes:
    - IntegrityError on duplicate code.
    - IntegrityError on deleting a party that participants still reference.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase, UUIDString
from settlement_kernel.domain.contract_terms import (
    ContractStatus,
    ItemType,
    PartyType,
    PaymentDirection,
    PaymentFrequency,
    PaymentType,
    Side,
)


class ContractModel(TrackedBase):
    """
    Contract header.

    Guarantees:
        - code is globally unique and human readable (CT-0001).
        - balance = (side_a_total + incoming) - (side_b_total + outgoing).
    """

    __tablename__ = "contracts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_contract_code"),
        Index("idx_contract_status", "status"),
        Index("idx_contract_date", "contract_date"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    contract_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[ContractStatus] = mapped_column(
        String(20), nullable=False, default=ContractStatus.DRAFT,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # =========================================================================
    # Balance components
    # =========================================================================

    side_a_total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    side_b_total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    parties: Mapped[list["ContractPartyModel"]] = relationship(
        back_populates="contract",
        order_by="ContractPartyModel.position",
    )
    items: Mapped[list["ContractItemModel"]] = relationship(
        back_populates="contract",
        order_by="ContractItemModel.position",
    )
    payment_conditions: Mapped[list["ContractPaymentConditionModel"]] = relationship(
        back_populates="contract",
        order_by="ContractPaymentConditionModel.position",
    )

    def __repr__(self) -> str:
        return f"<ContractModel {self.code} [{self.status}] balance={self.balance}>"


class ContractPartyModel(TrackedBase):
    """A person or company on one side, with a name/document snapshot."""

    __tablename__ = "contract_parties"

    __table_args__ = (
        Index("idx_contract_party_contract", "contract_id"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contracts.id"), nullable=False,
    )
    side: Mapped[Side] = mapped_column(String(1), nullable=False)
    party_type: Mapped[PartyType] = mapped_column(String(20), nullable=False)
    party_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    party_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    party_document: Mapped[str | None] = mapped_column(String(50), nullable=True)
    gra_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    contract: Mapped[ContractModel] = relationship(back_populates="parties")

    def __repr__(self) -> str:
        return f"<ContractPartyModel {self.side} {self.party_type} {self.party_name}>"


class ContractItemModel(TrackedBase):
    """
    An asset or cash line one side brings into the contract.

    item_id is an opaque reference into the asset tables and is NULL for
    cash lines.
    """

    __tablename__ = "contract_items"

    __table_args__ = (
        Index("idx_contract_item_contract", "contract_id"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contracts.id"), nullable=False,
    )
    side: Mapped[Side] = mapped_column(String(1), nullable=False)
    item_type: Mapped[ItemType] = mapped_column(String(20), nullable=False)
    item_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    item_value: Mapped[Decimal] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    contract: Mapped[ContractModel] = relationship(back_populates="items")
    participants: Mapped[list["ContractItemParticipantModel"]] = relationship(
        back_populates="item",
    )

    def __repr__(self) -> str:
        return f"<ContractItemModel {self.side} {self.item_type} {self.item_value}>"


class ContractItemParticipantModel(TrackedBase):
    __tablename__ = "contract_item_participants"

    __table_args__ = (
        Index("idx_participant_item", "contract_item_id"),
    )

    contract_item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contract_items.id"), nullable=False,
    )
    # References contract_parties.id, not the external person/company id
    party_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contract_parties.id"), nullable=False,
    )
    percentage: Mapped[Decimal] = mapped_column(nullable=False)

    item: Mapped[ContractItemModel] = relationship(back_populates="participants")
    party: Mapped[ContractPartyModel] = relationship()


class ContractPaymentConditionModel(TrackedBase):
    """Money settled in or out of the contract, single or in installments."""

    __tablename__ = "contract_payment_conditions"

    __table_args__ = (
        Index("idx_payment_condition_contract", "contract_id"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("contracts.id"), nullable=False,
    )
    condition_value: Mapped[Decimal] = mapped_column(nullable=False)
    direction: Mapped[PaymentDirection] = mapped_column(String(3), nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(String(20), nullable=False)
    installments: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    frequency: Mapped[PaymentFrequency | None] = mapped_column(String(20), nullable=True)
    start_date: Mapped[date] = mapped_column(nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    contract: Mapped[ContractModel] = relationship(back_populates="payment_conditions")

    def __repr__(self) -> str:
        return (
            f"<ContractPaymentConditionModel {self.direction} {self.payment_type} "
            f"{self.condition_value} x{self.installments}>"
        )
