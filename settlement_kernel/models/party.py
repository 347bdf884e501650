"""
Module: settlement_kernel.models.party
Responsibility: Minimal ORM view of the people and companies registry.
    Contracts reference these rows by id and snapshot the name and document
    into contract_parties; the registry itself is maintained elsewhere.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class PersonModel(TrackedBase):
    __tablename__ = "people"

    __table_args__ = (
        Index("idx_person_name", "full_name"),
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    document: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<PersonModel {self.full_name}>"


class CompanyModel(TrackedBase):
    __tablename__ = "companies"

    __table_args__ = (
        UniqueConstraint("document", name="uq_company_document"),
    )

    legal_name: Mapped[str] = mapped_column(String(255), nullable=False)
    trade_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    document: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<CompanyModel {self.legal_name}>"
