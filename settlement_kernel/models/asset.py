"""
Module: settlement_kernel.models.asset
Responsibility: Minimal ORM view of the asset registries a contract item can
    reference.  Only existence matters to the settlement engine; the full
    records are maintained by the asset back office.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from decimal import Decimal

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase


class PropertyModel(TrackedBase):
    __tablename__ = "properties"

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    registration_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_value: Mapped[Decimal | None] = mapped_column(nullable=True)


class VehicleModel(TrackedBase):
    __tablename__ = "vehicles"

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reference_value: Mapped[Decimal | None] = mapped_column(nullable=True)


class CreditModel(TrackedBase):
    __tablename__ = "credits"

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    creditor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reference_value: Mapped[Decimal | None] = mapped_column(nullable=True)


class DevelopmentModel(TrackedBase):
    __tablename__ = "developments"

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    developer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reference_value: Mapped[Decimal | None] = mapped_column(nullable=True)
