"""
Module: settlement_kernel.models.user_profile
Responsibility: Role assignment for authenticated actors.  The permission
    resolver reads the role from here; authentication itself happens
    upstream.
Architecture position: Kernel > Models.
"""

from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase, UUIDString
from settlement_kernel.domain.contract_terms import UserRole


class UserProfileModel(TrackedBase):
    __tablename__ = "user_profiles"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_profile_user"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, default=UserRole.VIEWER)

    def __repr__(self) -> str:
        return f"<UserProfileModel {self.full_name} [{self.role}]>"
