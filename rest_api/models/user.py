"""
User Model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK

if TYPE_CHECKING:
    from .organization import Area, Role


class User(AuditMixin, Base):
    """
    Office staff member identified by CIP code.
    Belongs to exactly one role and one area at a time.
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id from AuditMixin.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    cip: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    grade: Mapped[Optional[str]] = mapped_column(Text)
    role_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("role.id"), nullable=False, index=True
    )
    area_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("area.id"), nullable=False, index=True
    )
    # Replaces the role mask for this user when set
    mask_override: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    supervisor_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id"), nullable=True, index=True
    )

    __table_args__ = (
        CheckConstraint(
            "mask_override IS NULL OR (mask_override >= 0 AND mask_override <= 255)",
            name="ck_user_mask_override_range",
        ),
    )

    role: Mapped["Role"] = relationship(back_populates="users")
    area: Mapped["Area"] = relationship(back_populates="users")
    supervisor: Mapped[Optional["User"]] = relationship(remote_side="User.id")

    @property
    def effective_mask(self) -> int:
        """Override if present, else the role mask."""
        if self.mask_override is not None:
            return self.mask_override
        return self.role.mask

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, cip='{self.cip}', role_id={self.role_id}, area_id={self.area_id})>"
