"""
Organization Models: Role and Area.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import AreaType
from .base import AuditMixin, Base, BigIntPK

if TYPE_CHECKING:
    from .user import User


class Role(AuditMixin, Base):
    """
    A named permission profile. ``mask`` is the 8-bit permission bitfield
    (Crear=1 ... Administrar=128) granted to every user of the role unless the
    user carries an override.
    """

    __tablename__ = "role"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    mask: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("mask >= 0 AND mask <= 255", name="ck_role_mask_range"),
    )

    users: Mapped[list["User"]] = relationship(back_populates="role")

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}', mask={self.mask})>"


class Area(AuditMixin, Base):
    """
    Organizational unit documents are routed to.
    area_type: ADMINISTRATIVA, OPERATIVA, ESPECIALIZADA
    """

    __tablename__ = "area"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    code: Mapped[Optional[str]] = mapped_column(Text, unique=True)
    area_type: Mapped[str] = mapped_column(Text, nullable=False, default=AreaType.OPERATIVA)
    description: Mapped[Optional[str]] = mapped_column(Text)

    users: Mapped[list["User"]] = relationship(back_populates="area")

    def __repr__(self) -> str:
        return f"<Area(id={self.id}, name='{self.name}')>"
