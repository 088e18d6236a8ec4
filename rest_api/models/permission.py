"""
Contextual permission rule Model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK

if TYPE_CHECKING:
    from .organization import Area, Role


class ContextualPermissionRule(AuditMixin, Base):
    """
    Narrows a bit grant for (role, area, resource_type) to requests whose
    relation to the resource satisfies ``condition``.

    condition: PROPIETARIO, MISMA_AREA, ASIGNADO, SUPERVISOR
    resource_type: DOCUMENTO, USUARIO, AREA, GLOBAL
    action_bit: 0..7 (see PermissionBit)

    No uniqueness constraint: several rules may target the same combination.
    """

    __tablename__ = "contextual_permission_rule"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    role_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("role.id"), nullable=False
    )
    area_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("area.id"), nullable=False
    )
    resource_type: Mapped[str] = mapped_column(Text, nullable=False)
    condition: Mapped[str] = mapped_column(Text, nullable=False)
    action_bit: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("action_bit >= 0 AND action_bit <= 7", name="ck_rule_action_bit_range"),
        Index("ix_rule_lookup", "role_id", "area_id", "resource_type", "action_bit"),
    )

    role: Mapped["Role"] = relationship()
    area: Mapped["Area"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<ContextualPermissionRule(id={self.id}, role_id={self.role_id}, "
            f"area_id={self.area_id}, {self.resource_type}/{self.condition}/bit{self.action_bit})>"
        )
