"""
Document (expediente) Model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import DocumentPriority, DocumentState
from .base import AuditMixin, Base, BigIntPK

if TYPE_CHECKING:
    from .organization import Area
    from .user import User


class Document(AuditMixin, Base):
    """
    A case document routed between areas.

    state: REGISTRADO, EN_PROCESO, OBSERVADO, FINALIZADO, ARCHIVADO, CANCELADO
    priority: BAJA, NORMAL, ALTA, URGENTE

    ``version`` is the optimistic lock: every flush of a modified row checks
    and bumps it, so two writers racing on the same document cannot both win.
    """

    __tablename__ = "document"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    # Número de registro
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    oficio_number: Mapped[Optional[str]] = mapped_column(Text)
    document_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    origin: Mapped[Optional[str]] = mapped_column(Text)  # Procedencia
    content: Mapped[Optional[str]] = mapped_column(Text)
    observations: Mapped[Optional[str]] = mapped_column(Text)
    priority: Mapped[str] = mapped_column(Text, nullable=False, default=DocumentPriority.NORMAL)
    state: Mapped[str] = mapped_column(
        Text, nullable=False, default=DocumentState.REGISTRADO, index=True
    )
    current_area_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("area.id"), nullable=False, index=True
    )
    creator_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_user.id"), nullable=False, index=True
    )
    assignee_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id"), nullable=True, index=True
    )
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_document_area_state", "current_area_id", "state"),
        Index("ix_document_created_at", "created_at"),
    )

    current_area: Mapped["Area"] = relationship(foreign_keys=[current_area_id])
    creator: Mapped["User"] = relationship(foreign_keys=[creator_id])
    assignee: Mapped[Optional["User"]] = relationship(foreign_keys=[assignee_id])

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, code='{self.code}', state='{self.state}')>"
