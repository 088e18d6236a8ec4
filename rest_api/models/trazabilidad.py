"""
Trazabilidad (traceability ledger) Model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, BigIntPK, utcnow


class TrazabilidadEntry(Base):
    """
    Immutable record of one document transition.

    action: REGISTRO, ACTUALIZACION, DERIVACION

    ``document_id`` is a plain reference (no FK) so the history outlives a
    purged document; ``document_code`` keeps the registry code readable.
    """

    __tablename__ = "trazabilidad_entry"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    document_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    document_code: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    origin_area_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("area.id"), nullable=True
    )
    destination_area_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("area.id"), nullable=True
    )
    previous_state: Mapped[Optional[str]] = mapped_column(Text)
    new_state: Mapped[Optional[str]] = mapped_column(Text)
    observations: Mapped[Optional[str]] = mapped_column(Text)
    reason: Mapped[Optional[str]] = mapped_column(Text)  # Motivo de derivación
    urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    actor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_user.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_trazabilidad_document_created", "document_id", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TrazabilidadEntry(id={self.id}, document_id={self.document_id}, "
            f"action='{self.action}')>"
        )


@event.listens_for(TrazabilidadEntry, "before_update")
def _reject_update(mapper, connection, target: TrazabilidadEntry) -> None:
    raise RuntimeError(f"Trazabilidad entries are append-only (entry {target.id})")


@event.listens_for(TrazabilidadEntry, "before_delete")
def _reject_delete(mapper, connection, target: TrazabilidadEntry) -> None:
    raise RuntimeError(f"Trazabilidad entries are append-only (entry {target.id})")
