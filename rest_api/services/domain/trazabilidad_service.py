"""
Trazabilidad Ledger.

Append-only history of document transitions. ``append`` only adds and
flushes; the workflow service commits it together with the document change,
so a transition and its entry become visible atomically or not at all.
"""

from datetime import timedelta
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Document, TrazabilidadEntry
from rest_api.models.base import as_utc, utcnow
from shared.config.constants import TrazabilidadAction
from shared.config.logging import get_logger

logger = get_logger(__name__)

_TICK = timedelta(microseconds=1)


class TrazabilidadLedger:
    """
    Ledger of TrazabilidadEntry rows for documents.

    No update or delete API is exposed.
    """

    def __init__(self, db: Session):
        self._db = db

    def append(
        self,
        document: Document,
        action: str,
        actor_id: int,
        origin_area_id: int | None = None,
        destination_area_id: int | None = None,
        previous_state: str | None = None,
        new_state: str | None = None,
        observations: str | None = None,
        reason: str | None = None,
        urgent: bool = False,
    ) -> TrazabilidadEntry:
        """
        Add one entry for ``document``. Does not commit.

        Entries of one document get strictly increasing timestamps: a clock
        that has not advanced since the previous entry is bumped by 1µs.
        """
        if action not in TrazabilidadAction.ALL:
            raise ValueError(f"Unknown trazabilidad action: {action}")

        stamp = utcnow()
        last = as_utc(self._last_timestamp(document.id))
        if last is not None and stamp <= last:
            stamp = last + _TICK

        entry = TrazabilidadEntry(
            document_id=document.id,
            document_code=document.code,
            action=action,
            origin_area_id=origin_area_id,
            destination_area_id=destination_area_id,
            previous_state=previous_state,
            new_state=new_state,
            observations=observations,
            reason=reason,
            urgent=urgent,
            actor_id=actor_id,
            created_at=stamp,
        )
        self._db.add(entry)
        self._db.flush()

        logger.debug(
            "Trazabilidad entry appended",
            document_id=document.id,
            action=action,
            entry_id=entry.id,
        )
        return entry

    def history(self, document_id: int) -> Sequence[TrazabilidadEntry]:
        """Entries for a document, oldest first."""
        query = (
            select(TrazabilidadEntry)
            .where(TrazabilidadEntry.document_id == document_id)
            .order_by(TrazabilidadEntry.created_at.asc(), TrazabilidadEntry.id.asc())
        )
        return self._db.execute(query).scalars().all()

    def count(self, document_id: int) -> int:
        return self._db.scalar(
            select(func.count())
            .select_from(TrazabilidadEntry)
            .where(TrazabilidadEntry.document_id == document_id)
        ) or 0

    def _last_timestamp(self, document_id: int):
        return self._db.scalar(
            select(func.max(TrazabilidadEntry.created_at))
            .where(TrazabilidadEntry.document_id == document_id)
        )
