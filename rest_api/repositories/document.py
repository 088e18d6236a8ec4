"""
Document Repository - Data access for documents (expedientes).
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import Select, false, or_, select

from rest_api.models import Document, User
from shared.utils.validators import escape_like_pattern, normalize_document_code
from .base import BaseRepository, RepositoryFilters


@dataclass
class DocumentFilters(RepositoryFilters):
    """Filters specific to documents."""

    state: str | None = None
    area_id: int | None = None
    priority: str | None = None
    creator_id: int | None = None
    assignee_id: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    # Each entry narrows the rows further; see DocumentVisibility
    visible_to: list["DocumentVisibility"] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentVisibility:
    """
    Relations that make a document visible: a row matching any set field
    passes. No field set means no row passes.
    """

    owner_id: int | None = None
    area_id: int | None = None
    assignee_id: int | None = None
    # Documents created by users this user supervises
    supervisor_id: int | None = None

    def clause(self):
        clauses = []
        if self.owner_id is not None:
            clauses.append(Document.creator_id == self.owner_id)
        if self.area_id is not None:
            clauses.append(Document.current_area_id == self.area_id)
        if self.assignee_id is not None:
            clauses.append(Document.assignee_id == self.assignee_id)
        if self.supervisor_id is not None:
            supervised = select(User.id).where(User.supervisor_id == self.supervisor_id)
            clauses.append(Document.creator_id.in_(supervised))
        return or_(*clauses) if clauses else false()


class DocumentRepository(BaseRepository[Document]):
    """Repository for Document entities. Listings are newest first."""

    @property
    def model(self) -> type[Document]:
        return Document

    def _base_query(self) -> Select:
        return select(Document)

    def _order_by(self, query: Select) -> Select:
        return query.order_by(Document.created_at.desc(), Document.id.desc())

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        """Apply document-specific filters."""
        if not isinstance(filters, DocumentFilters):
            filters = DocumentFilters(**filters.__dict__)

        if filters.state:
            query = query.where(Document.state == filters.state)
        if filters.area_id:
            query = query.where(Document.current_area_id == filters.area_id)
        if filters.priority:
            query = query.where(Document.priority == filters.priority)
        if filters.creator_id:
            query = query.where(Document.creator_id == filters.creator_id)
        if filters.assignee_id:
            query = query.where(Document.assignee_id == filters.assignee_id)
        if filters.date_from:
            query = query.where(Document.created_at >= filters.date_from)
        if filters.date_to:
            query = query.where(Document.created_at <= filters.date_to)
        for visibility in filters.visible_to:
            query = query.where(visibility.clause())

        if filters.search:
            pattern = f"%{escape_like_pattern(filters.search)}%"
            query = query.where(
                or_(
                    Document.code.ilike(pattern, escape="\\"),
                    Document.subject.ilike(pattern, escape="\\"),
                    Document.origin.ilike(pattern, escape="\\"),
                    Document.oficio_number.ilike(pattern, escape="\\"),
                )
            )

        return query

    def find_for_update(self, document_id: int, include_deleted: bool = False) -> Document | None:
        """
        Load a document with a row lock held until the transaction ends.
        SQLite ignores FOR UPDATE; the version column still guards it there.
        """
        query = select(Document).where(Document.id == document_id).with_for_update()
        if not include_deleted:
            query = query.where(Document.is_active.is_(True))
        return self._db.scalar(query)

    def find_by_code(self, code: str) -> Document | None:
        """Find by registry code, including soft-deleted documents."""
        return self._db.scalar(
            select(Document).where(Document.code == normalize_document_code(code))
        )
