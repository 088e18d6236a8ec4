"""
Base Repository implementation.
Provides common data access patterns with soft-delete awareness.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TypeVar, Generic, Sequence
from sqlalchemy.orm import Session
from sqlalchemy import Select, select, func

from shared.config.constants import Limits
from shared.utils.validators import normalize_search_term


ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Base filters for repository queries."""

    # Pagination
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    # Soft delete
    include_deleted: bool = False
    only_deleted: bool = False

    # Search
    search: str | None = None

    def __post_init__(self):
        """Validate and normalize filters."""
        self.limit = min(max(1, self.limit), Limits.MAX_PAGE_SIZE)
        self.offset = max(0, self.offset)
        self.search = normalize_search_term(self.search)


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository with common operations.

    Subclasses must implement:
    - model: The SQLAlchemy model class
    - _base_query(): Base select with eager loading
    - _apply_filters(): Entity-specific filters
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        """Return the SQLAlchemy model class."""
        ...

    @abstractmethod
    def _base_query(self) -> Select:
        """Return base query with proper eager loading."""
        ...

    @abstractmethod
    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        """Apply entity-specific filters to query."""
        ...

    def _order_by(self, query: Select) -> Select:
        return query.order_by(self.model.id)

    def _apply_soft_delete(self, query: Select, filters: RepositoryFilters) -> Select:
        if not hasattr(self.model, "is_active"):
            return query
        if filters.only_deleted:
            return query.where(self.model.is_active.is_(False))
        if not filters.include_deleted:
            return query.where(self.model.is_active.is_(True))
        return query

    def find_all(self, filters: RepositoryFilters | None = None) -> Sequence[ModelT]:
        """
        Find all entities matching filters, one page at a time.

        Args:
            filters: Optional filters

        Returns:
            List of entities
        """
        filters = filters or RepositoryFilters()
        query = self._apply_soft_delete(self._base_query(), filters)
        query = self._apply_filters(query, filters)
        query = self._order_by(query)
        query = query.offset(filters.offset).limit(filters.limit)
        return self._db.execute(query).scalars().unique().all()

    def count(self, filters: RepositoryFilters | None = None) -> int:
        """Count entities matching filters (pagination ignored)."""
        filters = filters or RepositoryFilters()
        query = self._apply_soft_delete(select(self.model.id), filters)
        query = self._apply_filters(query, filters)
        return self._db.scalar(select(func.count()).select_from(query.subquery())) or 0

    def find_by_id(
        self,
        entity_id: int,
        include_deleted: bool = False,
    ) -> ModelT | None:
        """
        Find entity by ID.

        Args:
            entity_id: Entity ID
            include_deleted: Include soft-deleted entities

        Returns:
            Entity or None
        """
        query = self._base_query().where(self.model.id == entity_id)

        if not include_deleted and hasattr(self.model, "is_active"):
            query = query.where(self.model.is_active.is_(True))

        return self._db.scalar(query)

    def exists(self, entity_id: int) -> bool:
        """Check if an active entity exists."""
        query = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.id == entity_id)
        )
        if hasattr(self.model, "is_active"):
            query = query.where(self.model.is_active.is_(True))

        return (self._db.scalar(query) or 0) > 0

    def save(self, entity: ModelT) -> ModelT:
        """
        Save entity (insert or update). Flushes, does not commit.

        Args:
            entity: Entity to save

        Returns:
            Saved entity
        """
        self._db.add(entity)
        self._db.flush()
        self._db.refresh(entity)
        return entity

    def delete(self, entity: ModelT) -> None:
        """
        Hard delete entity.
        Use soft_delete() on the model for soft deletes.
        """
        self._db.delete(entity)
        self._db.flush()
