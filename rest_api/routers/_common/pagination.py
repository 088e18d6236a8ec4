"""
Standardized pagination for list endpoints.

Usage:
    from rest_api.routers._common.pagination import Pagination, get_pagination

    @router.get("/documentos")
    def list_documents(
        pagination: Pagination = Depends(get_pagination),
        db: Session = Depends(get_db),
    ):
        items, total = service.list_documents(pagination.filters(DocumentFilters), actor)
        return ok(PaginatedResponse(items, pagination, total).to_dict())
"""

from dataclasses import dataclass
from typing import Any, TypeVar
from fastapi import Query

from shared.config.constants import Limits

FiltersT = TypeVar("FiltersT")


@dataclass
class Pagination:
    """
    Pagination parameters with validation.

    Attributes:
        limit: Maximum items per page (1 to max_limit)
        offset: Number of items to skip
        max_limit: Maximum allowed limit (default 200)
    """

    limit: int
    offset: int
    max_limit: int = Limits.MAX_PAGE_SIZE

    def __post_init__(self):
        """Validate and normalize values."""
        self.limit = min(max(1, self.limit), self.max_limit)
        self.offset = max(0, self.offset)

    @property
    def page(self) -> int:
        """Calculate current page number (1-indexed)."""
        if self.limit == 0:
            return 1
        return (self.offset // self.limit) + 1

    def to_dict(self, total: int | None = None) -> dict[str, Any]:
        """
        Convert to dictionary for response.

        Args:
            total: Total count of items (optional)

        Returns:
            Dictionary with pagination metadata
        """
        result = {
            "limit": self.limit,
            "offset": self.offset,
            "page": self.page,
        }

        if total is not None:
            result["total"] = total
            result["pages"] = (total + self.limit - 1) // self.limit if self.limit > 0 else 1
            result["has_next"] = self.offset + self.limit < total
            result["has_prev"] = self.offset > 0

        return result

    def filters(self, filters_cls: type[FiltersT], **kwargs: Any) -> FiltersT:
        """Repository filters carrying this page window."""
        return filters_cls(limit=self.limit, offset=self.offset, **kwargs)


def get_pagination(
    limit: int = Query(
        default=Limits.DEFAULT_PAGE_SIZE,
        ge=1,
        le=Limits.MAX_PAGE_SIZE,
        description="Maximum number of items to return",
    ),
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of items to skip",
    ),
) -> Pagination:
    """
    FastAPI dependency for pagination.

    Usage:
        @router.get("/items")
        def list_items(pagination: Pagination = Depends(get_pagination)):
            ...
    """
    return Pagination(limit=limit, offset=offset)


# =============================================================================
# Paginated Response Helper
# =============================================================================


@dataclass
class PaginatedResponse:
    """
    Wrapper for paginated responses.

    Usage:
        items = repo.find_all(filters)
        total = repo.count(filters)
        return PaginatedResponse(items=items, pagination=pagination, total=total)
    """

    items: list[Any]
    pagination: Pagination
    total: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to response dictionary."""
        return {
            "items": self.items,
            "pagination": self.pagination.to_dict(self.total),
        }

