"""
Common utilities shared across routers.
"""

from .pagination import Pagination, PaginatedResponse, get_pagination
from .responses import ok, failure

__all__ = [
    # Pagination
    "Pagination",
    "PaginatedResponse",
    "get_pagination",
    # Envelope
    "ok",
    "failure",
]
