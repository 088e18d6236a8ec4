"""
Utilities module: Exceptions, validators.
"""

from shared.utils.exceptions import (
    ErrorKind,
    AppException,
    UnauthenticatedError,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
    InternalError,
)
from shared.utils.validators import (
    escape_like_pattern,
    normalize_search_term,
)

__all__ = [
    # exceptions
    "ErrorKind",
    "AppException",
    "UnauthenticatedError",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "InternalError",
    # validators
    "escape_like_pattern",
    "normalize_search_term",
]
