"""
Shared validators for input sanitization.
"""

from shared.config.constants import Limits


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. This function escapes them
    so a search term matches literally.

    Args:
        value: The search string to escape

    Returns:
        The escaped string safe for use in LIKE patterns (escape char "\\")
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def normalize_search_term(value: str | None) -> str | None:
    """Strip and truncate a free-text search term. Blank terms become None."""
    if value is None:
        return None
    value = value.strip()[:Limits.MAX_SEARCH_TERM_LENGTH]
    return value or None


def normalize_document_code(value: str) -> str:
    """Registry codes are compared case-insensitively and stored upper-case."""
    return value.strip().upper()
