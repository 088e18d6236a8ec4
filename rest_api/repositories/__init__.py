"""
Repository layer: data access with soft-delete awareness.
"""

from .base import BaseRepository, RepositoryFilters
from .document import DocumentRepository, DocumentFilters, DocumentVisibility
from .permission import ContextualRuleRepository, RuleFilters
from .organization import UserRepository, RoleRepository, AreaRepository

__all__ = [
    "BaseRepository",
    "RepositoryFilters",
    "DocumentRepository",
    "DocumentFilters",
    "DocumentVisibility",
    "ContextualRuleRepository",
    "RuleFilters",
    "UserRepository",
    "RoleRepository",
    "AreaRepository",
]
