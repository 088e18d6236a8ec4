"""
SQLAlchemy ORM Models Package.

- base: Base class and AuditMixin
- organization: Role, Area
- user: User
- document: Document
- permission: ContextualPermissionRule
- trazabilidad: TrazabilidadEntry (append-only ledger)
"""

from .base import Base, AuditMixin
from .organization import Role, Area
from .user import User
from .document import Document
from .permission import ContextualPermissionRule
from .trazabilidad import TrazabilidadEntry

__all__ = [
    "Base",
    "AuditMixin",
    "Role",
    "Area",
    "User",
    "Document",
    "ContextualPermissionRule",
    "TrazabilidadEntry",
]
