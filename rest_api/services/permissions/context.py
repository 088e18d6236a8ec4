"""
Permission Context - who is asking and about what.

``Actor`` is the authenticated requester as seen by the permission layer;
``ResourceSnapshot`` is the minimal view of a target resource that contextual
conditions and the ownership fallback need.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Sequence
from typing import TYPE_CHECKING

from shared.config.constants import Roles, TrazabilidadAction
from .bits import has_bit, is_admin_mask, validate_mask

if TYPE_CHECKING:
    from rest_api.models import Document, TrazabilidadEntry, User


@dataclass(frozen=True)
class Actor:
    """Authenticated requester: user + role + area + effective mask."""

    id: int
    role_id: int
    role_name: str
    area_id: int
    mask: int
    cip: str | None = None

    def __post_init__(self):
        validate_mask(self.mask)

    @classmethod
    def from_user(cls, user: "User") -> "Actor":
        """Build from a loaded User (role relationship required)."""
        return cls(
            id=user.id,
            role_id=user.role_id,
            role_name=user.role.name,
            area_id=user.area_id,
            mask=user.effective_mask,
            cip=user.cip,
        )

    @property
    def is_admin(self) -> bool:
        """Admin role, full mask or Administrar bit."""
        return self.role_name == Roles.ADMIN or is_admin_mask(self.mask)

    def has_bit(self, bit: int) -> bool:
        return has_bit(self.mask, bit)


@dataclass(frozen=True)
class ResourceSnapshot:
    """Relation-relevant attributes of a target resource."""

    resource_id: int | None
    owner_id: int | None
    area_id: int | None
    assigned_user_id: int | None = None

    @classmethod
    def of_document(cls, document: "Document") -> "ResourceSnapshot":
        return cls(
            resource_id=document.id,
            owner_id=document.creator_id,
            area_id=document.current_area_id,
            assigned_user_id=document.assignee_id,
        )

    @classmethod
    def of_history(
        cls, document_id: int, entries: Sequence["TrazabilidadEntry"]
    ) -> "ResourceSnapshot":
        """
        A purged document as its ledger remembers it: registered by the actor
        of the REGISTRO entry, last seen in the destination of the latest entry.
        """
        first, last = entries[0], entries[-1]
        return cls(
            resource_id=document_id,
            owner_id=first.actor_id if first.action == TrazabilidadAction.REGISTRO else None,
            area_id=last.destination_area_id,
        )
