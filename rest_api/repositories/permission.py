"""
Contextual Permission Rule Repository.
"""

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import Select, select

from rest_api.models import ContextualPermissionRule
from .base import BaseRepository, RepositoryFilters


@dataclass
class RuleFilters(RepositoryFilters):
    """Filters specific to contextual rules."""

    role_id: int | None = None
    area_id: int | None = None
    resource_type: str | None = None
    action_bit: int | None = None


class ContextualRuleRepository(BaseRepository[ContextualPermissionRule]):
    """Repository for ContextualPermissionRule entities."""

    @property
    def model(self) -> type[ContextualPermissionRule]:
        return ContextualPermissionRule

    def _base_query(self) -> Select:
        return select(ContextualPermissionRule)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, RuleFilters):
            filters = RuleFilters(**filters.__dict__)

        if filters.role_id is not None:
            query = query.where(ContextualPermissionRule.role_id == filters.role_id)
        if filters.area_id is not None:
            query = query.where(ContextualPermissionRule.area_id == filters.area_id)
        if filters.resource_type:
            query = query.where(ContextualPermissionRule.resource_type == filters.resource_type)
        if filters.action_bit is not None:
            query = query.where(ContextualPermissionRule.action_bit == filters.action_bit)
        return query

    def find_applicable(
        self,
        role_id: int,
        area_id: int,
        resource_type: str,
        action_bit: int,
    ) -> Sequence[ContextualPermissionRule]:
        """Active rules for the exact (role, area, resource type, bit) combination."""
        query = (
            select(ContextualPermissionRule)
            .where(
                ContextualPermissionRule.role_id == role_id,
                ContextualPermissionRule.area_id == area_id,
                ContextualPermissionRule.resource_type == resource_type,
                ContextualPermissionRule.action_bit == action_bit,
                ContextualPermissionRule.is_active.is_(True),
            )
            .order_by(ContextualPermissionRule.id)
        )
        return self._db.execute(query).scalars().all()

    def find_active_for(self, role_id: int, area_id: int) -> Sequence[ContextualPermissionRule]:
        """All active rules that apply to a role within an area."""
        query = (
            select(ContextualPermissionRule)
            .where(
                ContextualPermissionRule.role_id == role_id,
                ContextualPermissionRule.area_id == area_id,
                ContextualPermissionRule.is_active.is_(True),
            )
            .order_by(ContextualPermissionRule.id)
        )
        return self._db.execute(query).scalars().all()
