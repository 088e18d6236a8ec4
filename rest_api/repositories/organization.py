"""
User, Role and Area Repositories.
"""

from sqlalchemy import Select, select
from sqlalchemy.orm import joinedload

from rest_api.models import Area, Role, User
from .base import BaseRepository, RepositoryFilters


class UserRepository(BaseRepository[User]):
    """
    Repository for User entities. Also serves as the supervisor relation
    lookup for SUPERVISOR contextual conditions.
    """

    @property
    def model(self) -> type[User]:
        return User

    def _base_query(self) -> Select:
        return select(User).options(joinedload(User.role), joinedload(User.area))

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        return query

    def is_supervisor(self, supervisor_id: int, user_id: int) -> bool:
        """True iff ``supervisor_id`` is the recorded direct supervisor of ``user_id``."""
        recorded = self._db.scalar(
            select(User.supervisor_id).where(User.id == user_id)
        )
        return recorded is not None and recorded == supervisor_id


class RoleRepository(BaseRepository[Role]):
    @property
    def model(self) -> type[Role]:
        return Role

    def _base_query(self) -> Select:
        return select(Role)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        return query

    def find_by_name(self, name: str) -> Role | None:
        return self._db.scalar(select(Role).where(Role.name == name))


class AreaRepository(BaseRepository[Area]):
    @property
    def model(self) -> type[Area]:
        return Area

    def _base_query(self) -> Select:
        return select(Area)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        return query

    def find_by_name(self, name: str) -> Area | None:
        return self._db.scalar(select(Area).where(Area.name == name))
