"""
Tests for the base organization seed.
"""

from sqlalchemy import func, select

from rest_api.models import ContextualPermissionRule, Role, User
from rest_api.seed import ADMIN_CIP, seed
from shared.config.constants import Roles


def _count(db, model):
    return db.scalar(select(func.count()).select_from(model))


def test_seed_creates_base_organization(db_session):
    seed(db_session)

    masks = {role.name: role.mask for role in db_session.execute(select(Role)).scalars()}
    assert masks == {
        Roles.ADMIN: 255,
        Roles.MESA_PARTES: 91,
        Roles.RESPONSABLE_AREA: 127,
        Roles.OPERADOR: 26,
        Roles.CONSULTA: 8,
    }
    admin = db_session.scalar(select(User).where(User.cip == ADMIN_CIP))
    assert admin.role.name == Roles.ADMIN
    # 4 areas x (2 area-head rules + 1 operator rule)
    assert _count(db_session, ContextualPermissionRule) == 12


def test_seed_is_idempotent(db_session):
    seed(db_session)
    seed(db_session)

    assert _count(db_session, Role) == 5
    assert _count(db_session, User) == 1
    assert _count(db_session, ContextualPermissionRule) == 12
