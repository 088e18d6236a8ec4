"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Area, Base, ContextualPermissionRule, Document, Role, User
from rest_api.services.permissions import AccessDecisionOrchestrator, Actor
from shared.config.constants import AreaType, DocumentState, ResourceType, Roles
from shared.infrastructure.db import get_db
from shared.security.auth import sign_user_token


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_session(db_session):
    """A second, independent session on the same database."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Organization
# =============================================================================


@pytest.fixture
def roles(db_session):
    """One role per profile, keyed by role name."""
    masks = {
        Roles.ADMIN: 255,
        Roles.MESA_PARTES: 91,       # Crear, Editar, Ver, Derivar, Exportar
        Roles.RESPONSABLE_AREA: 127,
        Roles.OPERADOR: 26,          # Editar, Ver, Derivar
        Roles.CONSULTA: 8,           # Ver
    }
    created = {}
    for name, mask in masks.items():
        role = Role(name=name, mask=mask)
        db_session.add(role)
        created[name] = role
    db_session.commit()
    return created


@pytest.fixture
def areas(db_session):
    """Mesa de Partes, Dirección and Asesoría Legal, keyed by code."""
    created = {}
    for name, code, area_type in (
        ("Mesa de Partes", "MP", AreaType.ADMINISTRATIVA),
        ("Dirección", "DIR", AreaType.ADMINISTRATIVA),
        ("Asesoría Legal", "AL", AreaType.ESPECIALIZADA),
    ):
        area = Area(name=name, code=code, area_type=area_type)
        db_session.add(area)
        created[code] = area
    db_session.commit()
    return created


@pytest.fixture
def make_user(db_session, roles, areas):
    """Factory: make_user("12345678", Roles.OPERADOR, "DIR", mask_override=16)."""
    def _make(cip, role_name, area_code="MP", mask_override=None, supervisor=None):
        user = User(
            cip=cip,
            first_name="Test",
            last_name=cip,
            role_id=roles[role_name].id,
            area_id=areas[area_code].id,
            mask_override=mask_override,
            supervisor_id=supervisor.id if supervisor else None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("00000001", Roles.ADMIN, "MP")


@pytest.fixture
def mesa_user(make_user):
    return make_user("10000001", Roles.MESA_PARTES, "MP")


@pytest.fixture
def operator_user(make_user):
    return make_user("20000001", Roles.OPERADOR, "DIR")


@pytest.fixture
def viewer_user(make_user):
    return make_user("30000001", Roles.CONSULTA, "DIR")


def _headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {sign_user_token(user.id, cip=user.cip)}"}


@pytest.fixture
def actor_of():
    """Actor view of a user, as the permission layer sees it."""
    return Actor.from_user


@pytest.fixture
def headers_for():
    return _headers_for


@pytest.fixture
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture
def mesa_headers(mesa_user):
    return _headers_for(mesa_user)


# =============================================================================
# Permissions
# =============================================================================


class AuditRecorder:
    """Audit sink that keeps every decision record."""

    def __init__(self):
        self.records: list[dict] = []

    def __call__(self, **record):
        self.records.append(record)

    @property
    def last(self) -> dict:
        return self.records[-1]

    def denials(self) -> list[dict]:
        return [r for r in self.records if not r["allowed"]]


@pytest.fixture
def audit():
    return AuditRecorder()


@pytest.fixture
def orchestrator(db_session, audit):
    return AccessDecisionOrchestrator.for_session(db_session, audit=audit)


@pytest.fixture
def make_rule(db_session):
    """Factory for contextual rules written straight to the store."""
    def _make(role, area, condition, action_bit, resource_type=ResourceType.DOCUMENTO, is_active=True):
        rule = ContextualPermissionRule(
            role_id=role.id,
            area_id=area.id,
            resource_type=resource_type,
            condition=condition,
            action_bit=int(action_bit),
            is_active=is_active,
        )
        db_session.add(rule)
        db_session.commit()
        db_session.refresh(rule)
        return rule

    return _make


# =============================================================================
# Documents
# =============================================================================


@pytest.fixture
def make_document(db_session):
    """
    Factory for documents inserted without going through the workflow
    (no ledger entry), for actors that lack the Crear bit.
    """
    counter = iter(range(1, 10_000))

    def _make(creator, area, state=DocumentState.REGISTRADO, assignee=None, subject="Oficio de prueba"):
        document = Document(
            code=f"TEST-{next(counter):04d}",
            subject=subject,
            state=state,
            current_area_id=area.id,
            creator_id=creator.id,
            assignee_id=assignee.id if assignee else None,
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make
