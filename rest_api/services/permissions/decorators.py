"""
Permission dependencies for FastAPI routes.

One parametrized factory replaces a per-bit middleware:

    @router.post("/", dependencies=[Depends(require_bit(PermissionBit.CREAR))])

or, to receive the actor:

    def create(actor: Actor = Depends(require_bit(PermissionBit.CREAR))):
        ...
"""

from typing import Any, Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from rest_api.repositories import UserRepository
from shared.config.constants import ResourceType
from shared.config.logging import audit_auth_event
from shared.infrastructure.correlation import bind_actor_id
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context
from shared.utils.exceptions import UnauthenticatedError
from .context import Actor
from .decision import AccessDecisionOrchestrator


def current_actor(
    claims: dict[str, Any] = Depends(current_user_context),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Resolve the token subject to an active user and build the Actor.

    Role, area and mask are read from the store, not from the token, so a
    role change takes effect on the next request.
    """
    user_id = int(claims["sub"])
    user = UserRepository(db).find_by_id(user_id)
    if user is None or not user.role.is_active:
        audit_auth_event("USER_INACTIVE", user_id=user_id, success=False, reason="unknown or inactive user")
        raise UnauthenticatedError("Usuario no encontrado o inactivo", user_id=user_id)

    actor = Actor.from_user(user)
    bind_actor_id(actor.id)
    return actor


def require_bit(bit: int, *also: int, resource_type: str = ResourceType.GLOBAL) -> Callable[..., Actor]:
    """
    Dependency factory: the caller must hold ``bit`` (and every bit in ``also``).

    The check runs through AccessDecisionOrchestrator without a resource, so
    only bypass and bit checks apply here; resource-scoped checks happen in
    the domain services once the resource is loaded.
    """
    required = (bit, *also)

    def dependency(
        request: Request,
        actor: Actor = Depends(current_actor),
        db: Session = Depends(get_db),
    ) -> Actor:
        orchestrator = AccessDecisionOrchestrator.for_session(db)
        endpoint = f"{request.method} {request.url.path}"
        for needed in required:
            orchestrator.require(actor, needed, resource_type, endpoint=endpoint)
        return actor

    return dependency
