"""
Permission endpoints: bit registry, caller's permissions, dry-run decisions
and contextual rule administration.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rest_api.repositories import DocumentRepository
from rest_api.routers._common import Pagination, PaginatedResponse, get_pagination, ok
from rest_api.services.domain import ContextualRuleService
from rest_api.services.permissions import (
    AccessDecisionOrchestrator,
    Actor,
    PermissionBit,
    ResourceSnapshot,
    describe_bits,
    describe_mask,
)
from rest_api.services.permissions.decorators import current_actor, require_bit
from shared.infrastructure.db import get_db
from shared.utils.exceptions import DocumentNotFoundError
from shared.utils.schemas import (
    ContextualRuleCreate,
    ContextualRuleOutput,
    ContextualRuleUpdate,
    DecisionOutput,
    PermissionBitOutput,
    UserPermissionsOutput,
    VerifyPermissionRequest,
)


router = APIRouter(prefix="/api/permisos", tags=["permisos"])


@router.get("/bits")
def list_bits(actor: Actor = Depends(current_actor)):
    """The eight permission bits."""
    return ok([PermissionBitOutput(**row) for row in describe_bits()])


@router.get("/usuario")
def my_permissions(
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
):
    """Bits held by the caller plus the active rules of their role and area."""
    rules = ContextualRuleService(db).rules_for(actor.role_id, actor.area_id)
    output = UserPermissionsOutput(
        user_id=actor.id,
        role=actor.role_name,
        area_id=actor.area_id,
        mask=actor.mask,
        is_admin=actor.is_admin,
        bits=[PermissionBitOutput(**row) for row in describe_mask(actor.mask)],
        contextual_rules=[ContextualRuleOutput.model_validate(r) for r in rules],
    )
    return ok(output)


@router.post("/verificar")
def verify_permission(
    body: VerifyPermissionRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
):
    """
    Dry-run: what would happen if the caller attempted ``action_bit``.

    With ``document_id`` the decision includes contextual rules and
    ownership for that document.
    """
    resource = None
    if body.document_id is not None:
        document = DocumentRepository(db).find_by_id(body.document_id)
        if document is None:
            raise DocumentNotFoundError(body.document_id)
        resource = ResourceSnapshot.of_document(document)

    decision = AccessDecisionOrchestrator.for_session(db).decide(
        actor,
        body.action_bit,
        body.resource_type,
        resource,
        endpoint="permissions.verify",
    )
    return ok(
        DecisionOutput(
            allowed=decision.allowed,
            reason_code=decision.reason_code.value,
            required_bit=decision.required_bit,
            rule_id=decision.rule_id,
            evaluated_rule_ids=list(decision.evaluated_rule_ids),
        )
    )


# =============================================================================
# Contextual rules
# =============================================================================


@router.get("/contextuales")
def list_rules(
    role_id: int | None = None,
    area_id: int | None = None,
    resource_type: str | None = None,
    include_inactive: bool = Query(default=False),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.VER, PermissionBit.ADMINISTRAR)),
):
    items, total = ContextualRuleService(db).list_rules(
        role_id=role_id,
        area_id=area_id,
        resource_type=resource_type,
        include_inactive=include_inactive,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    page = PaginatedResponse(
        items=[ContextualRuleOutput.model_validate(r) for r in items],
        pagination=pagination,
        total=total,
    )
    return ok(page.to_dict())


@router.get("/contextuales/{rule_id}")
def get_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.VER, PermissionBit.ADMINISTRAR)),
):
    rule = ContextualRuleService(db).get(rule_id)
    return ok(ContextualRuleOutput.model_validate(rule))


@router.post("/contextuales", status_code=status.HTTP_201_CREATED)
def create_rule(
    body: ContextualRuleCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.CREAR, PermissionBit.ADMINISTRAR)),
):
    rule = ContextualRuleService(db).create(body, actor)
    return ok(ContextualRuleOutput.model_validate(rule), message="Regla contextual creada")


@router.put("/contextuales/{rule_id}")
def update_rule(
    rule_id: int,
    body: ContextualRuleUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.EDITAR, PermissionBit.ADMINISTRAR)),
):
    rule = ContextualRuleService(db).update(rule_id, body, actor)
    return ok(ContextualRuleOutput.model_validate(rule), message="Regla contextual actualizada")


@router.delete("/contextuales/{rule_id}")
def delete_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.ELIMINAR, PermissionBit.ADMINISTRAR)),
):
    ContextualRuleService(db).soft_delete(rule_id, actor)
    return ok(message="Regla contextual desactivada")
