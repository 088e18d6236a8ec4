"""
Contextual Rule Store.

CRUD for ContextualPermissionRule. Input is validated and normalized into the
typed schema before anything is written; rules are never physically removed.
"""

from typing import Any, Sequence

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from rest_api.models import ContextualPermissionRule
from rest_api.repositories import (
    AreaRepository,
    ContextualRuleRepository,
    RoleRepository,
    RuleFilters,
)
from rest_api.services.permissions import (
    AccessDecisionOrchestrator,
    Actor,
    PermissionBit,
)
from shared.config.constants import ResourceType
from shared.config.logging import get_logger
from shared.infrastructure.db import transaction
from shared.utils.exceptions import (
    AreaNotFoundError,
    NotFoundError,
    RuleNotFoundError,
    ValidationError,
)
from shared.utils.schemas import ContextualRuleCreate, ContextualRuleUpdate

logger = get_logger(__name__)


def _coerce(schema: type[BaseModel], data: Any) -> BaseModel:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ValidationError(f"Regla de permiso contextual inválida: {fields}", fields=fields) from exc


class ContextualRuleService:
    """
    Domain service for contextual permission rules.

    Writes require the Administrar bit (or the admin bypass).
    """

    def __init__(self, db: Session, orchestrator: AccessDecisionOrchestrator | None = None):
        self._db = db
        self._repo = ContextualRuleRepository(db)
        self._orchestrator = orchestrator or AccessDecisionOrchestrator.for_session(db)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, rule_id: int, include_inactive: bool = True) -> ContextualPermissionRule:
        rule = self._repo.find_by_id(rule_id, include_deleted=include_inactive)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def list_rules(
        self,
        role_id: int | None = None,
        area_id: int | None = None,
        resource_type: str | None = None,
        include_inactive: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[ContextualPermissionRule], int]:
        """Filtered page of rules plus the total count."""
        if resource_type is not None and resource_type not in ResourceType.ALL:
            raise ValidationError(f"Tipo de recurso inválido: {resource_type}", resource_type=resource_type)

        filters = RuleFilters(
            role_id=role_id,
            area_id=area_id,
            resource_type=resource_type,
            include_deleted=include_inactive,
            limit=limit,
            offset=offset,
        )
        return self._repo.find_all(filters), self._repo.count(filters)

    def find_applicable(
        self, role_id: int, area_id: int, resource_type: str, action_bit: int
    ) -> Sequence[ContextualPermissionRule]:
        return self._repo.find_applicable(role_id, area_id, resource_type, action_bit)

    def rules_for(self, role_id: int, area_id: int) -> Sequence[ContextualPermissionRule]:
        return self._repo.find_active_for(role_id, area_id)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, data: ContextualRuleCreate | dict, actor: Actor) -> ContextualPermissionRule:
        """
        Create a rule.

        Raises:
            ForbiddenError: actor lacks Administrar
            ValidationError: malformed input (unknown condition, bit outside 0..7, ...)
            NotFoundError: role or area does not exist
        """
        self._require_admin(actor, "contextual_rules.create")
        payload = _coerce(ContextualRuleCreate, data)
        self._ensure_role_and_area(payload.role_id, payload.area_id)

        with transaction(self._db, "crear regla contextual", "Regla de permiso contextual"):
            rule = ContextualPermissionRule(
                role_id=payload.role_id,
                area_id=payload.area_id,
                resource_type=payload.resource_type,
                condition=payload.condition,
                action_bit=payload.action_bit,
                description=payload.description,
            )
            rule.set_created_by(actor.id)
            self._repo.save(rule)

        logger.info(
            "Contextual rule created",
            rule_id=rule.id,
            role_id=rule.role_id,
            area_id=rule.area_id,
            condition=rule.condition,
            action_bit=rule.action_bit,
            actor_id=actor.id,
        )
        return rule

    def update(
        self, rule_id: int, data: ContextualRuleUpdate | dict, actor: Actor
    ) -> ContextualPermissionRule:
        """
        Partial update. An update carrying no fields is a ValidationError.
        """
        self._require_admin(actor, "contextual_rules.update")
        payload = _coerce(ContextualRuleUpdate, data)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No se proporcionaron campos para actualizar", rule_id=rule_id)

        rule = self.get(rule_id)
        self._ensure_role_and_area(changes.get("role_id"), changes.get("area_id"))

        with transaction(self._db, "actualizar regla contextual", "Regla de permiso contextual", rule_id):
            for field_name, value in changes.items():
                if field_name == "is_active":
                    if value and not rule.is_active:
                        rule.restore(actor.id)
                    elif not value and rule.is_active:
                        rule.soft_delete(actor.id)
                    continue
                if value is None and field_name != "description":
                    raise ValidationError(f"El campo {field_name} no puede ser nulo", field=field_name)
                setattr(rule, field_name, value)
            rule.set_updated_by(actor.id)
            self._db.flush()

        logger.info("Contextual rule updated", rule_id=rule_id, fields=sorted(changes), actor_id=actor.id)
        return rule

    def soft_delete(self, rule_id: int, actor: Actor) -> ContextualPermissionRule:
        """Deactivate a rule. Deleting an inactive rule is NotFound."""
        self._require_admin(actor, "contextual_rules.delete")
        rule = self.get(rule_id, include_inactive=False)

        with transaction(self._db, "eliminar regla contextual", "Regla de permiso contextual", rule_id):
            rule.soft_delete(actor.id)
            self._db.flush()

        logger.info("Contextual rule deactivated", rule_id=rule_id, actor_id=actor.id)
        return rule

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_admin(self, actor: Actor, endpoint: str) -> None:
        self._orchestrator.require(
            actor, PermissionBit.ADMINISTRAR, ResourceType.GLOBAL, endpoint=endpoint
        )

    def _ensure_role_and_area(self, role_id: int | None, area_id: int | None) -> None:
        if role_id is not None and not RoleRepository(self._db).exists(role_id):
            raise NotFoundError("Rol", role_id)
        if area_id is not None and not AreaRepository(self._db).exists(area_id):
            raise AreaNotFoundError(area_id)
