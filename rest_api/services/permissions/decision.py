"""
Access decision orchestration.

Precedence, first hit wins:
1. Admin bypass (Admin role, mask 255 or Administrar bit)
2. Missing bit -> deny
3. Active contextual rules for (role, area, resource type, bit) when a
   resource is given: any match allows, none matching denies. Collections
   have no single resource: listing_scope() turns the same rules into row
   conditions instead
4. No rules and a resource-scoped action (Editar, Eliminar, Derivar on a
   specific resource): ownership decides
5. Bit alone suffices

Every decision, allow or deny, is reported to the security audit log.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from sqlalchemy.orm import Session

from rest_api.repositories import ContextualRuleRepository, UserRepository
from shared.config.constants import ResourceType
from shared.config.logging import audit_access_decision
from shared.utils.exceptions import ForbiddenError
from .bits import has_bit, validate_bit, validate_mask
from .context import Actor, ResourceSnapshot
from .registry import RESOURCE_SCOPED_BITS
from .strategies import (
    STRATEGY_REGISTRY,
    ContextCondition,
    ContextualConditionEvaluator,
    parse_condition,
)


class DecisionReason(str, Enum):
    """Reason codes attached to every decision."""

    ADMIN_BYPASS = "AdminBypass"
    MISSING_BIT = "MissingBit"
    CONTEXT_RULE_MATCHED = "ContextRuleMatched"
    CONTEXT_RULE_REJECTED = "ContextRuleRejected"
    OWNERSHIP_MATCHED = "OwnershipMatched"
    NOT_OWNER = "NotOwner"
    BIT_GRANTED = "BitGranted"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason_code: DecisionReason
    required_bit: int
    rule_id: int | None = None
    evaluated_rule_ids: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ListingScope:
    """
    Rows of a collection an actor may see for one bit.

    No conditions means every row; otherwise a row is visible when it meets
    any of them.
    """

    required_bit: int
    conditions: tuple[ContextCondition, ...] = ()
    rule_ids: tuple[int, ...] = ()

    @property
    def unrestricted(self) -> bool:
        return not self.conditions

    def row_filters(self, actor: Actor) -> dict[str, int]:
        """Column filters for the conditions, merged: a row matching any is visible."""
        filters: dict[str, int] = {}
        for condition in self.conditions:
            filters.update(STRATEGY_REGISTRY[condition].row_filter(actor))
        return filters


class RuleLike(Protocol):
    id: int
    condition: Any


class RuleSource(Protocol):
    """Source of active contextual rules (the rule repository in production)."""

    def find_applicable(
        self, role_id: int, area_id: int, resource_type: str, action_bit: int
    ) -> Sequence[RuleLike]:
        ...


AuditSink = Callable[..., None]


class AccessDecisionOrchestrator:
    """
    Combines bypass, bit, contextual and ownership checks into one decision.

    Usage:
        orchestrator = AccessDecisionOrchestrator.for_session(db)
        orchestrator.require(actor, PermissionBit.EDITAR, ResourceType.DOCUMENTO,
                             ResourceSnapshot.of_document(doc), endpoint="documents.update")
    """

    def __init__(
        self,
        rules: RuleSource,
        evaluator: ContextualConditionEvaluator,
        audit: AuditSink = audit_access_decision,
    ):
        self._rules = rules
        self._evaluator = evaluator
        self._audit = audit

    @classmethod
    def for_session(cls, db: Session, audit: AuditSink = audit_access_decision) -> "AccessDecisionOrchestrator":
        return cls(
            ContextualRuleRepository(db),
            ContextualConditionEvaluator(UserRepository(db)),
            audit=audit,
        )

    def decide(
        self,
        actor: Actor,
        action_bit: int,
        resource_type: str = ResourceType.GLOBAL,
        resource: ResourceSnapshot | None = None,
        endpoint: str | None = None,
    ) -> AccessDecision:
        validate_mask(actor.mask)
        bit = validate_bit(action_bit)

        decision = self._evaluate(actor, bit, resource_type, resource)

        self._audit(
            allowed=decision.allowed,
            reason=decision.reason_code.value,
            endpoint=endpoint,
            actor_id=actor.id,
            required_bit=bit,
            actor_mask=actor.mask,
            rule_id=decision.rule_id,
            evaluated_rule_ids=list(decision.evaluated_rule_ids),
            resource_type=resource_type,
            resource_id=resource.resource_id if resource else None,
        )
        return decision

    def require(
        self,
        actor: Actor,
        action_bit: int,
        resource_type: str = ResourceType.GLOBAL,
        resource: ResourceSnapshot | None = None,
        endpoint: str | None = None,
    ) -> AccessDecision:
        """decide() that raises ForbiddenError on denial."""
        decision = self.decide(actor, action_bit, resource_type, resource, endpoint)
        if not decision.allowed:
            raise ForbiddenError(
                decision.reason_code.value,
                actor_id=actor.id,
                required_bit=decision.required_bit,
                endpoint=endpoint,
            )
        return decision

    def listing_scope(
        self,
        actor: Actor,
        action_bit: int,
        resource_type: str = ResourceType.DOCUMENTO,
        endpoint: str | None = None,
    ) -> ListingScope:
        """
        require() for a collection: the bit gate, then the actor's contextual
        rules for that bit as row conditions.
        """
        decision = self.require(actor, action_bit, resource_type, endpoint=endpoint)
        return self.row_conditions(actor, decision.required_bit, resource_type)

    def row_conditions(
        self, actor: Actor, action_bit: int, resource_type: str = ResourceType.DOCUMENTO
    ) -> ListingScope:
        """Active rules for the actor as row conditions, without a bit check or audit."""
        bit = validate_bit(action_bit)
        if actor.is_admin:
            return ListingScope(bit)

        rules = self._rules.find_applicable(actor.role_id, actor.area_id, resource_type, bit)
        conditions = [parse_condition(rule.condition, rule.id) for rule in rules]
        return ListingScope(
            bit,
            conditions=tuple(dict.fromkeys(conditions)),
            rule_ids=tuple(rule.id for rule in rules),
        )

    def _evaluate(
        self,
        actor: Actor,
        bit: int,
        resource_type: str,
        resource: ResourceSnapshot | None,
    ) -> AccessDecision:
        if actor.is_admin:
            return AccessDecision(True, DecisionReason.ADMIN_BYPASS, bit)

        if not has_bit(actor.mask, bit):
            return AccessDecision(False, DecisionReason.MISSING_BIT, bit)

        # Contextual rules relate an actor to a resource; without one there is nothing to match
        if resource is None:
            return AccessDecision(True, DecisionReason.BIT_GRANTED, bit)

        rules = self._rules.find_applicable(actor.role_id, actor.area_id, resource_type, bit)
        if rules:
            evaluated: list[int] = []
            for rule in rules:
                evaluated.append(rule.id)
                if self._evaluator.matches(actor, resource, rule.condition, rule.id):
                    return AccessDecision(
                        True,
                        DecisionReason.CONTEXT_RULE_MATCHED,
                        bit,
                        rule_id=rule.id,
                        evaluated_rule_ids=tuple(evaluated),
                    )
            return AccessDecision(
                False,
                DecisionReason.CONTEXT_RULE_REJECTED,
                bit,
                evaluated_rule_ids=tuple(evaluated),
            )

        if bit in RESOURCE_SCOPED_BITS:
            if resource.owner_id is not None and resource.owner_id == actor.id:
                return AccessDecision(True, DecisionReason.OWNERSHIP_MATCHED, bit)
            return AccessDecision(False, DecisionReason.NOT_OWNER, bit)

        return AccessDecision(True, DecisionReason.BIT_GRANTED, bit)

    def require_owned(
        self,
        actor: Actor,
        action_bit: int,
        resource: ResourceSnapshot,
        resource_type: str = ResourceType.DOCUMENTO,
        endpoint: str | None = None,
    ) -> AccessDecision:
        """
        require() plus ownership: only the owner or an admin passes, even when
        a contextual rule would otherwise grant the action.
        """
        decision = self.require(actor, action_bit, resource_type, resource, endpoint)
        if decision.reason_code is DecisionReason.ADMIN_BYPASS:
            return decision
        if resource.owner_id is not None and resource.owner_id == actor.id:
            return decision

        self._audit(
            allowed=False,
            reason=DecisionReason.NOT_OWNER.value,
            endpoint=endpoint,
            actor_id=actor.id,
            required_bit=decision.required_bit,
            actor_mask=actor.mask,
            rule_id=decision.rule_id,
            evaluated_rule_ids=list(decision.evaluated_rule_ids),
            resource_type=resource_type,
            resource_id=resource.resource_id,
        )
        raise ForbiddenError(
            DecisionReason.NOT_OWNER.value,
            actor_id=actor.id,
            required_bit=decision.required_bit,
            endpoint=endpoint,
        )
