"""
Contextual condition strategies.

Each stored rule condition (PROPIETARIO, MISMA_AREA, ASIGNADO, SUPERVISOR) is a
strategy that decides whether a requester stands in the required relation to a
resource. Supervisor relations are resolved through a ``SupervisorLookup``.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Protocol, runtime_checkable

from shared.utils.exceptions import MalformedRuleError
from .context import Actor, ResourceSnapshot


class ContextCondition(str, Enum):
    """Typed rule condition."""

    PROPIETARIO = "PROPIETARIO"  # Owner
    MISMA_AREA = "MISMA_AREA"    # SameArea
    ASIGNADO = "ASIGNADO"        # Assigned
    SUPERVISOR = "SUPERVISOR"


# =============================================================================
# Relation lookups
# =============================================================================


@runtime_checkable
class SupervisorLookup(Protocol):
    """Answers whether one user is recorded as supervisor of another."""

    def is_supervisor(self, supervisor_id: int, user_id: int) -> bool:
        ...


class NoSupervisors:
    """Lookup for contexts without a supervisor hierarchy."""

    def is_supervisor(self, supervisor_id: int, user_id: int) -> bool:
        return False


# =============================================================================
# Strategies
# =============================================================================


class ConditionStrategy(ABC):
    """Base class for a single condition."""

    condition: ContextCondition

    @abstractmethod
    def matches(
        self,
        actor: Actor,
        resource: ResourceSnapshot,
        supervisors: SupervisorLookup,
    ) -> bool:
        ...

    @abstractmethod
    def row_filter(self, actor: Actor) -> dict[str, int]:
        """The same relation as a column filter for collection queries."""
        ...


class OwnerStrategy(ConditionStrategy):
    condition = ContextCondition.PROPIETARIO

    def matches(self, actor, resource, supervisors) -> bool:
        return resource.owner_id is not None and resource.owner_id == actor.id

    def row_filter(self, actor) -> dict[str, int]:
        return {"owner_id": actor.id}


class SameAreaStrategy(ConditionStrategy):
    condition = ContextCondition.MISMA_AREA

    def matches(self, actor, resource, supervisors) -> bool:
        return resource.area_id is not None and resource.area_id == actor.area_id

    def row_filter(self, actor) -> dict[str, int]:
        return {"area_id": actor.area_id}


class AssignedStrategy(ConditionStrategy):
    condition = ContextCondition.ASIGNADO

    def matches(self, actor, resource, supervisors) -> bool:
        return resource.assigned_user_id is not None and resource.assigned_user_id == actor.id

    def row_filter(self, actor) -> dict[str, int]:
        return {"assignee_id": actor.id}


class SupervisorStrategy(ConditionStrategy):
    condition = ContextCondition.SUPERVISOR

    def matches(self, actor, resource, supervisors) -> bool:
        if resource.owner_id is None:
            return False
        return supervisors.is_supervisor(actor.id, resource.owner_id)

    def row_filter(self, actor) -> dict[str, int]:
        return {"supervisor_id": actor.id}


STRATEGY_REGISTRY: dict[ContextCondition, ConditionStrategy] = {
    strategy.condition: strategy
    for strategy in (OwnerStrategy(), SameAreaStrategy(), AssignedStrategy(), SupervisorStrategy())
}


def parse_condition(value: object, rule_id: int | None = None) -> ContextCondition:
    """
    Interpret a persisted condition value.

    Raises MalformedRuleError (INTERNAL) for anything outside the enum: a bad
    stored rule must surface, never count as match or no-match.
    """
    if isinstance(value, ContextCondition):
        return value
    try:
        return ContextCondition(value)
    except ValueError:
        raise MalformedRuleError(rule_id, value)


class ContextualConditionEvaluator:
    """
    Matches rule conditions against a requester and a resource snapshot.

    Usage:
        evaluator = ContextualConditionEvaluator(UserRepository(db))
        if evaluator.matches(actor, ResourceSnapshot.of_document(doc), rule.condition, rule.id):
            ...
    """

    def __init__(self, supervisors: SupervisorLookup | None = None):
        self._supervisors = supervisors or NoSupervisors()

    def matches(
        self,
        actor: Actor,
        resource: ResourceSnapshot,
        condition: object,
        rule_id: int | None = None,
    ) -> bool:
        parsed = parse_condition(condition, rule_id)
        return STRATEGY_REGISTRY[parsed].matches(actor, resource, self._supervisors)
