"""
Layered permission engine.

- registry: the 8 named permission bits
- bits: mask validation and bit evaluation
- context: Actor and ResourceSnapshot
- strategies: contextual condition strategies and evaluator
- decision: AccessDecisionOrchestrator (bypass -> bit -> contextual -> ownership)
- decorators: FastAPI dependencies (current_actor, require_bit)

Usage:
    from rest_api.services.permissions import PermissionBit, require_bit

    @router.get("/", dependencies=[Depends(require_bit(PermissionBit.VER))])
    def list_documents(...):
        ...
"""

from .registry import PermissionBit, RESOURCE_SCOPED_BITS, FULL_MASK, describe_bits, bit_by_name
from .bits import (
    has_bit,
    is_admin_mask,
    mask_from_bits,
    bits_from_mask,
    describe_mask,
    validate_mask,
    validate_bit,
)
from .context import Actor, ResourceSnapshot
from .strategies import (
    ContextCondition,
    ContextualConditionEvaluator,
    SupervisorLookup,
    STRATEGY_REGISTRY,
    parse_condition,
)
from .decision import AccessDecision, AccessDecisionOrchestrator, DecisionReason, ListingScope

__all__ = [
    # Registry
    "PermissionBit",
    "RESOURCE_SCOPED_BITS",
    "FULL_MASK",
    "describe_bits",
    "bit_by_name",
    # Bits
    "has_bit",
    "is_admin_mask",
    "mask_from_bits",
    "bits_from_mask",
    "describe_mask",
    "validate_mask",
    "validate_bit",
    # Context
    "Actor",
    "ResourceSnapshot",
    # Conditions
    "ContextCondition",
    "ContextualConditionEvaluator",
    "SupervisorLookup",
    "STRATEGY_REGISTRY",
    "parse_condition",
    # Decisions
    "AccessDecision",
    "AccessDecisionOrchestrator",
    "DecisionReason",
    "ListingScope",
]
