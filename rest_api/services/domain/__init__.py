"""
Domain Services - Application Layer.

Services contain business logic and orchestrate operations.
They use Repositories for data access and the permission engine for access
decisions.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import DocumentWorkflowService

    # In router
    service = DocumentWorkflowService(db)
    document = service.derive(document_id, destination_area_id, actor)
"""

from .trazabilidad_service import TrazabilidadLedger
from .document_service import DocumentWorkflowService
from .contextual_rule_service import ContextualRuleService

__all__ = [
    "TrazabilidadLedger",
    "DocumentWorkflowService",
    "ContextualRuleService",
]
