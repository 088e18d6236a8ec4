"""
Services module for business logic.

- permissions/: bitmask + contextual rule authorization engine
- domain/: document workflow, trazabilidad ledger, contextual rule store

Usage:
    from rest_api.services.domain import DocumentWorkflowService
    service = DocumentWorkflowService(db)
    document = service.register(data, actor)
"""
