"""
Document (expediente) endpoints.

Each route is gated by the bit it needs; resource-scoped checks (ownership,
contextual rules) run in DocumentWorkflowService once the document is loaded.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from rest_api.repositories import DocumentFilters
from rest_api.routers._common import Pagination, PaginatedResponse, get_pagination, ok
from rest_api.services.domain import DocumentWorkflowService
from rest_api.services.permissions import Actor, PermissionBit
from rest_api.services.permissions.decorators import require_bit
from shared.config.constants import ResourceType
from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    DeriveRequest,
    DocumentCreate,
    DocumentOutput,
    DocumentUpdate,
    StatusChangeRequest,
    TrazabilidadOutput,
)


router = APIRouter(prefix="/api/documentos", tags=["documentos"])

DOC = ResourceType.DOCUMENTO


def _filters(
    state: str | None = Query(default=None, description="Estado del documento"),
    area_id: int | None = Query(default=None, description="Área actual"),
    priority: str | None = Query(default=None),
    creator_id: int | None = Query(default=None),
    assignee_id: int | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    search: str | None = Query(default=None, description="Código, asunto o procedencia"),
    pagination: Pagination = Depends(get_pagination),
) -> DocumentFilters:
    return pagination.filters(
        DocumentFilters,
        state=state,
        area_id=area_id,
        priority=priority,
        creator_id=creator_id,
        assignee_id=assignee_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )


def _page(items, filters: DocumentFilters, total: int) -> dict:
    pagination = Pagination(limit=filters.limit, offset=filters.offset)
    page = PaginatedResponse(
        items=[DocumentOutput.model_validate(d) for d in items],
        pagination=pagination,
        total=total,
    )
    return page.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
def register_document(
    body: DocumentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.CREAR, resource_type=DOC)),
):
    """Register a new document (Mesa de Partes intake)."""
    document = DocumentWorkflowService(db).register(body, actor)
    return ok(DocumentOutput.model_validate(document), message="Documento registrado")


@router.get("")
def list_documents(
    filters: DocumentFilters = Depends(_filters),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.VER, resource_type=DOC)),
):
    """List active documents, newest first."""
    items, total = DocumentWorkflowService(db).list_documents(filters, actor)
    return ok(_page(items, filters, total))


@router.get("/papelera")
def list_trash(
    filters: DocumentFilters = Depends(_filters),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.VER, resource_type=DOC)),
):
    """List soft-deleted documents."""
    items, total = DocumentWorkflowService(db).list_trash(filters, actor)
    return ok(_page(items, filters, total))


@router.get("/exportar")
def export_documents(
    filters: DocumentFilters = Depends(_filters),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.EXPORTAR, resource_type=DOC)),
):
    """Filtered listing as CSV."""
    content = DocumentWorkflowService(db).export_csv(filters, actor)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="documentos.csv"'},
    )


@router.get("/{document_id}")
def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.VER, resource_type=DOC)),
):
    document = DocumentWorkflowService(db).read(document_id, actor)
    return ok(DocumentOutput.model_validate(document))


@router.put("/{document_id}")
def update_document(
    document_id: int,
    body: DocumentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.EDITAR, resource_type=DOC)),
):
    document = DocumentWorkflowService(db).update(document_id, body, actor)
    return ok(DocumentOutput.model_validate(document), message="Documento actualizado")


@router.patch("/{document_id}/estado")
def change_document_status(
    document_id: int,
    body: StatusChangeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.EDITAR, resource_type=DOC)),
):
    document = DocumentWorkflowService(db).change_status(document_id, body, actor)
    return ok(DocumentOutput.model_validate(document), message="Estado actualizado")


@router.post("/{document_id}/derivar")
def derive_document(
    document_id: int,
    body: DeriveRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.DERIVAR, resource_type=DOC)),
):
    """Send the document to another area."""
    document = DocumentWorkflowService(db).derive_request(document_id, body, actor)
    return ok(DocumentOutput.model_validate(document), message="Documento derivado")


@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.ELIMINAR, resource_type=DOC)),
):
    """Move to the trash."""
    document = DocumentWorkflowService(db).soft_delete(document_id, actor)
    return ok(DocumentOutput.model_validate(document), message="Documento movido a la papelera")


@router.post("/{document_id}/restaurar")
def restore_document(
    document_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.EDITAR, resource_type=DOC)),
):
    document = DocumentWorkflowService(db).restore(document_id, actor)
    return ok(DocumentOutput.model_validate(document), message="Documento restaurado")


@router.delete("/{document_id}/eliminar-permanente")
def purge_document(
    document_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.ELIMINAR, resource_type=DOC)),
):
    """Physically remove a document already in the trash."""
    DocumentWorkflowService(db).purge(document_id, actor)
    return ok(message="Documento eliminado permanentemente")


@router.get("/{document_id}/trazabilidad")
def document_history(
    document_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_bit(PermissionBit.VER, resource_type=DOC)),
):
    entries = DocumentWorkflowService(db).history(document_id, actor)
    return ok([TrazabilidadOutput.model_validate(e) for e in entries])
