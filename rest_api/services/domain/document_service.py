"""
Document Workflow Service.

Every mutation follows the same sequence inside one transaction:
load (row lock) -> authorize -> check state -> mutate -> one ledger entry.
A failure anywhere rolls back the document change and its entry together.
"""

import csv
import io
import uuid
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy.orm import Session

from rest_api.models import Document, TrazabilidadEntry
from rest_api.models.base import utcnow
from rest_api.repositories import (
    AreaRepository,
    DocumentFilters,
    DocumentRepository,
    DocumentVisibility,
    UserRepository,
)
from rest_api.services.permissions import (
    AccessDecisionOrchestrator,
    Actor,
    ListingScope,
    PermissionBit,
    ResourceSnapshot,
)
from shared.config.constants import (
    DocumentState,
    Limits,
    ResourceType,
    TrazabilidadAction,
    is_terminal_state,
    validate_document_state,
    validate_document_transition,
)
from shared.config.logging import audit_document_event, workflow_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import transaction
from shared.utils.exceptions import (
    AreaNotFoundError,
    ConflictError,
    DocumentNotFoundError,
    DuplicateEntityError,
    InvalidTransitionError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)
from shared.utils.schemas import DeriveRequest, DocumentCreate, DocumentUpdate, StatusChangeRequest
from shared.utils.validators import normalize_document_code
from .trazabilidad_service import TrazabilidadLedger

ENTITY = "Documento"

EXPORT_COLUMNS = [
    "id",
    "code",
    "subject",
    "oficio_number",
    "origin",
    "priority",
    "state",
    "current_area_id",
    "creator_id",
    "assignee_id",
    "created_at",
    "finalized_at",
]


class DocumentWorkflowService:
    """
    Lifecycle of documents: register, edit, derive, change state, delete.

    Usage:
        service = DocumentWorkflowService(db)
        document = service.register(DocumentCreate(...), actor)
        service.derive(document.id, destination_area_id=3, actor=actor)
    """

    def __init__(
        self,
        db: Session,
        orchestrator: AccessDecisionOrchestrator | None = None,
        ledger: TrazabilidadLedger | None = None,
    ):
        self._db = db
        self._repo = DocumentRepository(db)
        self._areas = AreaRepository(db)
        self._users = UserRepository(db)
        self._orchestrator = orchestrator or AccessDecisionOrchestrator.for_session(db)
        self._ledger = ledger or TrazabilidadLedger(db)

    # =========================================================================
    # Reads
    # =========================================================================

    def read(self, document_id: int, actor: Actor) -> Document:
        """Active document by id. Missing and soft-deleted are both NotFound."""
        document = self._repo.find_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        self._authorize(actor, PermissionBit.VER, document, "documents.read")
        audit_document_event("DOCUMENT_ACCESS", document.id, actor.id)
        return document

    def list_documents(
        self, filters: DocumentFilters, actor: Actor
    ) -> tuple[Sequence[Document], int]:
        scope = self._orchestrator.listing_scope(
            actor, PermissionBit.VER, ResourceType.DOCUMENTO, endpoint="documents.list"
        )
        self._check_filters(filters)
        self._restrict(filters, actor, scope)
        return self._repo.find_all(filters), self._repo.count(filters)

    def list_trash(
        self, filters: DocumentFilters, actor: Actor
    ) -> tuple[Sequence[Document], int]:
        """Soft-deleted documents only."""
        scope = self._orchestrator.listing_scope(
            actor, PermissionBit.VER, ResourceType.DOCUMENTO, endpoint="documents.trash"
        )
        self._check_filters(filters)
        self._restrict(filters, actor, scope)
        filters.only_deleted = True
        return self._repo.find_all(filters), self._repo.count(filters)

    def history(self, document_id: int, actor: Actor) -> Sequence[TrazabilidadEntry]:
        """
        Ledger of a document, oldest first. Works for documents in the trash
        and, from the ledger alone, for purged ones.
        """
        document = self._repo.find_by_id(document_id, include_deleted=True)
        if document is not None:
            self._authorize(actor, PermissionBit.VER, document, "documents.history")
            return self._ledger.history(document.id)

        entries = self._ledger.history(document_id)
        if not entries:
            raise DocumentNotFoundError(document_id)
        self._orchestrator.require(
            actor,
            PermissionBit.VER,
            ResourceType.DOCUMENTO,
            ResourceSnapshot.of_history(document_id, entries),
            endpoint="documents.history",
        )
        return entries

    def export_rows(self, filters: DocumentFilters, actor: Actor) -> list[dict[str, Any]]:
        """
        Flat rows of the filtered listing, capped at Limits.MAX_EXPORT_ROWS.
        Rules on Ver narrow the rows as they do for the listing.
        """
        scope = self._orchestrator.listing_scope(
            actor, PermissionBit.EXPORTAR, ResourceType.DOCUMENTO, endpoint="documents.export"
        )
        self._check_filters(filters)
        self._restrict(filters, actor, scope)
        self._restrict(filters, actor, self._orchestrator.row_conditions(actor, PermissionBit.VER))

        rows: list[dict[str, Any]] = []
        filters.offset = 0
        filters.limit = Limits.MAX_PAGE_SIZE
        while len(rows) < Limits.MAX_EXPORT_ROWS:
            page = self._repo.find_all(filters)
            if not page:
                break
            rows.extend(_export_row(doc) for doc in page)
            filters.offset += len(page)

        rows = rows[: Limits.MAX_EXPORT_ROWS]
        audit_document_event("DOCUMENT_EXPORT", None, actor.id, rows=len(rows))
        return rows

    def export_csv(self, filters: DocumentFilters, actor: Actor) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(self.export_rows(filters, actor))
        return buffer.getvalue()

    # =========================================================================
    # Mutations
    # =========================================================================

    def register(self, data: DocumentCreate, actor: Actor) -> Document:
        """
        Register a new document in REGISTRADO state.

        The document lands in the destination area, or in the origin area when
        no destination is given.

        Raises:
            ForbiddenError: actor lacks Crear
            AreaNotFoundError: origin or destination area does not exist
            NotFoundError: assignee does not exist
            DuplicateEntityError: registry code already in use
        """
        self._orchestrator.require(
            actor, PermissionBit.CREAR, ResourceType.DOCUMENTO, endpoint="documents.register"
        )

        origin_area_id = data.origin_area_id
        destination_area_id = data.destination_area_id or origin_area_id
        self._ensure_area(origin_area_id)
        self._ensure_area(destination_area_id)
        if data.assignee_id is not None:
            self._ensure_user(data.assignee_id)

        code = normalize_document_code(data.code) if data.code else self._generate_code()
        if self._repo.find_by_code(code) is not None:
            raise DuplicateEntityError("documento", code)

        with transaction(self._db, "registrar documento", ENTITY):
            document = Document(
                code=code,
                subject=data.subject,
                oficio_number=data.oficio_number,
                document_date=data.document_date,
                origin=data.origin,
                content=data.content,
                observations=data.observations,
                priority=data.priority,
                state=DocumentState.REGISTRADO,
                current_area_id=destination_area_id,
                creator_id=actor.id,
                assignee_id=data.assignee_id,
            )
            document.set_created_by(actor.id)
            self._db.add(document)
            self._db.flush()

            self._ledger.append(
                document,
                TrazabilidadAction.REGISTRO,
                actor.id,
                origin_area_id=origin_area_id,
                destination_area_id=destination_area_id,
                new_state=DocumentState.REGISTRADO,
                observations=data.observations,
            )

        logger.info(
            "Document registered",
            document_id=document.id,
            code=document.code,
            area_id=destination_area_id,
            actor_id=actor.id,
        )
        audit_document_event("DOCUMENT_CREATED", document.id, actor.id, code=document.code)
        return document

    def update(self, document_id: int, data: DocumentUpdate, actor: Actor) -> Document:
        """Partial edit of descriptive fields. Terminal documents are read-only."""
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No se proporcionaron campos para actualizar", document_id=document_id)
        if changes.get("subject") is not None and not changes["subject"].strip():
            raise ValidationError("El asunto no puede estar vacío", document_id=document_id)

        with transaction(self._db, "actualizar documento", ENTITY, document_id):
            document = self._load_for_update(document_id)
            self._authorize(actor, PermissionBit.EDITAR, document, "documents.update")
            if is_terminal_state(document.state):
                raise TerminalStateError(document.id, document.state)
            if changes.get("assignee_id") is not None:
                self._ensure_user(changes["assignee_id"])

            for field_name, value in changes.items():
                if field_name in ("subject", "priority") and value is None:
                    raise ValidationError(f"El campo {field_name} no puede ser nulo", field=field_name)
                setattr(document, field_name, value)
            document.set_updated_by(actor.id)
            self._db.flush()

            self._ledger.append(
                document,
                TrazabilidadAction.ACTUALIZACION,
                actor.id,
                origin_area_id=document.current_area_id,
                destination_area_id=document.current_area_id,
                previous_state=document.state,
                new_state=document.state,
                observations=f"Campos actualizados: {', '.join(sorted(changes))}",
            )

        audit_document_event(
            "DOCUMENT_UPDATED", document.id, actor.id, fields=sorted(changes)
        )
        return document

    def derive(
        self,
        document_id: int,
        destination_area_id: int,
        actor: Actor,
        urgent: bool = False,
        reason: str | None = None,
        observations: str | None = None,
    ) -> Document:
        """
        Move a document to another area; it becomes EN_PROCESO there.

        Deriving to the area the document is already in is a Conflict,
        reported before any permission check.
        """
        with transaction(self._db, "derivar documento", ENTITY, document_id):
            document = self._load_for_update(document_id)
            if document.current_area_id == destination_area_id:
                raise ConflictError(
                    "No se puede derivar a la misma área",
                    document_id=document_id,
                    area_id=destination_area_id,
                )

            self._authorize(actor, PermissionBit.DERIVAR, document, "documents.derive")
            if is_terminal_state(document.state):
                raise TerminalStateError(document.id, document.state)
            self._ensure_area(destination_area_id)

            origin_area_id = document.current_area_id
            previous_state = document.state
            document.current_area_id = destination_area_id
            document.state = DocumentState.EN_PROCESO
            document.set_updated_by(actor.id)
            self._db.flush()

            self._ledger.append(
                document,
                TrazabilidadAction.DERIVACION,
                actor.id,
                origin_area_id=origin_area_id,
                destination_area_id=destination_area_id,
                previous_state=previous_state,
                new_state=DocumentState.EN_PROCESO,
                observations=observations,
                reason=reason,
                urgent=urgent,
            )

        logger.info(
            "Document derived",
            document_id=document.id,
            from_area=origin_area_id,
            to_area=destination_area_id,
            urgent=urgent,
            actor_id=actor.id,
        )
        audit_document_event(
            "DOCUMENT_DERIVED",
            document.id,
            actor.id,
            from_area=origin_area_id,
            to_area=destination_area_id,
        )
        return document

    def derive_request(self, document_id: int, data: DeriveRequest, actor: Actor) -> Document:
        return self.derive(
            document_id,
            data.destination_area_id,
            actor,
            urgent=data.urgent,
            reason=data.reason,
            observations=data.observations,
        )

    def set_status(
        self,
        document_id: int,
        new_state: str,
        actor: Actor,
        observations: str | None = None,
        assignee_id: int | None = None,
    ) -> Document:
        """Move along one legal edge of the state graph."""
        if not validate_document_state(new_state):
            raise ValidationError(f"Estado de documento inválido: {new_state}", state=new_state)

        with transaction(self._db, "cambiar estado de documento", ENTITY, document_id):
            document = self._load_for_update(document_id)
            self._authorize(actor, PermissionBit.EDITAR, document, "documents.set_status")

            previous_state = document.state
            if not validate_document_transition(previous_state, new_state):
                raise InvalidTransitionError(
                    ENTITY, previous_state, new_state, document_id=document_id
                )
            if assignee_id is not None:
                self._ensure_user(assignee_id)
                document.assignee_id = assignee_id

            document.state = new_state
            if new_state == DocumentState.FINALIZADO:
                document.finalized_at = utcnow()
            document.set_updated_by(actor.id)
            self._db.flush()

            self._ledger.append(
                document,
                TrazabilidadAction.ACTUALIZACION,
                actor.id,
                origin_area_id=document.current_area_id,
                destination_area_id=document.current_area_id,
                previous_state=previous_state,
                new_state=new_state,
                observations=observations,
            )

        audit_document_event(
            "DOCUMENT_STATUS_CHANGE",
            document.id,
            actor.id,
            from_state=previous_state,
            to_state=new_state,
        )
        return document

    def change_status(self, document_id: int, data: StatusChangeRequest, actor: Actor) -> Document:
        return self.set_status(
            document_id,
            data.state,
            actor,
            observations=data.observations,
            assignee_id=data.assignee_id,
        )

    def soft_delete(self, document_id: int, actor: Actor) -> Document:
        """Move a document to the trash."""
        with transaction(self._db, "eliminar documento", ENTITY, document_id):
            document = self._load_for_update(document_id)
            self._authorize_owned(actor, document, "documents.delete")

            document.soft_delete(actor.id)
            self._db.flush()
            self._append_lifecycle(document, actor, "Documento movido a la papelera")

        audit_document_event("DOCUMENT_DELETED", document.id, actor.id)
        return document

    def restore(self, document_id: int, actor: Actor) -> Document:
        """Bring a document back from the trash."""
        with transaction(self._db, "restaurar documento", ENTITY, document_id):
            document = self._load_for_update(document_id, include_deleted=True)
            self._authorize_owned(actor, document, "documents.restore")
            if document.is_active:
                raise ConflictError("El documento no está en la papelera", document_id=document_id)

            document.restore(actor.id)
            self._db.flush()
            self._append_lifecycle(document, actor, "Documento restaurado desde la papelera")

        audit_document_event("DOCUMENT_RESTORED", document.id, actor.id)
        return document

    def purge(self, document_id: int, actor: Actor) -> None:
        """
        Physically remove a document that is already in the trash.

        Its ledger entries survive, followed by one last entry for the purge.
        """
        with transaction(self._db, "eliminar permanentemente documento", ENTITY, document_id):
            document = self._load_for_update(document_id, include_deleted=True)
            self._authorize_owned(actor, document, "documents.purge")
            if document.is_active:
                raise ConflictError(
                    "Solo se pueden eliminar permanentemente documentos en la papelera",
                    document_id=document_id,
                )

            code = document.code
            self._append_lifecycle(document, actor, "Documento eliminado permanentemente")
            self._db.delete(document)
            self._db.flush()

        logger.warning("Document purged", document_id=document_id, code=code, actor_id=actor.id)
        audit_document_event("DOCUMENT_PURGED", document_id, actor.id, code=code)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load_for_update(self, document_id: int, include_deleted: bool = False) -> Document:
        document = self._repo.find_for_update(document_id, include_deleted=include_deleted)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def _authorize(self, actor: Actor, bit: int, document: Document, endpoint: str) -> None:
        self._orchestrator.require(
            actor,
            bit,
            ResourceType.DOCUMENTO,
            ResourceSnapshot.of_document(document),
            endpoint=endpoint,
        )

    def _authorize_owned(self, actor: Actor, document: Document, endpoint: str) -> None:
        self._orchestrator.require_owned(
            actor,
            PermissionBit.ELIMINAR,
            ResourceSnapshot.of_document(document),
            ResourceType.DOCUMENTO,
            endpoint=endpoint,
        )

    def _append_lifecycle(self, document: Document, actor: Actor, observations: str) -> None:
        self._ledger.append(
            document,
            TrazabilidadAction.ACTUALIZACION,
            actor.id,
            origin_area_id=document.current_area_id,
            destination_area_id=document.current_area_id,
            previous_state=document.state,
            new_state=document.state,
            observations=observations,
        )

    def _ensure_area(self, area_id: int) -> None:
        if not self._areas.exists(area_id):
            raise AreaNotFoundError(area_id)

    def _ensure_user(self, user_id: int) -> None:
        if not self._users.exists(user_id):
            raise NotFoundError("Usuario", user_id)

    def _restrict(self, filters: DocumentFilters, actor: Actor, scope: ListingScope) -> None:
        if not scope.unrestricted:
            filters.visible_to.append(DocumentVisibility(**scope.row_filters(actor)))

    def _check_filters(self, filters: DocumentFilters) -> None:
        if filters.state is not None and not validate_document_state(filters.state):
            raise ValidationError(f"Estado de documento inválido: {filters.state}", state=filters.state)

    def _generate_code(self) -> str:
        year = utcnow().year
        return f"{settings.document_code_prefix}-{year}-{uuid.uuid4().hex[:8].upper()}"


def _export_row(document: Document) -> dict[str, Any]:
    row: dict[str, Any] = {}
    for column in EXPORT_COLUMNS:
        value = getattr(document, column)
        row[column] = value.isoformat() if isinstance(value, datetime) else value
    return row
