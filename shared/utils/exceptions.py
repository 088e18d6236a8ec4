"""
Centralized HTTP exceptions for consistent error handling.

Every exception carries an explicit ``kind`` tag. The HTTP boundary maps the
tag to the response envelope; status codes are never inferred from messages.

Usage:
    from shared.utils.exceptions import NotFoundError, ForbiddenError, ConflictError

    raise NotFoundError("Documento", document_id)
    raise ForbiddenError("MissingBit", required_bit=1)
    raise ConflictError("El documento ya se encuentra en el área destino")
"""

from enum import Enum
from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Error taxonomy tag carried by every application exception."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, kind=self.kind.value, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 401 Unauthenticated
# =============================================================================


class UnauthenticatedError(AppException):
    """Missing, malformed, expired or unknown credentials (401)."""

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, detail: str = "No autenticado", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            log_level="warning",
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Documento", 123)
        raise NotFoundError("Área", area_id, document_id=doc.id)
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} con ID {entity_id} no encontrado"
        else:
            detail = f"{entity} no encontrado"

        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class DocumentNotFoundError(NotFoundError):
    """Document not found or soft-deleted."""

    def __init__(self, document_id: int | None = None, **log_context: Any):
        super().__init__("Documento", document_id, **log_context)


class AreaNotFoundError(NotFoundError):
    """Area not found."""

    def __init__(self, area_id: int | None = None, **log_context: Any):
        super().__init__("Área", area_id, **log_context)


class RuleNotFoundError(NotFoundError):
    """Contextual permission rule not found."""

    def __init__(self, rule_id: int | None = None, **log_context: Any):
        super().__init__("Regla de permiso contextual", rule_id, **log_context)


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization failure (403).

    The reason code is kept on the exception and in the logs; the caller only
    sees the generic message.

    Usage:
        raise ForbiddenError("MissingBit", required_bit=0)
    """

    kind = ErrorKind.FORBIDDEN

    def __init__(self, reason_code: str = "Forbidden", **log_context: Any):
        self.reason_code = reason_code
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No autorizado: permisos insuficientes",
            log_level="warning",
            reason_code=reason_code,
            **log_context,
        )


# =============================================================================
# 422 Validation Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (422).

    Usage:
        raise ValidationError("La máscara debe estar entre 0 y 255", field="mask", value=300)
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=422,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class InvalidMaskError(ValidationError):
    """Permission mask outside [0, 255]."""

    def __init__(self, mask: Any, **log_context: Any):
        super().__init__(
            f"Máscara de permisos inválida: {mask!r} (debe ser un entero entre 0 y 255)",
            mask=mask,
            **log_context,
        )


class InvalidBitError(ValidationError):
    """Permission bit index outside [0, 7]."""

    def __init__(self, bit: Any, **log_context: Any):
        super().__init__(
            f"Bit de permiso inválido: {bit!r} (debe ser un entero entre 0 y 7)",
            bit=bit,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("Ya existe un documento con el mismo número de registro")
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class InvalidTransitionError(ConflictError):
    """Illegal document state transition."""

    def __init__(self, entity: str, from_state: str, to_state: str, **log_context: Any):
        self.from_state = from_state
        self.to_state = to_state
        detail = f"Transición inválida de '{from_state}' a '{to_state}' para {entity}"
        super().__init__(detail, entity=entity, from_state=from_state, to_state=to_state, **log_context)


class TerminalStateError(ConflictError):
    """Mutation attempted on a document in a terminal state."""

    def __init__(self, document_id: int, state: str, **log_context: Any):
        self.state = state
        super().__init__(
            f"El documento {document_id} está en estado '{state}' y no admite cambios",
            document_id=document_id,
            state=state,
            **log_context,
        )


class DuplicateEntityError(ConflictError):
    """Entity already exists."""

    def __init__(self, entity: str, identifier: str | None = None, **log_context: Any):
        if identifier:
            detail = f"Ya existe un {entity} con identificador '{identifier}'"
        else:
            detail = f"{entity} ya existe"

        super().__init__(detail, entity=entity, identifier=identifier, **log_context)


class ConcurrentModificationError(ConflictError):
    """Another transaction modified the row first (stale version)."""

    def __init__(self, entity: str, entity_id: int | None = None, **log_context: Any):
        super().__init__(
            f"{entity} {entity_id} fue modificado por otra operación. Intente de nuevo.",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("Condición almacenada inválida", rule_id=12)
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, detail: str = "Error interno del servidor", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class MalformedRuleError(InternalError):
    """Stored contextual rule cannot be interpreted."""

    def __init__(self, rule_id: int | None, value: Any, **log_context: Any):
        self.rule_id = rule_id
        super().__init__(
            f"Regla de permiso contextual {rule_id} tiene una condición inválida",
            rule_id=rule_id,
            stored_value=value,
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Error de base de datos durante {operation}. Por favor intente de nuevo."
        super().__init__(detail, operation=operation, **log_context)
