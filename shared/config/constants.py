"""
Centralized constants for the backend application.
Avoid magic strings for roles, states and rule vocabularies.

Usage:
    from shared.config.constants import DocumentState, Roles

    if document.state in DocumentState.TERMINAL:
        ...
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """Role name constants (Role.name column)."""

    ADMIN: Final[str] = "ADMINISTRADOR"
    MESA_PARTES: Final[str] = "MESA_DE_PARTES"
    RESPONSABLE_AREA: Final[str] = "RESPONSABLE_AREA"
    OPERADOR: Final[str] = "OPERADOR"
    CONSULTA: Final[str] = "CONSULTA"

    ALL: Final[list[str]] = [ADMIN, MESA_PARTES, RESPONSABLE_AREA, OPERADOR, CONSULTA]


# =============================================================================
# Entity Status Constants
# =============================================================================


class DocumentState:
    """Document lifecycle states."""

    REGISTRADO: Final[str] = "REGISTRADO"
    EN_PROCESO: Final[str] = "EN_PROCESO"
    OBSERVADO: Final[str] = "OBSERVADO"
    FINALIZADO: Final[str] = "FINALIZADO"
    ARCHIVADO: Final[str] = "ARCHIVADO"
    CANCELADO: Final[str] = "CANCELADO"

    ALL: Final[list[str]] = [REGISTRADO, EN_PROCESO, OBSERVADO, FINALIZADO, ARCHIVADO, CANCELADO]
    # No further Edit/Derive accepted
    TERMINAL: Final[frozenset[str]] = frozenset({FINALIZADO, ARCHIVADO, CANCELADO})


class DocumentPriority:
    """Document priority constants."""

    BAJA: Final[str] = "BAJA"
    NORMAL: Final[str] = "NORMAL"
    ALTA: Final[str] = "ALTA"
    URGENTE: Final[str] = "URGENTE"

    ALL: Final[list[str]] = [BAJA, NORMAL, ALTA, URGENTE]


class AreaType:
    """Organizational area types."""

    ADMINISTRATIVA: Final[str] = "ADMINISTRATIVA"
    OPERATIVA: Final[str] = "OPERATIVA"
    ESPECIALIZADA: Final[str] = "ESPECIALIZADA"

    ALL: Final[list[str]] = [ADMINISTRATIVA, OPERATIVA, ESPECIALIZADA]


class ResourceType:
    """Resource types a contextual rule can target."""

    DOCUMENTO: Final[str] = "DOCUMENTO"
    USUARIO: Final[str] = "USUARIO"
    AREA: Final[str] = "AREA"
    GLOBAL: Final[str] = "GLOBAL"

    ALL: Final[list[str]] = [DOCUMENTO, USUARIO, AREA, GLOBAL]


class TrazabilidadAction:
    """Ledger entry actions (Register / Update / Derive)."""

    REGISTRO: Final[str] = "REGISTRO"
    ACTUALIZACION: Final[str] = "ACTUALIZACION"
    DERIVACION: Final[str] = "DERIVACION"

    ALL: Final[list[str]] = [REGISTRO, ACTUALIZACION, DERIVACION]


# =============================================================================
# Document State Machine
# =============================================================================

DOCUMENT_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    DocumentState.REGISTRADO: frozenset({DocumentState.EN_PROCESO, DocumentState.CANCELADO}),
    DocumentState.EN_PROCESO: frozenset({
        DocumentState.OBSERVADO,
        DocumentState.FINALIZADO,
        DocumentState.CANCELADO,
    }),
    DocumentState.OBSERVADO: frozenset({DocumentState.EN_PROCESO}),
    DocumentState.FINALIZADO: frozenset({DocumentState.ARCHIVADO}),
    DocumentState.ARCHIVADO: frozenset(),  # Terminal state
    DocumentState.CANCELADO: frozenset(),  # Terminal state
}


def validate_document_state(state: str) -> bool:
    """Validate that a document state is known."""
    return state in DocumentState.ALL


def validate_document_transition(current_state: str, new_state: str) -> bool:
    """
    Validate that a document state transition is a legal edge.

    Returns True if transition is valid, False otherwise.
    """
    return new_state in DOCUMENT_TRANSITIONS.get(current_state, frozenset())


def is_terminal_state(state: str) -> bool:
    """Check whether a document state accepts no further edits or derivations."""
    return state in DocumentState.TERMINAL


# =============================================================================
# Validation Limits
# =============================================================================


class Limits:
    """Validation limits."""

    # Permission masks
    MIN_MASK: Final[int] = 0
    MAX_MASK: Final[int] = 255
    MIN_BIT: Final[int] = 0
    MAX_BIT: Final[int] = 7

    # String lengths
    MAX_CODE_LENGTH: Final[int] = 50
    MAX_SUBJECT_LENGTH: Final[int] = 500
    MAX_CONTENT_LENGTH: Final[int] = 10000
    MAX_OBSERVATIONS_LENGTH: Final[int] = 2000
    MAX_SEARCH_TERM_LENGTH: Final[int] = 100

    # Pagination
    DEFAULT_PAGE_SIZE: Final[int] = 10
    MAX_PAGE_SIZE: Final[int] = 200
    MAX_EXPORT_ROWS: Final[int] = 5000
