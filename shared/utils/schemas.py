"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.config.constants import Limits


# =============================================================================
# Common Types
# =============================================================================

DocumentStateName = Literal[
    "REGISTRADO", "EN_PROCESO", "OBSERVADO", "FINALIZADO", "ARCHIVADO", "CANCELADO"
]
PriorityName = Literal["BAJA", "NORMAL", "ALTA", "URGENTE"]
ResourceTypeName = Literal["DOCUMENTO", "USUARIO", "AREA", "GLOBAL"]
ConditionName = Literal["PROPIETARIO", "MISMA_AREA", "ASIGNADO", "SUPERVISOR"]
TrazabilidadActionName = Literal["REGISTRO", "ACTUALIZACION", "DERIVACION"]


# =============================================================================
# Document Schemas
# =============================================================================


class DocumentCreate(BaseModel):
    """Registration of a new document at intake (Mesa de Partes)."""

    model_config = ConfigDict(extra="forbid")

    # Generated as <prefix>-<year>-<random suffix> when omitted
    code: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_CODE_LENGTH)
    subject: str = Field(min_length=1, max_length=Limits.MAX_SUBJECT_LENGTH)
    oficio_number: str | None = Field(default=None, max_length=Limits.MAX_CODE_LENGTH)
    document_date: datetime | None = None
    origin: str | None = Field(default=None, max_length=Limits.MAX_SUBJECT_LENGTH)
    content: str | None = Field(default=None, max_length=Limits.MAX_CONTENT_LENGTH)
    observations: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)
    priority: PriorityName = "NORMAL"
    origin_area_id: int
    destination_area_id: int | None = None
    assignee_id: int | None = None

    @field_validator("subject")
    @classmethod
    def subject_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("El asunto no puede estar vacío")
        return value.strip()


class DocumentUpdate(BaseModel):
    """Partial update of descriptive fields. State and area change elsewhere."""

    model_config = ConfigDict(extra="forbid")

    subject: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_SUBJECT_LENGTH)
    oficio_number: str | None = Field(default=None, max_length=Limits.MAX_CODE_LENGTH)
    document_date: datetime | None = None
    origin: str | None = Field(default=None, max_length=Limits.MAX_SUBJECT_LENGTH)
    content: str | None = Field(default=None, max_length=Limits.MAX_CONTENT_LENGTH)
    observations: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)
    priority: PriorityName | None = None
    assignee_id: int | None = None


class StatusChangeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    state: DocumentStateName
    observations: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)
    assignee_id: int | None = None


class DeriveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    destination_area_id: int
    observations: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)
    urgent: bool = False
    reason: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)


class DocumentOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    subject: str
    oficio_number: str | None = None
    document_date: datetime | None = None
    origin: str | None = None
    content: str | None = None
    observations: str | None = None
    priority: str
    state: str
    current_area_id: int
    creator_id: int
    assignee_id: int | None = None
    created_at: datetime
    updated_at: datetime | None = None
    finalized_at: datetime | None = None
    is_active: bool
    deleted_at: datetime | None = None
    version: int


class TrazabilidadOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_id: int
    document_code: str
    action: TrazabilidadActionName
    origin_area_id: int | None = None
    destination_area_id: int | None = None
    previous_state: str | None = None
    new_state: str | None = None
    observations: str | None = None
    reason: str | None = None
    urgent: bool
    actor_id: int
    created_at: datetime


# =============================================================================
# Permission Schemas
# =============================================================================


class PermissionBitOutput(BaseModel):
    bit: int
    name: str
    value: int
    description: str


class ContextualRuleCreate(BaseModel):
    """Validated at write time: unknown conditions never reach the store."""

    model_config = ConfigDict(extra="forbid")

    role_id: int
    area_id: int
    resource_type: ResourceTypeName
    condition: ConditionName
    action_bit: int = Field(ge=0, le=7)
    description: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)


class ContextualRuleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role_id: int | None = None
    area_id: int | None = None
    resource_type: ResourceTypeName | None = None
    condition: ConditionName | None = None
    action_bit: int | None = Field(default=None, ge=0, le=7)
    description: str | None = Field(default=None, max_length=Limits.MAX_OBSERVATIONS_LENGTH)
    is_active: bool | None = None


class ContextualRuleOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role_id: int
    area_id: int
    resource_type: str
    condition: str
    action_bit: int
    description: str | None = None
    is_active: bool
    created_at: datetime


class UserPermissionsOutput(BaseModel):
    user_id: int
    role: str
    area_id: int
    mask: int
    is_admin: bool
    bits: list[PermissionBitOutput]
    contextual_rules: list[ContextualRuleOutput]


class VerifyPermissionRequest(BaseModel):
    """Dry-run of a decision for the calling user."""

    model_config = ConfigDict(extra="forbid")

    action_bit: int = Field(ge=0, le=7)
    resource_type: ResourceTypeName = "DOCUMENTO"
    document_id: int | None = None


class DecisionOutput(BaseModel):
    allowed: bool
    reason_code: str
    required_bit: int
    rule_id: int | None = None
    evaluated_rule_ids: list[int] = []
