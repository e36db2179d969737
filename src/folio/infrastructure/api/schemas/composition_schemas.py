"""Pydantic schemas for composition endpoints.

Response bodies use camelCase keys (``compositionId``, ``executedAt``,
``accessLevel``...), the shape front-end clients consume.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from folio.domain.entities.composition import AccessLevel, Composition
from folio.infrastructure.persistence.query_executor import ExecutionResult

SLUG_PATTERN = r"^[a-z0-9][a-z0-9_-]*$"


class ExecutionMetadata(BaseModel):
    """Metadata returned alongside composition rows."""

    model_config = ConfigDict(populate_by_name=True)

    count: int = Field(..., description="Number of rows returned")
    composition_id: str | None = Field(
        None, alias="compositionId", description="Executed composition ID (null for previews)"
    )
    executed_at: datetime = Field(..., alias="executedAt", description="Execution time (UTC)")

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "ExecutionMetadata":
        return cls(
            count=result.count,
            composition_id=result.composition_id,
            executed_at=result.executed_at,
        )


class ExecutionResponse(BaseModel):
    """Response for a composition execution."""

    data: list[dict[str, Any]] = Field(..., description="Result rows")
    metadata: ExecutionMetadata

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "ExecutionResponse":
        return cls(data=result.rows, metadata=ExecutionMetadata.from_result(result))


class ExecuteRequest(BaseModel):
    """Request body for executing a composition with body params."""

    params: dict[str, Any] = Field(default_factory=dict, description="Named filter params")


class PreviewRequest(BaseModel):
    """Request body for previewing an unsaved config."""

    config: Any = Field(..., description="Composition config to run")
    params: dict[str, Any] | None = Field(None, description="Named filter params")


class PreviewError(BaseModel):
    message: str = Field(..., description="Human-readable error message")
    field: str | None = Field(None, description="Config path the error refers to")
    details: Any | None = Field(None, description="Every error found, when there are several")


class PreviewResponse(BaseModel):
    """Preview outcome; failures are reported here with HTTP 200."""

    success: bool
    data: list[dict[str, Any]] | None = None
    metadata: ExecutionMetadata | None = None
    error: PreviewError | None = None


class CompositionCreateRequest(BaseModel):
    """Request body for creating a composition."""

    model_config = ConfigDict(populate_by_name=True)

    slug: str = Field(..., min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, description="Optional description")
    config: dict[str, Any] = Field(..., description="Composition config")
    access_level: AccessLevel = Field(AccessLevel.PRIVATE, alias="accessLevel")
    is_active: bool = Field(True, alias="isActive")


class CompositionUpdateRequest(BaseModel):
    """Request body for updating a composition; omitted keys are left unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    slug: str | None = Field(None, min_length=1, max_length=64, pattern=SLUG_PATTERN)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    config: dict[str, Any] | None = Field(None, description="Replaces the whole config")
    access_level: AccessLevel | None = Field(None, alias="accessLevel")
    is_active: bool | None = Field(None, alias="isActive")


class CompositionResponse(BaseModel):
    """Response for a single composition."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    workspace_id: str = Field(..., alias="workspaceId")
    slug: str
    name: str
    description: str | None = None
    config: dict[str, Any]
    access_level: AccessLevel = Field(..., alias="accessLevel")
    is_active: bool = Field(..., alias="isActive")
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")

    @classmethod
    def from_entity(cls, composition: Composition) -> "CompositionResponse":
        return cls(
            id=composition.id,
            workspace_id=composition.workspace_id,
            slug=composition.slug,
            name=composition.name,
            description=composition.description,
            config=composition.config,
            access_level=composition.access_level,
            is_active=composition.is_active,
            created_at=composition.created_at,
            updated_at=composition.updated_at,
        )


class CompositionListResponse(BaseModel):
    """Response for listing compositions."""

    items: list[CompositionResponse]
    total: int
