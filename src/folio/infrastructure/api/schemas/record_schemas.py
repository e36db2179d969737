"""Pydantic schemas for record endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from folio.infrastructure.persistence.models import RecordModel


class RecordResponse(BaseModel):
    """Response for a created or updated record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Record ID (UUID)")
    collection_id: str = Field(..., alias="collectionId")
    data: dict[str, Any] = Field(..., description="Field slug -> value")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    created_by: str | None = Field(None, alias="createdBy")
    updated_by: str | None = Field(None, alias="updatedBy")

    @classmethod
    def from_model(cls, record: RecordModel) -> "RecordResponse":
        return cls(
            id=record.id,
            collection_id=record.collection_id,
            data=dict(record.data or {}),
            created_at=record.created_at,
            updated_at=record.updated_at,
            created_by=record.created_by,
            updated_by=record.updated_by,
        )
