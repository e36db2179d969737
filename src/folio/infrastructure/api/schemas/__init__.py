"""API request and response schemas."""

from folio.infrastructure.api.schemas.composition_schemas import (
    CompositionCreateRequest,
    CompositionListResponse,
    CompositionResponse,
    CompositionUpdateRequest,
    ExecuteRequest,
    ExecutionMetadata,
    ExecutionResponse,
    PreviewError,
    PreviewRequest,
    PreviewResponse,
)
from folio.infrastructure.api.schemas.error_schemas import ErrorBody, ErrorResponse
from folio.infrastructure.api.schemas.record_schemas import RecordResponse

__all__ = [
    "CompositionCreateRequest",
    "CompositionListResponse",
    "CompositionResponse",
    "CompositionUpdateRequest",
    "ErrorBody",
    "ErrorResponse",
    "ExecuteRequest",
    "ExecutionMetadata",
    "ExecutionResponse",
    "PreviewError",
    "PreviewRequest",
    "PreviewResponse",
    "RecordResponse",
]
