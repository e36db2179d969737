"""Records API routes.

Provides endpoints for writing records of a collection. Every payload is
validated against the collection's current fields.
"""

from typing import Any

from fastapi import APIRouter, status

from folio.application.services.record_service import RecordService
from folio.core.logging import get_logger
from folio.infrastructure.api.dependencies import SchemaCacheDep, SessionDep, WorkspaceMember
from folio.infrastructure.api.schemas import ErrorResponse, RecordResponse

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/{collection_slug}/records",
    status_code=status.HTTP_201_CREATED,
    response_model=RecordResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Authentication required"},
        403: {"model": ErrorResponse, "description": "Not a workspace member"},
        404: {"model": ErrorResponse, "description": "Collection not found"},
    },
)
async def create_record(
    workspace_id: str,
    collection_slug: str,
    data: dict[str, Any],
    current_user: WorkspaceMember,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
) -> RecordResponse:
    """Create a new record in a collection.

    Validates the request data against the collection's fields and
    auto-generates a record ID.
    """
    service = RecordService(session, schema_cache)
    record = await service.create_record(
        workspace_id, collection_slug, data, created_by=current_user.user_id
    )
    await session.commit()
    await session.refresh(record)

    logger.info(
        "Record created",
        record_id=record.id,
        collection=collection_slug,
        user_id=current_user.user_id,
    )
    return RecordResponse.from_model(record)


@router.patch(
    "/{collection_slug}/records/{record_id}",
    response_model=RecordResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Authentication required"},
        403: {"model": ErrorResponse, "description": "Not a workspace member"},
        404: {"model": ErrorResponse, "description": "Collection or record not found"},
    },
)
async def update_record(
    workspace_id: str,
    collection_slug: str,
    record_id: str,
    data: dict[str, Any],
    current_user: WorkspaceMember,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
) -> RecordResponse:
    """Partially update a record.

    Only the keys present in the body are validated and changed; an
    explicit null clears a field.
    """
    service = RecordService(session, schema_cache)
    record = await service.update_record(
        workspace_id, collection_slug, record_id, data, updated_by=current_user.user_id
    )
    await session.commit()
    await session.refresh(record)

    logger.info(
        "Record updated",
        record_id=record.id,
        collection=collection_slug,
        user_id=current_user.user_id,
    )
    return RecordResponse.from_model(record)
