"""Composition management routes.

Workspace members create, read, update, delete and preview compositions
under ``/workspaces/{workspace_id}/compositions``. Configs are compiled
against the current schema before they are stored.
"""

from fastapi import APIRouter, Query, status

from folio.application.services.composition_service import CompositionService
from folio.core.logging import get_logger
from folio.infrastructure.api.dependencies import SchemaCacheDep, SessionDep, WorkspaceMember
from folio.infrastructure.api.schemas import (
    CompositionCreateRequest,
    CompositionListResponse,
    CompositionResponse,
    CompositionUpdateRequest,
    ErrorResponse,
    ExecutionMetadata,
    PreviewError,
    PreviewRequest,
    PreviewResponse,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/preview",
    response_model=PreviewResponse,
    response_model_exclude_unset=True,
    responses={
        401: {"model": ErrorResponse, "description": "Authentication required"},
        403: {"model": ErrorResponse, "description": "Not a workspace member"},
    },
)
async def preview_composition(
    workspace_id: str,
    request: PreviewRequest,
    current_user: WorkspaceMember,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
) -> PreviewResponse:
    """Compile and run an unsaved config.

    Always answers 200 once the caller is authorized; compile, param and
    execution failures are reported in the ``error`` member.
    """
    service = CompositionService(session, schema_cache)
    outcome = await service.preview(workspace_id, request.config, request.params)

    if not outcome.success:
        logger.info(
            "Composition preview failed",
            workspace_id=workspace_id,
            user_id=current_user.user_id,
            error=outcome.error.get("message") if outcome.error else None,
        )
        return PreviewResponse(success=False, error=PreviewError(**(outcome.error or {})))

    result = outcome.result
    logger.info(
        "Composition previewed",
        workspace_id=workspace_id,
        user_id=current_user.user_id,
        count=result.count,
    )
    return PreviewResponse(
        success=True,
        data=result.rows,
        metadata=ExecutionMetadata.from_result(result),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CompositionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Config does not compile"},
        401: {"model": ErrorResponse, "description": "Authentication required"},
        403: {"model": ErrorResponse, "description": "Not a workspace member"},
        409: {"model": ErrorResponse, "description": "Slug already exists"},
    },
)
async def create_composition(
    workspace_id: str,
    request: CompositionCreateRequest,
    current_user: WorkspaceMember,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
) -> CompositionResponse:
    """Create a composition after compiling its config."""
    service = CompositionService(session, schema_cache)
    composition = await service.create(
        workspace_id=workspace_id,
        slug=request.slug,
        name=request.name,
        config=request.config,
        access_level=request.access_level,
        is_active=request.is_active,
        description=request.description,
        created_by=current_user.user_id,
    )
    await session.commit()
    return CompositionResponse.from_entity(composition)


@router.get("", response_model=CompositionListResponse)
async def list_compositions(
    workspace_id: str,
    current_user: WorkspaceMember,
    session: SessionDep,
    skip: int = Query(0, ge=0, description="Number of compositions to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum compositions to return"),
) -> CompositionListResponse:
    """List the compositions of a workspace."""
    service = CompositionService(session)
    compositions = await service.list(workspace_id, skip=skip, limit=limit)
    items = [CompositionResponse.from_entity(c) for c in compositions]
    return CompositionListResponse(items=items, total=len(items))


@router.get(
    "/slug/{slug}",
    response_model=CompositionResponse,
    responses={404: {"model": ErrorResponse, "description": "Composition not found"}},
)
async def get_composition_by_slug(
    workspace_id: str,
    slug: str,
    current_user: WorkspaceMember,
    session: SessionDep,
) -> CompositionResponse:
    """Get a composition by slug."""
    service = CompositionService(session)
    return CompositionResponse.from_entity(await service.get_by_slug(workspace_id, slug))


@router.get(
    "/{composition_id}",
    response_model=CompositionResponse,
    responses={404: {"model": ErrorResponse, "description": "Composition not found"}},
)
async def get_composition(
    workspace_id: str,
    composition_id: str,
    current_user: WorkspaceMember,
    session: SessionDep,
) -> CompositionResponse:
    """Get a composition by ID."""
    service = CompositionService(session)
    return CompositionResponse.from_entity(await service.get(workspace_id, composition_id))


@router.patch(
    "/{composition_id}",
    response_model=CompositionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Config does not compile"},
        404: {"model": ErrorResponse, "description": "Composition not found"},
        409: {"model": ErrorResponse, "description": "Slug already exists"},
    },
)
async def update_composition(
    workspace_id: str,
    composition_id: str,
    request: CompositionUpdateRequest,
    current_user: WorkspaceMember,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
) -> CompositionResponse:
    """Update a composition; a new config replaces the stored one whole."""
    service = CompositionService(session, schema_cache)
    composition = await service.update(
        workspace_id, composition_id, request.model_dump(exclude_unset=True)
    )
    await session.commit()
    return CompositionResponse.from_entity(composition)


@router.delete(
    "/{composition_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Composition not found"}},
)
async def delete_composition(
    workspace_id: str,
    composition_id: str,
    current_user: WorkspaceMember,
    session: SessionDep,
) -> None:
    """Delete a composition."""
    service = CompositionService(session)
    await service.delete(workspace_id, composition_id)
    await session.commit()
