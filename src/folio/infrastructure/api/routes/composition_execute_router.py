"""Public composition execution routes.

``/c/{workspace_slug}/{composition_slug}`` runs a saved composition. The
composition's access level decides who may call it; query string keys (or
the ``params`` object of a POST body) supply its named filter params.
"""

from typing import Any

from fastapi import APIRouter, Request

from folio.application.services.composition_service import CompositionService
from folio.core.logging import get_logger
from folio.infrastructure.api.dependencies import OptionalUser, SchemaCacheDep, SessionDep
from folio.infrastructure.api.schemas import ErrorResponse, ExecuteRequest, ExecutionResponse

logger = get_logger(__name__)

router = APIRouter()

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid config or params"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Composition is private"},
    404: {"model": ErrorResponse, "description": "Composition not found"},
    500: {"model": ErrorResponse, "description": "Execution failed"},
}


def query_params_to_dict(request: Request) -> dict[str, Any]:
    """Collect query string params; a key given more than once becomes a list.

    A key given once stays a string; the service wraps it into a list when
    the composition binds it with ``in``.
    """
    params: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key in params:
            existing = params[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                params[key] = [existing, value]
        else:
            params[key] = value
    return params


async def _execute(
    workspace_slug: str,
    composition_slug: str,
    params: dict[str, Any],
    is_authenticated: bool,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
    from_query_string: bool = False,
) -> ExecutionResponse:
    service = CompositionService(session, schema_cache)
    result = await service.execute_public(
        workspace_slug=workspace_slug,
        composition_slug=composition_slug,
        params=params,
        is_authenticated=is_authenticated,
        from_query_string=from_query_string,
    )

    logger.info(
        "Composition executed",
        workspace_slug=workspace_slug,
        composition_slug=composition_slug,
        count=result.count,
    )
    return ExecutionResponse.from_result(result)


@router.get(
    "/{workspace_slug}/{composition_slug}",
    response_model=ExecutionResponse,
    responses=ERROR_RESPONSES,
)
async def execute_composition(
    workspace_slug: str,
    composition_slug: str,
    request: Request,
    current_user: OptionalUser,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
) -> ExecutionResponse:
    """Execute a saved composition with params from the query string."""
    return await _execute(
        workspace_slug,
        composition_slug,
        query_params_to_dict(request),
        current_user is not None,
        session,
        schema_cache,
        from_query_string=True,
    )


@router.post(
    "/{workspace_slug}/{composition_slug}",
    response_model=ExecutionResponse,
    responses=ERROR_RESPONSES,
)
async def execute_composition_with_body(
    workspace_slug: str,
    composition_slug: str,
    current_user: OptionalUser,
    session: SessionDep,
    schema_cache: SchemaCacheDep,
    body: ExecuteRequest | None = None,
) -> ExecutionResponse:
    """Execute a saved composition with params from a JSON body.

    Lets callers send typed values (numbers, booleans, lists) that a query
    string can only carry as text.
    """
    params = body.params if body is not None else {}
    return await _execute(
        workspace_slug,
        composition_slug,
        params,
        current_user is not None,
        session,
        schema_cache,
    )
