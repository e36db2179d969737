"""Composition service.

Orchestrates the composition pipeline for one request:

    resolve workspace -> access gate -> schema snapshot -> compile
    -> bind params -> execute

and the management operations that persist compositions. Configs are always
compiled against the current schema before they are saved, so a stored
composition referred to existing collections and fields when it was written.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.config import Settings, get_settings
from folio.core.exceptions import ConflictError, FolioError, NotFoundError
from folio.core.logging import get_logger
from folio.core.query.binding import wrap_query_string_params
from folio.core.query.compiler import QueryCompiler
from folio.core.query.config import CompositionConfig, load_config
from folio.core.query.exceptions import CompilationError
from folio.core.query.plan import QueryPlan
from folio.domain.entities.composition import AccessLevel, Composition
from folio.domain.services.access_gate import evaluate_access, raise_for_decision
from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.persistence.models import CompositionModel
from folio.infrastructure.persistence.query_executor import ExecutionResult, QueryExecutor
from folio.infrastructure.persistence.repositories import (
    CompositionRepository,
    WorkspaceRepository,
)
from folio.infrastructure.persistence.repositories.composition_repository import to_composition
from folio.infrastructure.persistence.schema_registry import SchemaRegistry

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("slug", "name", "description", "config", "access_level", "is_active")


@dataclass
class PreviewResult:
    """Outcome of a preview run; failures are data, not exceptions.

    Attributes:
        success: Whether the config compiled and executed.
        result: Execution result on success.
        error: ``{message, field?, details?}`` on failure.
    """

    success: bool
    result: ExecutionResult | None = None
    error: dict[str, Any] | None = field(default=None)


class CompositionService:
    """Service for executing, previewing and managing compositions."""

    def __init__(
        self,
        session: AsyncSession,
        schema_cache: SchemaCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
            schema_cache: Shared schema cache.
            settings: Settings to use; defaults to the application settings.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.registry = SchemaRegistry(session, schema_cache)
        self.compositions = CompositionRepository(session)
        self.workspaces = WorkspaceRepository(session)
        self.compiler = QueryCompiler(self.settings.composition_max_limit)
        self.executor = QueryExecutor(
            session, timeout_seconds=self.settings.composition_timeout_seconds
        )

    async def compile_config(
        self, workspace_id: str, config: CompositionConfig | dict[str, Any]
    ) -> QueryPlan:
        """Compile a config against the current schema of a workspace.

        Raises:
            CompilationError: If the config is malformed or does not resolve.
        """
        config = load_config(config)
        slugs = {config.from_} | {join.collection for join in config.joins}
        snapshot = await self.registry.snapshot(workspace_id, slugs)
        return self.compiler.compile(config, workspace_id, snapshot)

    async def execute_public(
        self,
        workspace_slug: str,
        composition_slug: str,
        params: dict[str, Any],
        is_authenticated: bool,
        from_query_string: bool = False,
    ) -> ExecutionResult:
        """Execute a saved composition on the public path.

        Args:
            workspace_slug: Slug of the owning workspace.
            composition_slug: Slug of the composition.
            params: Runtime values for the composition's named params.
            is_authenticated: Whether the caller presented a valid session.
            from_query_string: Params came from a query string, so a single
                value for an ``in`` param stands for a one-element list.

        Returns:
            The execution result.

        Raises:
            NotFoundError: Unknown or inactive workspace/composition.
            UnauthorizedError: Internal composition without a session.
            ForbiddenError: Private composition.
            CompilationError: Stored config no longer matches the schema.
            RuntimeParamError: Missing or invalid params.
            ExecutionError: Storage failure.
        """
        composition: CompositionModel | None = None
        workspace = await self.workspaces.get_by_slug(workspace_slug)
        if workspace is not None and workspace.is_active:
            composition = await self.compositions.get_by_slug(workspace.id, composition_slug)

        decision = evaluate_access(
            access_level=composition.access_level if composition else None,
            is_authenticated=is_authenticated,
            exists=composition is not None,
            is_active=composition.is_active if composition else False,
        )
        if not decision.allowed:
            logger.info(
                "Composition access denied",
                workspace_slug=workspace_slug,
                composition_slug=composition_slug,
                status_code=decision.status_code,
            )
        raise_for_decision(decision)

        plan = await self.compile_config(workspace.id, composition.config)
        if from_query_string:
            params = wrap_query_string_params(plan, params)
        return await self.executor.execute(plan, params, composition_id=composition.id)

    async def preview(
        self,
        workspace_id: str,
        config: Any,
        params: dict[str, Any] | None = None,
    ) -> PreviewResult:
        """Compile and run an unsaved config.

        Args:
            workspace_id: Workspace of the calling member.
            config: Raw config payload.
            params: Runtime values for the config's named params.

        Returns:
            PreviewResult; errors are reported in the result, never raised.
        """
        try:
            plan = await self.compile_config(workspace_id, config)
            result = await self.executor.execute(plan, params or {})
        except CompilationError as e:
            first = e.errors[0] if e.errors else None
            error: dict[str, Any] = {"message": e.message, "details": e.details}
            if first is not None:
                error["field"] = first.field
            return PreviewResult(success=False, error=error)
        except FolioError as e:
            error = {"message": e.message}
            if e.details is not None:
                error["details"] = e.details
            return PreviewResult(success=False, error=error)

        return PreviewResult(success=True, result=result)

    async def create(
        self,
        workspace_id: str,
        slug: str,
        name: str,
        config: dict[str, Any],
        access_level: AccessLevel = AccessLevel.PRIVATE,
        is_active: bool = True,
        description: str | None = None,
        created_by: str | None = None,
    ) -> Composition:
        """Create a composition after compiling its config.

        Raises:
            ConflictError: If the slug is taken in the workspace.
            CompilationError: If the config does not compile.
        """
        if await self.compositions.slug_exists(workspace_id, slug):
            raise ConflictError(f"Composition with slug '{slug}' already exists")

        parsed = load_config(config)
        await self.compile_config(workspace_id, parsed)

        model = CompositionModel(
            id=str(uuid.uuid4()),
            workspace_id=workspace_id,
            slug=slug,
            name=name,
            description=description,
            config=parsed.to_json(),
            access_level=AccessLevel(access_level).value,
            is_active=is_active,
            created_by=created_by,
        )
        await self.compositions.create(model)

        logger.info(
            "Composition created",
            composition_id=model.id,
            workspace_id=workspace_id,
            slug=slug,
        )
        return to_composition(model)

    async def _get_model(self, workspace_id: str, composition_id: str) -> CompositionModel:
        model = await self.compositions.get_by_id(workspace_id, composition_id)
        if model is None:
            raise NotFoundError("Composition not found")
        return model

    async def get(self, workspace_id: str, composition_id: str) -> Composition:
        return to_composition(await self._get_model(workspace_id, composition_id))

    async def get_by_slug(self, workspace_id: str, slug: str) -> Composition:
        model = await self.compositions.get_by_slug(workspace_id, slug)
        if model is None:
            raise NotFoundError("Composition not found")
        return to_composition(model)

    async def list(self, workspace_id: str, skip: int = 0, limit: int = 100) -> list[Composition]:
        models = await self.compositions.list(workspace_id, skip=skip, limit=limit)
        return [to_composition(model) for model in models]

    async def update(
        self, workspace_id: str, composition_id: str, changes: dict[str, Any]
    ) -> Composition:
        """Apply changes to a composition; a new config replaces the old one whole.

        Raises:
            NotFoundError: If the composition does not exist in the workspace.
            ConflictError: If the new slug is taken.
            CompilationError: If the new config does not compile.
        """
        model = await self._get_model(workspace_id, composition_id)
        changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}

        new_slug = changes.get("slug")
        if new_slug and new_slug != model.slug:
            if await self.compositions.slug_exists(workspace_id, new_slug, exclude_id=model.id):
                raise ConflictError(f"Composition with slug '{new_slug}' already exists")

        if "config" in changes:
            parsed = load_config(changes["config"])
            await self.compile_config(workspace_id, parsed)
            changes["config"] = parsed.to_json()

        if "access_level" in changes:
            changes["access_level"] = AccessLevel(changes["access_level"]).value

        for key, value in changes.items():
            if value is None and key != "description":
                continue
            setattr(model, key, value)

        await self.compositions.update(model)
        logger.info(
            "Composition updated",
            composition_id=model.id,
            workspace_id=workspace_id,
            fields=sorted(changes),
        )
        return to_composition(model)

    async def delete(self, workspace_id: str, composition_id: str) -> None:
        model = await self._get_model(workspace_id, composition_id)
        await self.compositions.delete(model)
        logger.info("Composition deleted", composition_id=composition_id, workspace_id=workspace_id)
