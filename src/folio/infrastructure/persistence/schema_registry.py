"""Schema registry: the read model of collection field definitions.

Reads collections and fields from the database and keeps field lists in the
shared ``SchemaCache``. The query compiler never talks to the registry
directly; it receives a ``SchemaSnapshot`` built here for one request.
"""

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.logging import get_logger
from folio.domain.entities.collection import Field
from folio.domain.services.schema_cache import SchemaCache
from folio.domain.services.schema_snapshot import SchemaSnapshot
from folio.infrastructure.persistence.repositories.collection_repository import (
    CollectionRepository,
    FieldRepository,
    to_collection,
    to_field,
)

logger = get_logger(__name__)


class SchemaRegistry:
    """Cached access to collection schemas of a workspace."""

    def __init__(self, session: AsyncSession, cache: SchemaCache | None = None) -> None:
        """Initialize the registry.

        Args:
            session: SQLAlchemy async session.
            cache: Shared schema cache; without one every lookup hits the database.
        """
        self.session = session
        self.cache = cache
        self.collection_repo = CollectionRepository(session, cache)
        self.field_repo = FieldRepository(session, cache)

    async def fields_for(self, workspace_id: str, collection_id: str) -> tuple[Field, ...]:
        """Get the fields of one collection, from the cache when possible.

        Returns an empty tuple when the collection does not belong to the
        workspace.
        """
        if self.cache:
            cached = self.cache.get(workspace_id, collection_id)
            if cached is not None:
                return cached

        collection = await self.collection_repo.get_by_id(workspace_id, collection_id)
        if collection is None:
            return ()

        fields = tuple(
            to_field(model) for model in await self.field_repo.list_for_collection(collection_id)
        )
        if self.cache:
            self.cache.set(workspace_id, collection_id, fields)
        return fields

    async def snapshot(self, workspace_id: str, slugs: Iterable[str]) -> SchemaSnapshot:
        """Build a snapshot of the named active collections of a workspace.

        Collections are always read fresh; only their fields come from the
        cache. Unknown slugs are simply absent from the snapshot.

        Args:
            workspace_id: The workspace ID.
            slugs: Collection slugs a config refers to.

        Returns:
            Immutable snapshot for the compiler.
        """
        models = await self.collection_repo.list_by_slugs(workspace_id, slugs)
        collections = [to_collection(model) for model in models]

        fields: list[Field] = []
        missing: list[str] = []
        for collection in collections:
            cached = self.cache.get(workspace_id, collection.id) if self.cache else None
            if cached is None:
                missing.append(collection.id)
            else:
                fields.extend(cached)

        if missing:
            loaded: dict[str, list[Field]] = {collection_id: [] for collection_id in missing}
            for model in await self.field_repo.list_for_collections(missing):
                loaded[model.collection_id].append(to_field(model))
            for collection_id, collection_fields in loaded.items():
                if self.cache:
                    self.cache.set(workspace_id, collection_id, tuple(collection_fields))
                fields.extend(collection_fields)

        logger.debug(
            "Schema snapshot built",
            workspace_id=workspace_id,
            collections=[c.slug for c in collections],
            cache_misses=len(missing),
        )
        return SchemaSnapshot(workspace_id, collections, fields)
