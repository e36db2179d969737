"""Repository for collection and field operations.

Every mutation of a collection or its fields bumps the collection version
and drops the collection's cached schema.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.logging import get_logger
from folio.domain.entities.collection import Collection, Field
from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.persistence.models import CollectionModel, FieldModel

logger = get_logger(__name__)


def to_collection(model: CollectionModel) -> Collection:
    return Collection(
        id=model.id,
        workspace_id=model.workspace_id,
        slug=model.slug,
        name=model.name,
        version=model.version,
        is_active=model.is_active,
        description=model.description,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_field(model: FieldModel) -> Field:
    return Field(
        id=model.id,
        collection_id=model.collection_id,
        slug=model.slug,
        name=model.name,
        field_type=model.field_type,
        is_required=model.is_required,
        is_unique=model.is_unique,
        default_value=model.default_value,
        options=dict(model.options or {}),
        sort_order=model.sort_order,
    )


class CollectionRepository:
    """Repository for collection database operations."""

    def __init__(self, session: AsyncSession, schema_cache: SchemaCache | None = None) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
            schema_cache: Optional schema cache for invalidation.
        """
        self.session = session
        self.schema_cache = schema_cache

    def _invalidate(self, collection: CollectionModel) -> None:
        if self.schema_cache:
            self.schema_cache.invalidate_collection(collection.workspace_id, collection.id)

    async def create(self, collection: CollectionModel) -> CollectionModel:
        """Create a new collection.

        Args:
            collection: The collection model to create.

        Returns:
            The created collection model.
        """
        self.session.add(collection)
        await self.session.flush()
        return collection

    async def get_by_id(self, workspace_id: str, collection_id: str) -> CollectionModel | None:
        """Get a collection of a workspace by ID.

        Args:
            workspace_id: The workspace ID.
            collection_id: The collection ID.

        Returns:
            The collection model if found, None otherwise.
        """
        result = await self.session.execute(
            select(CollectionModel).where(
                (CollectionModel.workspace_id == workspace_id)
                & (CollectionModel.id == collection_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, workspace_id: str, slug: str) -> CollectionModel | None:
        """Get a collection of a workspace by slug.

        Args:
            workspace_id: The workspace ID.
            slug: The collection slug.

        Returns:
            The collection model if found, None otherwise.
        """
        result = await self.session.execute(
            select(CollectionModel).where(
                (CollectionModel.workspace_id == workspace_id) & (CollectionModel.slug == slug)
            )
        )
        return result.scalar_one_or_none()

    async def list_by_slugs(
        self, workspace_id: str, slugs: Iterable[str]
    ) -> list[CollectionModel]:
        """Get the active collections of a workspace with the given slugs."""
        slugs = list(set(slugs))
        if not slugs:
            return []
        result = await self.session.execute(
            select(CollectionModel)
            .where(
                (CollectionModel.workspace_id == workspace_id)
                & (CollectionModel.slug.in_(slugs))
                & (CollectionModel.is_active.is_(True))
            )
            .order_by(CollectionModel.slug)
        )
        return list(result.scalars().all())

    async def update(self, collection: CollectionModel) -> CollectionModel:
        """Persist changes to a collection and bump its version.

        Args:
            collection: Collection model to update.

        Returns:
            Updated collection model.
        """
        if collection not in self.session:
            self.session.add(collection)
        collection.version = (collection.version or 0) + 1
        await self.session.flush()
        self._invalidate(collection)
        logger.debug(
            "Collection updated",
            collection_id=collection.id,
            version=collection.version,
        )
        return collection


class FieldRepository:
    """Repository for field database operations."""

    def __init__(self, session: AsyncSession, schema_cache: SchemaCache | None = None) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
            schema_cache: Optional schema cache for invalidation.
        """
        self.session = session
        self.schema_cache = schema_cache

    async def _touch_collection(self, collection_id: str) -> None:
        """Bump the owning collection's version and drop its cached schema."""
        collection = await self.session.get(CollectionModel, collection_id)
        if collection is None:
            return
        collection.version = (collection.version or 0) + 1
        await self.session.flush()
        if self.schema_cache:
            self.schema_cache.invalidate_collection(collection.workspace_id, collection.id)

    async def create(self, field: FieldModel) -> FieldModel:
        """Add a field to a collection.

        Args:
            field: The field model to create.

        Returns:
            The created field model.
        """
        self.session.add(field)
        await self.session.flush()
        await self._touch_collection(field.collection_id)
        return field

    async def list_for_collection(self, collection_id: str) -> list[FieldModel]:
        """List the fields of a collection in display order."""
        result = await self.session.execute(
            select(FieldModel)
            .where(FieldModel.collection_id == collection_id)
            .order_by(FieldModel.sort_order, FieldModel.slug)
        )
        return list(result.scalars().all())

    async def list_for_collections(self, collection_ids: Iterable[str]) -> list[FieldModel]:
        collection_ids = list(set(collection_ids))
        if not collection_ids:
            return []
        result = await self.session.execute(
            select(FieldModel)
            .where(FieldModel.collection_id.in_(collection_ids))
            .order_by(FieldModel.collection_id, FieldModel.sort_order, FieldModel.slug)
        )
        return list(result.scalars().all())
