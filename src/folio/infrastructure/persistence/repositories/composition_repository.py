"""Repository for composition database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.domain.entities.composition import AccessLevel, Composition
from folio.infrastructure.persistence.models import CompositionModel


def to_composition(model: CompositionModel) -> Composition:
    try:
        access_level = AccessLevel(model.access_level)
    except ValueError:
        access_level = AccessLevel.PRIVATE
    return Composition(
        id=model.id,
        workspace_id=model.workspace_id,
        slug=model.slug,
        name=model.name,
        config=dict(model.config or {}),
        access_level=access_level,
        is_active=model.is_active,
        description=model.description,
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class CompositionRepository:
    """Repository for composition database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, composition: CompositionModel) -> CompositionModel:
        """Create a new composition.

        Args:
            composition: The composition model to create.

        Returns:
            The created composition model.
        """
        self.session.add(composition)
        await self.session.flush()
        return composition

    async def get_by_id(self, workspace_id: str, composition_id: str) -> CompositionModel | None:
        """Get a composition of a workspace by ID.

        Args:
            workspace_id: The workspace ID.
            composition_id: The composition ID.

        Returns:
            The composition model if found, None otherwise.
        """
        result = await self.session.execute(
            select(CompositionModel).where(
                (CompositionModel.workspace_id == workspace_id)
                & (CompositionModel.id == composition_id)
            )
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, workspace_id: str, slug: str) -> CompositionModel | None:
        """Get a composition of a workspace by slug.

        Args:
            workspace_id: The workspace ID.
            slug: The composition slug.

        Returns:
            The composition model if found, None otherwise.
        """
        result = await self.session.execute(
            select(CompositionModel).where(
                (CompositionModel.workspace_id == workspace_id)
                & (CompositionModel.slug == slug)
            )
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, workspace_id: str, slug: str, exclude_id: str | None = None) -> bool:
        """Check if a slug is already used in a workspace.

        Args:
            workspace_id: The workspace ID.
            slug: The slug to check.
            exclude_id: Composition ID to ignore (the one being updated).

        Returns:
            True if the slug is taken, False otherwise.
        """
        query = select(CompositionModel.id).where(
            (CompositionModel.workspace_id == workspace_id) & (CompositionModel.slug == slug)
        )
        if exclude_id is not None:
            query = query.where(CompositionModel.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list(self, workspace_id: str, skip: int = 0, limit: int = 100) -> list[CompositionModel]:
        """List compositions of a workspace.

        Args:
            workspace_id: The workspace ID.
            skip: Number of compositions to skip.
            limit: Maximum number of compositions to return.

        Returns:
            List of composition models, ordered by slug.
        """
        result = await self.session.execute(
            select(CompositionModel)
            .where(CompositionModel.workspace_id == workspace_id)
            .order_by(CompositionModel.slug)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update(self, composition: CompositionModel) -> CompositionModel:
        if composition not in self.session:
            self.session.add(composition)
        await self.session.flush()
        return composition

    async def delete(self, composition: CompositionModel) -> None:
        await self.session.delete(composition)
        await self.session.flush()
