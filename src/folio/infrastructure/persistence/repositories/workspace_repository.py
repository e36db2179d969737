"""Repository for workspace database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.infrastructure.persistence.models import WorkspaceModel


class WorkspaceRepository:
    """Repository for workspace database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, workspace: WorkspaceModel) -> WorkspaceModel:
        """Create a new workspace.

        Args:
            workspace: The workspace model to create.

        Returns:
            The created workspace model.
        """
        self.session.add(workspace)
        await self.session.flush()
        return workspace

    async def get_by_id(self, workspace_id: str) -> WorkspaceModel | None:
        result = await self.session.execute(
            select(WorkspaceModel).where(WorkspaceModel.id == workspace_id)
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> WorkspaceModel | None:
        """Get a workspace by slug.

        Args:
            slug: The workspace slug.

        Returns:
            The workspace model if found, None otherwise.
        """
        result = await self.session.execute(
            select(WorkspaceModel).where(WorkspaceModel.slug == slug)
        )
        return result.scalar_one_or_none()
