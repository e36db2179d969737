"""Repository for record operations.

Records of every collection share the records table; the repository always
scopes lookups by workspace and collection.
"""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.logging import get_logger
from folio.infrastructure.persistence.database import utcnow
from folio.infrastructure.persistence.models import RecordModel

logger = get_logger(__name__)


class RecordRepository:
    """Repository for record database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def insert_record(
        self,
        workspace_id: str,
        collection_id: str,
        data: dict[str, Any],
        created_by: str | None = None,
        record_id: str | None = None,
    ) -> RecordModel:
        """Insert a new record into a collection.

        Args:
            workspace_id: The owning workspace ID.
            collection_id: The owning collection ID.
            data: The validated record data.
            created_by: The user ID who created the record.
            record_id: Record ID to use; generated when omitted.

        Returns:
            The created record model.
        """
        now = utcnow()
        record = RecordModel(
            id=record_id or str(uuid.uuid4()),
            workspace_id=workspace_id,
            collection_id=collection_id,
            data=data,
            created_at=now,
            updated_at=now,
            created_by=created_by,
            updated_by=created_by,
        )
        self.session.add(record)
        await self.session.flush()

        logger.info(
            "Record inserted successfully",
            record_id=record.id,
            collection_id=collection_id,
            workspace_id=workspace_id,
        )
        return record

    async def get_by_id(
        self, workspace_id: str, collection_id: str, record_id: str
    ) -> RecordModel | None:
        """Get a record by ID within a workspace collection.

        Returns:
            The record model if found, None otherwise.
        """
        result = await self.session.execute(
            select(RecordModel).where(
                (RecordModel.id == record_id)
                & (RecordModel.workspace_id == workspace_id)
                & (RecordModel.collection_id == collection_id)
            )
        )
        return result.scalar_one_or_none()

    async def update_record(
        self,
        record: RecordModel,
        data: dict[str, Any],
        updated_by: str | None = None,
    ) -> RecordModel:
        """Merge validated fields into a record.

        Keys mapped to None are removed from the payload.

        Args:
            record: The record to update.
            data: The validated fields to change.
            updated_by: The user ID performing the update.

        Returns:
            The updated record model.
        """
        merged = dict(record.data or {})
        for key, value in data.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value

        # Reassign so the JSON column is flagged as modified
        record.data = merged
        record.updated_at = utcnow()
        record.updated_by = updated_by
        await self.session.flush()

        logger.info("Record updated successfully", record_id=record.id)
        return record
