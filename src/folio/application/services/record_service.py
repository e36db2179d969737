"""Record service: validated record writes.

Every payload is checked by the ``RecordValidator`` against the collection's
current fields before it reaches the records table.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.exceptions import NotFoundError, ValidationFailedError
from folio.core.logging import get_logger
from folio.domain.services.record_validator import RecordValidator, ValidationResult
from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.persistence.models import CollectionModel, RecordModel
from folio.infrastructure.persistence.repositories import CollectionRepository, RecordRepository
from folio.infrastructure.persistence.schema_registry import SchemaRegistry

logger = get_logger(__name__)


def _raise_for_result(result: ValidationResult, collection_slug: str) -> None:
    if result.valid:
        return
    logger.info(
        "Record validation failed",
        collection=collection_slug,
        error_count=len(result.errors),
    )
    raise ValidationFailedError(
        "Record validation failed",
        details=[
            {"field": error.field, "message": error.message, "code": error.code}
            for error in result.errors
        ],
    )


class RecordService:
    """Service for creating and updating records of a collection."""

    def __init__(self, session: AsyncSession, schema_cache: SchemaCache | None = None) -> None:
        self.session = session
        self.registry = SchemaRegistry(session, schema_cache)
        self.collections = CollectionRepository(session, schema_cache)
        self.records = RecordRepository(session)

    async def _get_collection(self, workspace_id: str, collection_slug: str) -> CollectionModel:
        collection = await self.collections.get_by_slug(workspace_id, collection_slug)
        if collection is None or not collection.is_active:
            raise NotFoundError(f"Collection '{collection_slug}' not found")
        return collection

    async def create_record(
        self,
        workspace_id: str,
        collection_slug: str,
        data: dict[str, Any],
        created_by: str | None = None,
    ) -> RecordModel:
        """Validate a payload and insert it as a new record.

        Raises:
            NotFoundError: If the collection does not exist in the workspace.
            ValidationFailedError: With every field error found.
        """
        collection = await self._get_collection(workspace_id, collection_slug)
        fields = await self.registry.fields_for(workspace_id, collection.id)

        result = RecordValidator.validate(data, fields)
        _raise_for_result(result, collection_slug)

        return await self.records.insert_record(
            workspace_id=workspace_id,
            collection_id=collection.id,
            data=result.normalized,
            created_by=created_by,
        )

    async def update_record(
        self,
        workspace_id: str,
        collection_slug: str,
        record_id: str,
        data: dict[str, Any],
        updated_by: str | None = None,
    ) -> RecordModel:
        """Validate a partial payload and merge it into an existing record.

        Raises:
            NotFoundError: If the collection or record does not exist.
            ValidationFailedError: With every field error found.
        """
        collection = await self._get_collection(workspace_id, collection_slug)
        record = await self.records.get_by_id(workspace_id, collection.id, record_id)
        if record is None:
            raise NotFoundError(f"Record '{record_id}' not found")

        fields = await self.registry.fields_for(workspace_id, collection.id)
        result = RecordValidator.validate(data, fields, is_update=True)
        _raise_for_result(result, collection_slug)

        return await self.records.update_record(record, result.normalized, updated_by=updated_by)
