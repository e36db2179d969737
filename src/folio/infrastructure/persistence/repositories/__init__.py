"""Persistence repositories for database operations."""

from folio.infrastructure.persistence.repositories.collection_repository import (
    CollectionRepository,
    FieldRepository,
)
from folio.infrastructure.persistence.repositories.composition_repository import (
    CompositionRepository,
)
from folio.infrastructure.persistence.repositories.record_repository import (
    RecordRepository,
)
from folio.infrastructure.persistence.repositories.workspace_repository import (
    WorkspaceRepository,
)

__all__ = [
    "CollectionRepository",
    "CompositionRepository",
    "FieldRepository",
    "RecordRepository",
    "WorkspaceRepository",
]
