"""SQLAlchemy models for Folio tables.

All models inherit from the Base class defined in database.py and are
created on application startup in development mode.
"""

from folio.infrastructure.persistence.models.collection import CollectionModel, FieldModel
from folio.infrastructure.persistence.models.composition import CompositionModel
from folio.infrastructure.persistence.models.record import RecordModel
from folio.infrastructure.persistence.models.workspace import WorkspaceModel

__all__ = [
    "CollectionModel",
    "CompositionModel",
    "FieldModel",
    "RecordModel",
    "WorkspaceModel",
]
