"""Collection and field entities.

Collections are user-defined, table-like containers scoped to a workspace.
Their schema is itself data: a list of typed ``Field`` definitions that the
record validator and the query compiler read at runtime.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FieldType(str, Enum):
    """Supported field types for collection schemas."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    RELATION = "relation"
    JSON = "json"


@dataclass(frozen=True)
class Field:
    """A single typed column definition within a collection.

    ``field_type`` is kept as the raw stored string so that types added
    later by the CRUD layer pass through untouched; use ``type`` to get the
    enum member (``None`` when the type is not known to this version).

    Attributes:
        id: Field ID.
        collection_id: Owning collection ID.
        slug: Identifier unique within the collection.
        name: Display name.
        field_type: Stored type string (see ``FieldType``).
        is_required: Whether a value must be supplied on create.
        is_unique: Whether values must be unique within the collection.
        default_value: Value applied on create when none is supplied.
        options: Type-specific options (minLength, maxLength, pattern, min,
            max, choices, relatedCollectionId, ...).
        sort_order: Display ordering.
    """

    id: str
    collection_id: str
    slug: str
    name: str
    field_type: str
    is_required: bool = False
    is_unique: bool = False
    default_value: Any = None
    options: dict[str, Any] = field(default_factory=dict)
    sort_order: int = 0

    @property
    def type(self) -> FieldType | None:
        try:
            return FieldType(self.field_type.lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Collection:
    """Collection entity representing a dynamic record container.

    Attributes:
        id: Collection ID.
        workspace_id: Owning workspace ID.
        slug: Identifier unique within the workspace.
        name: Display name.
        version: Incremented on every mutating update.
        is_active: Whether the collection is active.
    """

    id: str
    workspace_id: str
    slug: str
    name: str
    version: int = 1
    is_active: bool = True
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
