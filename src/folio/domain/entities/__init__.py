"""Domain entities for Folio.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from folio.domain.entities.collection import Collection, Field, FieldType
from folio.domain.entities.composition import AccessLevel, Composition

__all__ = [
    "AccessLevel",
    "Collection",
    "Composition",
    "Field",
    "FieldType",
]
