"""Domain services for Folio.

Services contain business logic that doesn't naturally fit within a single entity.
They have no dependencies on infrastructure or external frameworks.
"""

from folio.domain.services.access_gate import (
    AccessDecision,
    evaluate_access,
    raise_for_decision,
)
from folio.domain.services.record_validator import FieldError, RecordValidator, ValidationResult
from folio.domain.services.schema_cache import SchemaCache
from folio.domain.services.schema_snapshot import SchemaSnapshot

__all__ = [
    "AccessDecision",
    "FieldError",
    "RecordValidator",
    "SchemaCache",
    "SchemaSnapshot",
    "ValidationResult",
    "evaluate_access",
    "raise_for_decision",
]
