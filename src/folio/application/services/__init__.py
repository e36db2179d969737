"""Application services for Folio."""

from folio.application.services.composition_service import CompositionService, PreviewResult
from folio.application.services.record_service import RecordService

__all__ = ["CompositionService", "PreviewResult", "RecordService"]
