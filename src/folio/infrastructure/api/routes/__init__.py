"""API Routes for Folio."""

from .composition_execute_router import router as composition_execute_router
from .compositions_router import router as compositions_router
from .records_router import router as records_router

__all__ = [
    "composition_execute_router",
    "compositions_router",
    "records_router",
]
