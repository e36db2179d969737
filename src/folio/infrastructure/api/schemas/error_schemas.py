"""Pydantic schemas for the JSON error envelope."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any | None = Field(None, description="Field-level details, when available")


class ErrorResponse(BaseModel):
    """Body of every error response: ``{"error": {code, message, details?}}``."""

    error: ErrorBody
