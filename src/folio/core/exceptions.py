"""Error taxonomy for Folio.

Every error that should reach an HTTP caller derives from ``FolioError`` and
carries a machine-readable code, a message, an HTTP status and optional
details. The API layer renders them as ``{"error": {code, message, details}}``.
"""

from typing import Any


class FolioError(Exception):
    """Base class for all errors surfaced to callers."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Render the error body used by the JSON error envelope."""
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailedError(FolioError):
    """Raised when a record payload fails schema validation."""

    code = "VALIDATION_ERROR"
    status_code = 400


class RuntimeParamError(FolioError):
    """Raised when a named filter param is missing or unusable at execution time."""

    code = "INVALID_PARAMS"
    status_code = 400


class NotFoundError(FolioError):
    """Raised when an entity is missing, inactive or outside the workspace."""

    code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(FolioError):
    """Raised when an authenticated session is required but absent."""

    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenError(FolioError):
    """Raised when the caller may not invoke the resource at all."""

    code = "FORBIDDEN"
    status_code = 403


class ConflictError(FolioError):
    """Raised when a slug is already taken."""

    code = "ALREADY_EXISTS"
    status_code = 409


class ExecutionError(FolioError):
    """Raised when the storage round-trip fails.

    The message is always generic; the underlying cause is logged, never
    returned to the caller.
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "Failed to execute composition") -> None:
        super().__init__(message)
