"""Exceptions for composition config parsing and compilation."""

from dataclasses import asdict, dataclass

from folio.core.exceptions import FolioError


@dataclass(frozen=True)
class CompileError:
    """A single problem found while compiling a composition config.

    Attributes:
        message: Human-readable description.
        field: Path of the offending config entry (e.g. ``filters[1].field``).
        code: Machine-readable error code.
    """

    message: str
    field: str
    code: str


class CompilationError(FolioError):
    """Raised when a config cannot be compiled into a query plan.

    Always carries the full list of errors found, not just the first one.
    """

    code = "COMPILE_ERROR"
    status_code = 400

    def __init__(self, errors: list[CompileError]) -> None:
        self.errors = list(errors)
        first = self.errors[0].message if self.errors else "Invalid composition config"
        super().__init__(first, details=[asdict(error) for error in self.errors])


class FieldExpressionError(ValueError):
    """Raised when a field expression string cannot be parsed."""
