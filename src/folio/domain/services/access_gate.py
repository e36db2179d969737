"""Access gate for the public composition execution path.

A pure decision over four facts about one request: whether the composition
exists, whether it is active, its access level and whether the caller is
authenticated. Missing and inactive compositions look the same to callers.
"""

from dataclasses import dataclass

from folio.core.exceptions import FolioError, ForbiddenError, NotFoundError, UnauthorizedError
from folio.domain.entities.composition import AccessLevel


@dataclass(frozen=True)
class AccessDecision:
    """Result of an access check.

    Attributes:
        allowed: Whether execution may proceed.
        status_code: HTTP status for the decision (200 when allowed).
        code: Error code when denied, None when allowed.
        message: Error message when denied, None when allowed.
    """

    allowed: bool
    status_code: int
    code: str | None = None
    message: str | None = None


ALLOW = AccessDecision(allowed=True, status_code=200)
NOT_FOUND = AccessDecision(
    allowed=False, status_code=404, code="NOT_FOUND", message="Composition not found"
)
UNAUTHORIZED = AccessDecision(
    allowed=False,
    status_code=401,
    code="UNAUTHORIZED",
    message="Authentication required to access this composition",
)
FORBIDDEN = AccessDecision(
    allowed=False,
    status_code=403,
    code="FORBIDDEN",
    message="This composition is private",
)

DENIAL_ERRORS: dict[int, type[FolioError]] = {
    404: NotFoundError,
    401: UnauthorizedError,
    403: ForbiddenError,
}


def evaluate_access(
    access_level: AccessLevel | str | None,
    is_authenticated: bool,
    exists: bool,
    is_active: bool,
) -> AccessDecision:
    """Decide whether a composition may be executed on the public path.

    An access level this version does not know is treated as private.

    Args:
        access_level: Access tier of the composition (ignored when it does not exist).
        is_authenticated: Whether the caller presented a valid session.
        exists: Whether the composition was found in the workspace.
        is_active: Whether the composition is active.

    Returns:
        The access decision.
    """
    if not exists or not is_active:
        return NOT_FOUND

    try:
        level = AccessLevel(access_level)
    except ValueError:
        level = AccessLevel.PRIVATE

    if level is AccessLevel.PUBLIC:
        return ALLOW
    if level is AccessLevel.INTERNAL:
        return ALLOW if is_authenticated else UNAUTHORIZED
    return FORBIDDEN


def raise_for_decision(decision: AccessDecision) -> None:
    """Raise the error matching a denial; do nothing when access is allowed."""
    if decision.allowed:
        return
    error_cls = DENIAL_ERRORS.get(decision.status_code, ForbiddenError)
    raise error_cls(decision.message or "Access denied")
