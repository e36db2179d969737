"""FastAPI dependencies for authentication and shared services.

Provides dependencies for extracting and validating JWT tokens from requests,
checking workspace membership and reaching the shared schema cache.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.config import get_settings
from folio.core.exceptions import ForbiddenError, UnauthorizedError
from folio.core.logging import get_logger
from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.auth import InvalidTokenError, TokenExpiredError, jwt_service
from folio.infrastructure.persistence.database import get_db_session

logger = get_logger(__name__)

_fallback_schema_cache: SchemaCache | None = None


@dataclass
class CurrentUser:
    """Represents the current authenticated user context.

    Extracted from a valid JWT access token.
    """

    user_id: str
    workspace_id: str
    email: str


def _user_from_header(authorization: str) -> CurrentUser:
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.info("Authentication failed: invalid Authorization header format")
        raise UnauthorizedError("Could not validate credentials")

    try:
        payload = jwt_service.validate_access_token(parts[1])
        return CurrentUser(
            user_id=payload["user_id"],
            workspace_id=payload["workspace_id"],
            email=payload["email"],
        )
    except TokenExpiredError:
        logger.info("Authentication failed: token expired")
        raise UnauthorizedError("Token has expired")
    except InvalidTokenError as e:
        logger.info("Authentication failed: invalid token", error=str(e))
        raise UnauthorizedError(f"Invalid token: {e}")
    except KeyError as e:
        logger.warning("Authentication failed: missing claim in token", missing_claim=str(e))
        raise UnauthorizedError(f"Missing claim: {e}")


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Extract and validate the current user from the Authorization header.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired.
    """
    if authorization is None:
        logger.info("Authentication failed: missing Authorization header")
        raise UnauthorizedError("Missing Authorization header")
    return _user_from_header(authorization)


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser | None:
    """Like ``get_current_user`` but returns None when no header is sent.

    A header that is present but invalid is still rejected with 401.
    """
    if authorization is None:
        return None
    return _user_from_header(authorization)


# Type aliases for dependency injection
AuthenticatedUser = Annotated[CurrentUser, Depends(get_current_user)]
OptionalUser = Annotated[CurrentUser | None, Depends(get_optional_user)]


async def require_workspace_member(
    workspace_id: str,
    current_user: AuthenticatedUser,
) -> CurrentUser:
    """Ensure the caller belongs to the workspace named in the path.

    Raises:
        ForbiddenError: If the token was issued for another workspace.
    """
    if current_user.workspace_id != workspace_id:
        logger.info(
            "Workspace access denied",
            user_id=current_user.user_id,
            workspace_id=workspace_id,
        )
        raise ForbiddenError("Not a member of this workspace")
    return current_user


WorkspaceMember = Annotated[CurrentUser, Depends(require_workspace_member)]


def get_schema_cache(request: Request) -> SchemaCache:
    """Get the schema cache from app state, creating a process-wide one if absent."""
    cache = getattr(request.app.state, "schema_cache", None)
    if cache is not None:
        return cache

    global _fallback_schema_cache
    if _fallback_schema_cache is None:
        _fallback_schema_cache = SchemaCache(ttl_seconds=get_settings().schema_cache_ttl_seconds)
    return _fallback_schema_cache


SchemaCacheDep = Annotated[SchemaCache, Depends(get_schema_cache)]
SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
