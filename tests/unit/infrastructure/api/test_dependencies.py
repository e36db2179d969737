"""Unit tests for API authentication dependencies."""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from folio.core.exceptions import ForbiddenError, UnauthorizedError
from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.api.dependencies import (
    CurrentUser,
    get_current_user,
    get_optional_user,
    get_schema_cache,
    require_workspace_member,
)
from folio.infrastructure.auth import jwt_service


def bearer(**overrides) -> str:
    claims = {"user_id": "user-1", "workspace_id": "ws-1", "email": "a@example.com"}
    claims.update(overrides)
    return f"Bearer {jwt_service.create_access_token(**claims)}"


class TestGetCurrentUser:
    """Test suite for get_current_user."""

    @pytest.mark.asyncio
    async def test_valid_token(self):
        """Test a valid bearer token yields the user context."""
        user = await get_current_user(bearer())
        assert user == CurrentUser(user_id="user-1", workspace_id="ws-1", email="a@example.com")

    @pytest.mark.asyncio
    async def test_missing_header(self):
        """Test a missing header is rejected."""
        with pytest.raises(UnauthorizedError, match="Missing Authorization header"):
            await get_current_user(None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer a b"])
    async def test_malformed_header(self, header):
        """Test headers that are not ``Bearer <token>`` are rejected."""
        with pytest.raises(UnauthorizedError):
            await get_current_user(header)

    @pytest.mark.asyncio
    async def test_expired_token(self):
        """Test expired tokens are rejected."""
        with pytest.raises(UnauthorizedError, match="expired"):
            await get_current_user(bearer(expires_delta=timedelta(seconds=-5)))

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        """Test a tampered token is rejected."""
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            await get_current_user(bearer() + "x")


class TestGetOptionalUser:
    """Test suite for get_optional_user."""

    @pytest.mark.asyncio
    async def test_no_header_is_anonymous(self):
        """Test an absent header yields no user."""
        assert await get_optional_user(None) is None

    @pytest.mark.asyncio
    async def test_valid_header(self):
        """Test a valid header yields the user."""
        user = await get_optional_user(bearer())
        assert user.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_invalid_header_is_still_rejected(self):
        """Test a bad token is not silently treated as anonymous."""
        with pytest.raises(UnauthorizedError):
            await get_optional_user("Bearer nonsense")


class TestRequireWorkspaceMember:
    """Test suite for require_workspace_member."""

    @pytest.mark.asyncio
    async def test_member(self):
        """Test a token for the path workspace passes."""
        user = CurrentUser(user_id="u", workspace_id="ws-1", email="a@example.com")
        assert await require_workspace_member("ws-1", user) is user

    @pytest.mark.asyncio
    async def test_non_member(self):
        """Test a token for another workspace is forbidden."""
        user = CurrentUser(user_id="u", workspace_id="ws-2", email="a@example.com")
        with pytest.raises(ForbiddenError):
            await require_workspace_member("ws-1", user)


class TestGetSchemaCache:
    """Test suite for get_schema_cache."""

    def test_uses_app_state(self):
        """Test the cache on the application state is returned."""
        cache = SchemaCache(ttl_seconds=5)
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(schema_cache=cache)))
        assert get_schema_cache(request) is cache

    def test_falls_back_to_shared_cache(self):
        """Test a process-wide cache is used when the app has none."""
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))
        first = get_schema_cache(request)
        assert isinstance(first, SchemaCache)
        assert get_schema_cache(request) is first
