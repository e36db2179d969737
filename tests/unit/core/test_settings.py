"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from folio.core.config import Settings, get_settings


class TestSettings:
    """Test suite for Settings."""

    def test_environment_from_env(self):
        """Test FOLIO_ environment variables are read."""
        settings = Settings()
        assert settings.environment == "testing"
        assert settings.is_testing is True
        assert settings.is_production is False

    def test_env_prefix(self, monkeypatch):
        """Test composition settings can be overridden from the environment."""
        monkeypatch.setenv("FOLIO_COMPOSITION_MAX_LIMIT", "250")
        monkeypatch.setenv("FOLIO_COMPOSITION_TIMEOUT_SECONDS", "2.5")

        settings = Settings()

        assert settings.composition_max_limit == 250
        assert settings.composition_timeout_seconds == 2.5

    def test_defaults(self):
        """Test composition defaults."""
        settings = Settings(_env_file=None)
        assert settings.api_prefix == "/api/v1"
        assert settings.schema_cache_ttl_seconds == 60
        assert settings.access_token_expire_minutes == 60

    def test_cors_origins_from_comma_separated_string(self):
        """Test CORS origins are split on commas."""
        settings = Settings(cors_origins="https://a.example, https://b.example")
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_max_limit_must_be_positive(self, limit):
        """Test a non-positive row cap is rejected."""
        with pytest.raises(ValidationError):
            Settings(composition_max_limit=limit)

    def test_sqlite_rejects_multiple_workers(self):
        """Test SQLite cannot be combined with several workers."""
        with pytest.raises(ValidationError, match="SQLite does not support multiple worker"):
            Settings(database_url="sqlite+aiosqlite:///./x.db", workers=4)

    def test_postgres_allows_multiple_workers(self):
        """Test PostgreSQL can run with several workers."""
        settings = Settings(database_url="postgresql+asyncpg://u:p@localhost/db", workers=4)
        assert settings.workers == 4
        assert settings.database_dialect == "postgresql"

    def test_sqlite_dialect(self):
        """Test the dialect name is derived from the database URL."""
        assert Settings(database_url="sqlite+aiosqlite:///:memory:").database_dialect == "sqlite"

    def test_get_settings_is_cached(self):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()
