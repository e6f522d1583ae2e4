"""
Unit tests for Pydantic Settings configuration.

Tests settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from app.config.settings import Settings, get_settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_has_defaults(self, monkeypatch):
        """Settings should have sensible defaults."""
        monkeypatch.delenv("FREE_LIMIT", raising=False)
        monkeypatch.delenv("SESSION_COOKIE_NAME", raising=False)
        settings = Settings(_env_file=None)

        assert settings.free_limit == 5
        assert settings.session_cookie_name == "session"
        assert settings.gemini_model is not None
        assert "http://localhost:3000" in settings.allowed_origins

    def test_settings_loads_from_env(self, monkeypatch):
        """Settings should load from environment variables."""
        monkeypatch.setenv("FREE_LIMIT", "12")
        monkeypatch.setenv("SESSION_COOKIE_NAME", "synthai_session")

        settings = Settings(_env_file=None)

        assert settings.free_limit == 12
        assert settings.session_cookie_name == "synthai_session"

    def test_gemini_key_alias(self):
        """GEMINI_API_KEY is accepted when GOOGLE_API_KEY is absent."""
        settings = Settings(_env_file=None, google_api_key=None, gemini_api_key="gm-key")
        assert settings.google_api_key == "gm-key"

    def test_negative_free_limit_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, free_limit=-1)

    def test_production_requires_token_verifier(self):
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                environment="production",
                auth_jwt_secret=None,
                auth_jwks_url=None,
            )

    def test_is_production_property(self):
        """is_production should return True for production environment."""
        settings = Settings(_env_file=None, environment="production", auth_jwt_secret="s" * 32)
        assert settings.is_production is True
        assert settings.is_development is False

    @pytest.mark.parametrize("url, expected", [
        ("postgresql://u:p@db/synthai", "postgresql+asyncpg://u:p@db/synthai"),
        ("postgres://u:p@db/synthai", "postgresql+asyncpg://u:p@db/synthai"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ])
    def test_async_database_url(self, url, expected):
        assert Settings(_env_file=None, database_url=url).async_database_url == expected

    def test_paypal_plans(self):
        settings = Settings(
            _env_file=None,
            paypal_plan_id_monthly="P-M",
            paypal_plan_id_yearly=None,
        )
        assert settings.paypal_plans == {"monthly": "P-M", "yearly": None}

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
