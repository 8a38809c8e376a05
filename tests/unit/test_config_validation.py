"""
Tests for configuration validation.

Settings must refuse to start with missing or weak secrets and accept
the supported CLIENT_URL formats.
"""

import pytest
from pydantic import ValidationError

from feedback_admin.core.config import Settings


STRONG = "x" * 40


def _settings(**overrides) -> Settings:
    values = {"secret_key": STRONG, "session_secret": STRONG}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSecrets:
    """Tests for SECRET_KEY / SESSION_SECRET validation."""

    def test_valid_secrets_accepted(self):
        settings = _settings()

        assert settings.secret_key == STRONG
        assert settings.session_secret == STRONG

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(secret_key="short")

        assert "at least 32 characters" in str(exc_info.value)

    def test_placeholder_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(session_secret="change-me-session-secret")

        assert "placeholder" in str(exc_info.value)

    def test_blank_rejected(self):
        with pytest.raises(ValidationError):
            _settings(secret_key="   ")


class TestOtherSettings:

    def test_client_url_comma_separated(self):
        settings = _settings(client_url="http://a.test, http://b.test")

        assert settings.client_url == ["http://a.test", "http://b.test"]

    def test_client_url_json_list(self):
        settings = _settings(client_url='["http://a.test"]')

        assert settings.client_url == ["http://a.test"]

    def test_client_url_from_environment(self, monkeypatch):
        """Comma-separated values arrive undecoded from the environment."""
        monkeypatch.setenv("CLIENT_URL", "http://a.test,http://b.test")

        settings = _settings()

        assert settings.client_url == ["http://a.test", "http://b.test"]

    def test_sync_database_driver_rejected(self):
        with pytest.raises(ValidationError):
            _settings(database_url="sqlite:///./data/app.db")

    def test_backend_without_returning_rejected(self):
        with pytest.raises(ValidationError):
            _settings(database_url="mysql+aiomysql://user:pw@localhost/feedback")

    def test_supported_async_drivers_accepted(self):
        assert _settings(database_url="postgresql+asyncpg://u:p@db/feedback").database_url.startswith("postgresql")
        assert _settings(database_url="sqlite+aiosqlite:///./data/app.db").database_url.startswith("sqlite")

    def test_unknown_auth_mode_rejected(self):
        with pytest.raises(ValidationError):
            _settings(auth_mode="cookie")

    def test_admin_email_normalized(self):
        assert _settings(admin_email=" Boss@X.com ").admin_email == "boss@x.com"

    def test_is_production(self):
        assert _settings(environment="production").is_production
        assert not _settings(environment="development").is_production
