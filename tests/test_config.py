"""Tests for application configuration management."""

import os
import tempfile
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from networth_planner.config import (
    Settings,
    get_global_settings,
    get_settings,
    reset_global_settings,
)


class TestSettings:
    """Test cases for Settings class."""

    def test_settings_loads_from_env_file(self):
        """Test that settings can load from a .env file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("APP_ENV=testing\n")
            f.write("SECRET_KEY=test-secret-from-file\n")
            f.write("LOG_LEVEL=debug\n")
            f.write("ALPHA_VANTAGE_API_KEY=demo-key\n")
            f.write("PRICE_CACHE_TTL_SECONDS=60\n")
            temp_env_file = f.name

        try:
            with patch.dict(os.environ, {}, clear=True):
                settings = get_settings(env_file=temp_env_file)

                assert settings.app_env == "testing"
                assert settings.secret_key == "test-secret-from-file"
                assert settings.log_level == "DEBUG"
                assert settings.alpha_vantage_api_key == "demo-key"
                assert settings.price_cache_ttl_seconds == 60
        finally:
            os.unlink(temp_env_file)

    def test_defaults(self):
        """Test the market data defaults."""
        with patch.dict(os.environ, {"SECRET_KEY": "valid-secret-key-123"}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.app_env == "development"
        assert settings.log_level == "INFO"
        assert settings.alpha_vantage_api_key is None
        assert settings.alpha_vantage_base_url == "https://www.alphavantage.co/query"
        assert settings.price_cache_ttl_seconds == 300
        assert settings.historical_cache_ttl_seconds == 86400
        assert settings.price_request_interval_seconds == 12

    def test_missing_secret_key_raises_exception(self):
        """Test that missing SECRET_KEY raises ValidationError."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "SECRET_KEY" in str(exc_info.value)

    def test_placeholder_secret_key_raises_exception(self):
        """Test that placeholder SECRET_KEY raises ValidationError."""
        with patch.dict(
            os.environ,
            {"SECRET_KEY": "your-secret-key-here-change-in-production"},
            clear=True,
        ):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "SECRET_KEY must be set to a secure value" in str(exc_info.value)

    def test_app_env_validation(self):
        """Test APP_ENV validation."""
        with patch.dict(
            os.environ,
            {"SECRET_KEY": "valid-secret-key-123", "APP_ENV": "invalid-env"},
            clear=True,
        ):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "APP_ENV must be one of" in str(exc_info.value)

    def test_log_level_validation(self):
        """Test LOG_LEVEL validation."""
        with patch.dict(
            os.environ,
            {"SECRET_KEY": "valid-secret-key-123", "LOG_LEVEL": "LOUD"},
            clear=True,
        ):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "LOG_LEVEL must be one of" in str(exc_info.value)

    def test_negative_ttl_rejected(self):
        """Test that cache lifetimes cannot be negative."""
        with patch.dict(
            os.environ,
            {"SECRET_KEY": "valid-secret-key-123", "PRICE_CACHE_TTL_SECONDS": "-1"},
            clear=True,
        ):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "non-negative" in str(exc_info.value)

    def test_timeout_must_be_positive(self):
        """Test that the request timeout must be positive."""
        with patch.dict(
            os.environ,
            {"SECRET_KEY": "valid-secret-key-123", "PRICE_REQUEST_TIMEOUT": "0"},
            clear=True,
        ):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestGlobalSettings:
    """Test the cached settings instance."""

    def test_global_settings_cached_until_reset(self):
        """Test that the global instance is reused until reset."""
        with patch.dict(os.environ, {"SECRET_KEY": "first-secret"}, clear=True):
            reset_global_settings()
            first = get_global_settings()
            assert get_global_settings() is first

        with patch.dict(os.environ, {"SECRET_KEY": "second-secret"}, clear=True):
            reset_global_settings()
            assert get_global_settings().secret_key == "second-secret"

        reset_global_settings()
