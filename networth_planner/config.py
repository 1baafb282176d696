"""Application configuration management using Pydantic Settings."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")

    # Flask Configuration
    secret_key: str = Field(..., alias="SECRET_KEY")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Market Data Configuration
    alpha_vantage_api_key: Optional[str] = Field(
        default=None, alias="ALPHA_VANTAGE_API_KEY"
    )
    alpha_vantage_base_url: str = Field(
        default="https://www.alphavantage.co/query", alias="ALPHA_VANTAGE_BASE_URL"
    )
    price_cache_ttl_seconds: float = Field(
        default=300.0, alias="PRICE_CACHE_TTL_SECONDS"
    )
    historical_cache_ttl_seconds: float = Field(
        default=86400.0, alias="HISTORICAL_CACHE_TTL_SECONDS"
    )
    price_request_interval_seconds: float = Field(
        default=12.0, alias="PRICE_REQUEST_INTERVAL_SECONDS"
    )
    price_request_timeout: float = Field(default=30.0, alias="PRICE_REQUEST_TIMEOUT")

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v):
        """Ensure SECRET_KEY is provided and not a placeholder."""
        if not v or v == "your-secret-key-here-change-in-production":
            raise ValueError("SECRET_KEY must be set to a secure value")
        return v

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"APP_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator(
        "price_cache_ttl_seconds",
        "historical_cache_ttl_seconds",
        "price_request_interval_seconds",
    )
    @classmethod
    def validate_non_negative(cls, v):
        """Cache lifetimes and request spacing cannot be negative."""
        if v < 0:
            raise ValueError("Cache TTLs and request intervals must be non-negative")
        return v

    @field_validator("price_request_timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("PRICE_REQUEST_TIMEOUT must be positive")
        return v


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get application settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None
