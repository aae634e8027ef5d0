# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# The Settings class validates all values at startup, so a bad value stops
# the process before it starts serving.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration (database + auth provider)
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,  # ... means required (no default)
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify access tokens"
    )

    SUPABASE_HEALTH_CHECK_TABLE: str = Field(
        default="",
        description="Table queried by health probes; empty probes the REST root instead"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------

    RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=900,
        ge=1,
        description="Length of the rate limit window in seconds (15 minutes)"
    )

    RATE_LIMIT_MAX_REQUESTS: int = Field(
        default=400,
        ge=1,
        description="Requests allowed per client IP per window"
    )

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    SHUTDOWN_GRACE_PERIOD_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Time cleanup may take before the process is forced to exit"
    )

    DRAIN_TIMEOUT_SECONDS: float | None = Field(
        default=8.0,
        gt=0,
        description="How long uvicorn waits for in-flight requests when stopping"
    )

    # -------------------------------------------------------------------------
    # Email (SMTP)
    # -------------------------------------------------------------------------

    SMTP_HOST: str = Field(default="smtp.gmail.com")

    SMTP_PORT: int = Field(default=587, ge=1, le=65535)

    SMTP_SECURE: bool = Field(
        default=False,
        description="Connect with implicit TLS (port 465); otherwise STARTTLS"
    )

    SMTP_USER: str = Field(default="")

    SMTP_PASS: str = Field(default="")

    SMTP_FROM: str = Field(
        default="noreply@yourapp.com",
        description="Sender address for outgoing email"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Treat empty values as unset so defaults apply
        env_ignore_empty=True,
        # Case-sensitive environment variable names
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Handles comma-separated values, strips whitespace and drops empties.
        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
