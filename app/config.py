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
# Only the Supabase credentials are required. Stripe, Anthropic and Resend
# keys are optional so the API can boot in development without them; the
# wrappers in lib/ report a clear error when a disabled integration is used.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key (used for password sign-in)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret, used when a token has no JWKS key"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (Celery broker + rate limit storage)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker and rate limiting"
    )

    # -------------------------------------------------------------------------
    # Anthropic / LLM Configuration
    # -------------------------------------------------------------------------

    ANTHROPIC_API_KEY: str = Field(
        default="",
        description="Anthropic API key for chat, insights and alert generation"
    )

    ANTHROPIC_MODEL_SONNET: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model used for chat, trend insights and proactive alerts"
    )

    ANTHROPIC_MODEL_HAIKU: str = Field(
        default="claude-haiku-4-5-20251001",
        description="Fast model used for compatibility checks"
    )

    AI_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        le=5,
        description="Attempts per LLM call (exponential backoff between attempts)"
    )

    CHAT_MAX_TOKENS: int = Field(
        default=2000,
        ge=100,
        le=8000,
        description="max_tokens for chat completions"
    )

    CHAT_HISTORY_LIMIT: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Max previous messages included in chat context"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------

    STRIPE_SECRET_KEY: str = Field(default="", description="Stripe secret API key")
    STRIPE_WEBHOOK_SECRET: str = Field(default="", description="Stripe webhook signing secret")
    STRIPE_PORTAL_CONFIG_ID: str = Field(
        default="",
        description="Optional billing portal configuration id"
    )

    STRIPE_PRICE_STARTER_MONTHLY: str = Field(default="", description="Price id: starter monthly")
    STRIPE_PRICE_STARTER_ANNUAL: str = Field(default="", description="Price id: starter annual")
    STRIPE_PRICE_PLUS_MONTHLY: str = Field(default="", description="Price id: plus monthly")
    STRIPE_PRICE_PLUS_ANNUAL: str = Field(default="", description="Price id: plus annual")
    STRIPE_PRICE_PRO_MONTHLY: str = Field(default="", description="Price id: pro monthly")
    STRIPE_PRICE_PRO_ANNUAL: str = Field(default="", description="Price id: pro annual")

    # -------------------------------------------------------------------------
    # Email (Resend)
    # -------------------------------------------------------------------------

    RESEND_API_KEY: str = Field(
        default="",
        description="Resend API key - email is disabled when empty"
    )

    RESEND_FROM_ADDRESS: str = Field(
        default="AquaBotAI <noreply@aquabotai.com>",
        description="Sender address for transactional email"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    APP_URL: str = Field(
        default="http://localhost:3000",
        description="Public web app URL used in redirects and email links"
    )

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
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
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------

    AUTH_RATE_LIMIT_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="Login attempts allowed per IP per window"
    )

    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=900,
        ge=1,
        description="Login rate limit window (15 minutes)"
    )

    RATE_LIMIT_STORAGE: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where rate limit counters live (use redis with >1 API process)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://aquabotai.com" -> ["http://localhost:3000", "https://aquabotai.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def ai_enabled(self) -> bool:
        return bool(self.ANTHROPIC_API_KEY)

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    @property
    def email_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
