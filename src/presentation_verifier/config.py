"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from presentation_verifier.domain.links import DEFAULT_WALLET_LINK_BASE
from presentation_verifier.services.polling import (
    DEFAULT_INTERVAL_MS,
    RETRY,
    PollOptions,
)

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    verifier_backend_url: str
    verifier_backend_token: str | None = None
    verifier_api_url: str = "http://localhost:8000"
    wallet_link_base: str = DEFAULT_WALLET_LINK_BASE
    session_timeout_seconds: int = 300
    session_retention_seconds: int = 600
    session_store: str = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    callback_token: str | None = None
    poll_interval_ms: int = DEFAULT_INTERVAL_MS
    poll_max_attempts: int | None = None
    poll_transient_errors: str = RETRY
    poll_max_transient_errors: int = 3
    strict_presentation: bool = False
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def poll_options_from_settings(settings: Settings) -> PollOptions:
    """Build the default polling policy from settings."""
    return PollOptions(
        interval_ms=settings.poll_interval_ms,
        max_attempts=settings.poll_max_attempts,
        transient_errors=settings.poll_transient_errors,
        max_transient_errors=settings.poll_max_transient_errors,
    )
