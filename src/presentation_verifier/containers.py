"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from presentation_verifier.adapters.backend_client import (
    HttpxVerificationBackend,
    VerificationBackend,
)
from presentation_verifier.adapters.supabase_session_store import SupabaseSessionStore
from presentation_verifier.adapters.verifier_api_client import (
    HttpxVerifierApiClient,
    VerifierApi,
)
from presentation_verifier.config import Settings, poll_options_from_settings
from presentation_verifier.services.sessions import SessionEngine
from presentation_verifier.services.store import InMemorySessionStore, SessionStore
from presentation_verifier.services.verification import VerificationFlow


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    backend: VerificationBackend
    session_store: SessionStore
    session_engine: SessionEngine
    close_resources: Callable[[], Awaitable[None]]


def build_session_store(settings: Settings) -> SessionStore:
    """Create the configured session store."""
    if settings.session_store == "memory":
        return InMemorySessionStore(retention_seconds=settings.session_retention_seconds)
    if settings.session_store == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase session store requires url and service key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseSessionStore(
            client, retention_seconds=settings.session_retention_seconds
        )
    raise ValueError(f"Unknown session store: {settings.session_store}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    session_store = build_session_store(resolved_settings)
    backend = HttpxVerificationBackend.create(
        base_url=resolved_settings.verifier_backend_url,
        api_token=resolved_settings.verifier_backend_token,
    )
    session_engine = SessionEngine(
        store=session_store,
        backend=backend,
        timeout_seconds=resolved_settings.session_timeout_seconds,
    )

    async def close_resources() -> None:
        await backend.close()

    return AppContainer(
        settings=resolved_settings,
        backend=backend,
        session_store=session_store,
        session_engine=session_engine,
        close_resources=close_resources,
    )


def build_verification_flow(
    settings: Settings, api: VerifierApi | None = None
) -> VerificationFlow:
    """Create a client-side verification flow from settings."""
    return VerificationFlow(
        api=api or HttpxVerifierApiClient.create(settings.verifier_api_url),
        options=poll_options_from_settings(settings),
        wallet_link_base=settings.wallet_link_base,
        strict=settings.strict_presentation,
    )
