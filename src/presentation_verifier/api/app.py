"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from presentation_verifier.api.models import (
    CallbackRequest,
    CheckRequest,
    CheckResponse,
    StartResponse,
)
from presentation_verifier.app_logging import configure_logging
from presentation_verifier.containers import AppContainer
from presentation_verifier.domain.errors import (
    BackendUnavailable,
    InvalidTransition,
    NotFound,
)


def _get_callback_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.callback_token


async def require_callback_token(
    x_callback_token: str | None = Header(default=None),
    callback_token: str | None = Depends(_get_callback_token),
) -> None:
    """Ensure backend callbacks carry the shared token when one is configured."""
    if callback_token and x_callback_token != callback_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(BackendUnavailable)
    async def backend_unavailable(
        request: Request, exc: BackendUnavailable
    ) -> JSONResponse:
        logger.warning("Verification backend unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    @app.exception_handler(InvalidTransition)
    async def invalid_transition(
        request: Request, exc: InvalidTransition
    ) -> JSONResponse:
        logger.error("Invalid session transition: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": str(exc),
                "current": exc.current,
                "requested": exc.requested,
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.api_route(
        "/api/verify/start",
        methods=["GET", "POST"],
        response_model=StartResponse,
        response_model_by_alias=True,
    )
    async def start(request: Request) -> StartResponse:
        """Start a presentation request."""
        state_container: AppContainer = request.app.state.container
        started = await state_container.session_engine.start()
        return StartResponse(session_link=started.holder_link, id=started.id)

    @app.post(
        "/api/verify/check",
        response_model=CheckResponse,
        response_model_by_alias=True,
        response_model_exclude_none=True,
    )
    async def check(body: CheckRequest, request: Request) -> CheckResponse:
        """Return the current status of a presentation request."""
        state_container: AppContainer = request.app.state.container
        snapshot = await state_container.session_engine.check(body.id)
        return CheckResponse.from_snapshot(snapshot)

    @app.post(
        "/api/verify/callback",
        response_model=CheckResponse,
        response_model_by_alias=True,
        response_model_exclude_none=True,
        dependencies=[Depends(require_callback_token)],
    )
    async def callback(body: CallbackRequest, request: Request) -> CheckResponse:
        """Apply a status update pushed by the verification backend."""
        state_container: AppContainer = request.app.state.container
        presentation = body.presentation.to_domain() if body.presentation else None
        snapshot = state_container.session_engine.record_status(
            body.id, body.status, presentation
        )
        return CheckResponse.from_snapshot(snapshot)

    return app
