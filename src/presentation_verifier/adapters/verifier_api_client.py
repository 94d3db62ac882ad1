"""Client for the verifier's start/check HTTP API."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from presentation_verifier.domain.errors import (
    BackendUnavailable,
    InvalidTransition,
    NotFound,
    TransientCheckError,
)
from presentation_verifier.domain.sessions import (
    STATUSES,
    VERIFIED,
    Presentation,
    SessionSnapshot,
    StartedSession,
)


class VerifierApi(Protocol):
    """Start and check operations as seen by a polling client."""

    async def start(self) -> StartedSession:
        """Start a verification session."""

    async def check(self, session_id: str) -> SessionSnapshot:
        """Return the current snapshot of a session."""

    async def close(self) -> None:
        """Release any resources held by the client."""


@dataclass
class HttpxVerifierApiClient(VerifierApi):
    """Verifier API client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15

    @classmethod
    def create(cls, base_url: str) -> "HttpxVerifierApiClient":
        """Create an API client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def start(self) -> StartedSession:
        """Call ``/api/verify/start``."""
        try:
            response = await self.http_client.post(
                f"{self.base_url}/api/verify/start",
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
            return StartedSession(
                id=str(data["id"]), holder_link=str(data["sessionLink"])
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise BackendUnavailable(f"Could not start a session: {exc}") from exc

    async def check(self, session_id: str) -> SessionSnapshot:
        """Call ``/api/verify/check`` for a session."""
        try:
            response = await self.http_client.post(
                f"{self.base_url}/api/verify/check",
                json={"id": session_id},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            raise TransientCheckError(f"Transport error during check: {exc}") from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFound(session_id)
        if response.status_code == httpx.codes.CONFLICT:
            raise _invalid_transition(session_id, response)
        try:
            response.raise_for_status()
            data = response.json()
            status = data["status"]
            presentation = Presentation.from_payload(data.get("presentation"))
        except httpx.HTTPStatusError as exc:
            raise TransientCheckError(
                f"Check returned HTTP {exc.response.status_code}"
            ) from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise TransientCheckError(f"Malformed check response: {exc}") from exc
        if not isinstance(status, str) or status not in STATUSES:
            raise TransientCheckError(f"Unknown session status: {status}")
        return SessionSnapshot(
            id=session_id,
            status=status,
            presentation=presentation if status == VERIFIED else None,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _invalid_transition(
    session_id: str, response: httpx.Response
) -> InvalidTransition:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    return InvalidTransition(
        session_id,
        str(body.get("current", "unknown")),
        str(body.get("requested", "unknown")),
    )
