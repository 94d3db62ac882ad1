"""Verification backend API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from presentation_verifier.domain.errors import BackendUnavailable
from presentation_verifier.domain.sessions import (
    BackendRequest,
    BackendStatus,
    Presentation,
)


class VerificationBackend(Protocol):
    """Interface for the system that verifies presented credentials."""

    async def create_request(self) -> BackendRequest:
        """Allocate a presentation request and return its id and holder link."""

    async def get_status(self, request_id: str) -> BackendStatus:
        """Return the backend's view of a presentation request."""


@dataclass
class HttpxVerificationBackend(VerificationBackend):
    """HTTPX-backed verification backend client."""

    base_url: str
    http_client: httpx.AsyncClient
    api_token: str | None = None
    timeout: float = 15

    @classmethod
    def create(
        cls, base_url: str, api_token: str | None = None
    ) -> "HttpxVerificationBackend":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            api_token=api_token,
        )

    async def create_request(self) -> BackendRequest:
        """Create a presentation request."""
        data = await self._request("POST", "/presentation-requests")
        try:
            return BackendRequest(id=str(data["id"]), url=str(data["url"]))
        except KeyError as exc:
            raise BackendUnavailable(f"Backend response missing {exc}") from exc

    async def get_status(self, request_id: str) -> BackendStatus:
        """Fetch the status of a presentation request."""
        data = await self._request("GET", f"/presentation-requests/{request_id}")
        status = data.get("status")
        if not isinstance(status, str):
            raise BackendUnavailable("Backend response missing status")
        try:
            presentation = Presentation.from_payload(data.get("presentation"))
        except ValueError as exc:
            raise BackendUnavailable(f"Backend sent a bad presentation: {exc}") from exc
        return BackendStatus(status=status, presentation=presentation)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(self, method: str, path: str) -> dict[str, object]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise BackendUnavailable(f"Verification backend error: {exc}") from exc
        except ValueError as exc:
            raise BackendUnavailable("Verification backend returned bad JSON") from exc
        if not isinstance(data, dict):
            raise BackendUnavailable("Verification backend returned bad JSON")
        return data
