"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from presentation_verifier.adapters.backend_client import VerificationBackend
from presentation_verifier.config import Settings
from presentation_verifier.containers import AppContainer
from presentation_verifier.domain.errors import BackendUnavailable, NotFound
from presentation_verifier.domain.sessions import (
    BackendRequest,
    BackendStatus,
    SessionSnapshot,
)
from presentation_verifier.services.sessions import SessionEngine
from presentation_verifier.services.store import InMemorySessionStore


@dataclass
class FakeClock:
    """Manually advanced UTC clock."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class FakeVerificationBackend(VerificationBackend):
    """Backend that hands out sequential request ids and scripted statuses."""

    statuses: dict[str, BackendStatus] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    status_calls: list[str] = field(default_factory=list)
    fail_create: bool = False
    fail_status: bool = False

    async def create_request(self) -> BackendRequest:
        if self.fail_create:
            raise BackendUnavailable("backend down")
        request_id = f"req-{len(self.created) + 1}"
        self.created.append(request_id)
        self.statuses[request_id] = BackendStatus(status="initiated")
        return BackendRequest(
            id=request_id,
            url=f"openid-vc://?request_uri=https://verifier.test/requests/{request_id}",
        )

    async def get_status(self, request_id: str) -> BackendStatus:
        self.status_calls.append(request_id)
        if self.fail_status:
            raise BackendUnavailable("backend down")
        return self.statuses[request_id]


@dataclass
class ScriptedCheck:
    """Check callable that replays a fixed sequence of statuses or errors."""

    session_id: str
    script: list[object]
    calls: int = 0

    async def __call__(self, session_id: str) -> SessionSnapshot:
        if session_id != self.session_id:
            raise NotFound(session_id)
        step = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(step, Exception):
            raise step
        if isinstance(step, SessionSnapshot):
            return step
        return SessionSnapshot(id=session_id, status=str(step))


@dataclass
class RecordingSleep:
    """Sleep replacement that records requested delays and returns at once."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        verifier_backend_url="https://backend.test",
        callback_token="callback-secret",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeVerificationBackend:
    return FakeVerificationBackend()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore(retention_seconds=600)


@pytest.fixture
def engine(
    store: InMemorySessionStore,
    backend: FakeVerificationBackend,
    clock: FakeClock,
) -> SessionEngine:
    return SessionEngine(store=store, backend=backend, timeout_seconds=300, clock=clock)


@pytest.fixture
def container(
    settings: Settings,
    backend: FakeVerificationBackend,
    store: InMemorySessionStore,
    engine: SessionEngine,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        backend=backend,
        session_store=store,
        session_engine=engine,
        close_resources=close_resources,
    )
