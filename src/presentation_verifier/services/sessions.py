"""Verification session state machine."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

from presentation_verifier.adapters.backend_client import VerificationBackend
from presentation_verifier.domain.errors import BackendUnavailable, DuplicateId
from presentation_verifier.domain.sessions import (
    EXPIRED,
    INITIATED,
    PRESENTED,
    STATUSES,
    VERIFIED,
    Presentation,
    Session,
    SessionSnapshot,
    StartedSession,
)
from presentation_verifier.services.store import SessionStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionEngine:
    """Creates sessions and reads their status through to the backend."""

    store: SessionStore
    backend: VerificationBackend | None = None
    timeout_seconds: int = 300
    clock: Callable[[], datetime] = _utcnow

    async def start(self) -> StartedSession:
        """Allocate a backend request and register it as an initiated session."""
        now = self.clock()
        self.store.evict(now)
        if self.backend is None:
            raise BackendUnavailable("No verification backend configured")
        try:
            request = await self.backend.create_request()
        except BackendUnavailable:
            raise
        except Exception as exc:
            raise BackendUnavailable(
                f"Backend could not allocate a session: {exc}"
            ) from exc
        session = Session(
            id=request.id,
            status=INITIATED,
            holder_link=request.url,
            created_at=now,
            updated_at=now,
        )
        try:
            self.store.create(session)
        except DuplicateId:
            logger.error("Backend reused request id %s", request.id)
            raise
        logger.info("Started verification session %s", session.id)
        return StartedSession(id=session.id, holder_link=session.holder_link)

    async def check(self, session_id: str) -> SessionSnapshot:
        """Return the current snapshot, applying timeout and backend status."""
        now = self.clock()
        self.store.evict(now)
        session = self.store.get(session_id)
        if session.is_terminal:
            return session.snapshot()
        if now - session.created_at >= timedelta(seconds=self.timeout_seconds):
            logger.info("Session %s timed out in %s", session_id, session.status)
            return self._transition(session_id, EXPIRED).snapshot()
        if self.backend is None:
            return session.snapshot()
        try:
            reported = await self.backend.get_status(session_id)
        except BackendUnavailable:
            raise
        except Exception as exc:
            raise BackendUnavailable(
                f"Backend could not report session {session_id}: {exc}"
            ) from exc
        return self._apply(session, reported.status, reported.presentation).snapshot()

    def record_status(
        self,
        session_id: str,
        status: str,
        presentation: Presentation | None = None,
    ) -> SessionSnapshot:
        """Apply a status pushed by the backend."""
        session = self.store.get(session_id)
        return self._apply(session, status, presentation).snapshot()

    def _apply(
        self, session: Session, status: str, presentation: Presentation | None
    ) -> Session:
        if status not in STATUSES:
            raise BackendUnavailable(f"Backend reported unknown status {status!r}")
        if status == session.status:
            return session
        if status == VERIFIED and session.status == INITIATED:
            session = self._transition(session.id, PRESENTED)
        return self._transition(
            session.id,
            status,
            presentation if status == VERIFIED else None,
        )

    def _transition(
        self,
        session_id: str,
        status: str,
        presentation: Presentation | None = None,
    ) -> Session:
        now = self.clock()

        def mutate(current: Session) -> Session:
            if current.status == status:
                return current
            return replace(
                current,
                status=status,
                presentation=presentation,
                updated_at=now,
            )

        updated = self.store.update(session_id, mutate)
        logger.info("Session %s is now %s", session_id, updated.status)
        return updated
