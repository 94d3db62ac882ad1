"""Session store abstractions."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

from presentation_verifier.domain.errors import DuplicateId, InvalidTransition, NotFound
from presentation_verifier.domain.sessions import Session, can_transition

logger = logging.getLogger(__name__)

SessionMutator = Callable[[Session], Session]


class SessionStore(Protocol):
    """Registry of verification sessions keyed by id."""

    def create(self, session: Session) -> None:
        """Insert a new session; raise DuplicateId if the id exists."""

    def get(self, session_id: str) -> Session:
        """Return a session; raise NotFound if it is missing."""

    def update(self, session_id: str, mutator: SessionMutator) -> Session:
        """Atomically apply a transition and return the stored session."""

    def evict(self, now: datetime) -> int:
        """Purge terminal sessions past the retention window."""


def apply_mutation(current: Session, mutator: SessionMutator) -> Session:
    """Run a mutator and validate the resulting transition."""
    updated = mutator(current)
    if updated.id != current.id or updated.holder_link != current.holder_link:
        raise ValueError("Session id and holder link are immutable")
    if updated.status == current.status:
        return updated
    if not can_transition(current.status, updated.status):
        logger.error(
            "Rejected session transition %s -> %s for %s",
            current.status,
            updated.status,
            current.id,
        )
        raise InvalidTransition(current.id, current.status, updated.status)
    return updated


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local store with per-session locking."""

    retention_seconds: int = 600
    _sessions: dict[str, Session] = field(default_factory=dict)
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock)

    def create(self, session: Session) -> None:
        """Insert a new session."""
        with self._registry_lock:
            if session.id in self._sessions:
                raise DuplicateId(session.id)
            self._sessions[session.id] = session
            self._locks[session.id] = threading.Lock()

    def get(self, session_id: str) -> Session:
        """Return a session by id."""
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(session_id)
        return session

    def update(self, session_id: str, mutator: SessionMutator) -> Session:
        """Apply a mutator under the session's lock."""
        with self._registry_lock:
            lock = self._locks.get(session_id)
        if lock is None:
            raise NotFound(session_id)
        with lock:
            current = self.get(session_id)
            updated = apply_mutation(current, mutator)
            if updated is not current:
                self._sessions[session_id] = updated
            return updated

    def evict(self, now: datetime) -> int:
        """Drop terminal sessions not updated within the retention window."""
        cutoff = now - timedelta(seconds=self.retention_seconds)
        with self._registry_lock:
            stale = [
                session_id
                for session_id, session in self._sessions.items()
                if session.is_terminal and session.updated_at < cutoff
            ]
            for session_id in stale:
                self._sessions.pop(session_id, None)
                self._locks.pop(session_id, None)
        if stale:
            logger.info("Evicted %d resolved sessions", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
