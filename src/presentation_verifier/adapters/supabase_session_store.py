"""Supabase-backed session store."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from postgrest.exceptions import APIError
from supabase import Client

from presentation_verifier.domain.errors import DuplicateId, NotFound
from presentation_verifier.domain.sessions import (
    TERMINAL_STATUSES,
    Presentation,
    Session,
)
from presentation_verifier.services.store import (
    SessionMutator,
    SessionStore,
    apply_mutation,
)

logger = logging.getLogger(__name__)

_TABLE = "verification_sessions"
_COLUMNS = "id, status, holder_link, presentation_json, created_at, updated_at"
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation using compare-and-set on the prior status."""

    client: Client
    retention_seconds: int = 600
    max_update_attempts: int = 5

    def create(self, session: Session) -> None:
        """Insert a session row."""
        try:
            response = (
                self.client.table(_TABLE).insert(_to_row(session)).execute()
            )
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateId(session.id) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create verification session")

    def get(self, session_id: str) -> Session:
        """Return a session by id."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            raise NotFound(session_id)
        return _from_row(response.data[0])

    def update(self, session_id: str, mutator: SessionMutator) -> Session:
        """Apply a mutator, guarded by the status the mutator observed."""
        for _ in range(self.max_update_attempts):
            current = self.get(session_id)
            updated = apply_mutation(current, mutator)
            if updated is current:
                return current
            response = (
                self.client.table(_TABLE)
                .update(
                    {
                        "status": updated.status,
                        "presentation_json": _presentation_json(updated),
                        "updated_at": updated.updated_at.isoformat(),
                    }
                )
                .eq("id", session_id)
                .eq("status", current.status)
                .execute()
            )
            if response.data:
                return _from_row(response.data[0])
            logger.info("Concurrent update on session %s, retrying", session_id)
        raise RuntimeError(f"Could not update session {session_id}")

    def evict(self, now: datetime) -> int:
        """Delete terminal sessions older than the retention window."""
        cutoff = now - timedelta(seconds=self.retention_seconds)
        response = (
            self.client.table(_TABLE)
            .delete()
            .in_("status", sorted(TERMINAL_STATUSES))
            .lt("updated_at", cutoff.isoformat())
            .execute()
        )
        return len(response.data or [])


def _presentation_json(session: Session) -> dict[str, object] | None:
    if session.presentation is None:
        return None
    return session.presentation.to_payload()


def _to_row(session: Session) -> dict[str, object]:
    return {
        "id": session.id,
        "status": session.status,
        "holder_link": session.holder_link,
        "presentation_json": _presentation_json(session),
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
    }


def _from_row(row: dict[str, object]) -> Session:
    return Session(
        id=str(row["id"]),
        status=str(row["status"]),
        holder_link=str(row["holder_link"]),
        presentation=Presentation.from_payload(row.get("presentation_json")),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        updated_at=datetime.fromisoformat(str(row["updated_at"])),
    )
