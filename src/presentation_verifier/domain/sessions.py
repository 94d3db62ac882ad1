"""Domain models for verification sessions."""

from dataclasses import dataclass, field
from datetime import datetime

INITIATED = "initiated"
PRESENTED = "presented"
VERIFIED = "verified"
FAILED = "failed"
EXPIRED = "expired"

STATUSES = frozenset({INITIATED, PRESENTED, VERIFIED, FAILED, EXPIRED})
TERMINAL_STATUSES = frozenset({VERIFIED, FAILED, EXPIRED})

_TRANSITIONS: dict[str, frozenset[str]] = {
    INITIATED: frozenset({PRESENTED, FAILED, EXPIRED}),
    PRESENTED: frozenset({VERIFIED, FAILED, EXPIRED}),
    VERIFIED: frozenset(),
    FAILED: frozenset(),
    EXPIRED: frozenset(),
}


def is_terminal(status: str) -> bool:
    """Return True for statuses that end a session."""
    return status in TERMINAL_STATUSES


def can_transition(current: str, requested: str) -> bool:
    """Return True if the lifecycle allows moving from current to requested."""
    return requested in _TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class Presentation:
    """Credential tokens delivered by the holder, in received order."""

    verifiable_credential: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: object) -> "Presentation | None":
        """Build a presentation from a ``{"verifiableCredential": [...]}`` mapping."""
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise ValueError("presentation must be a JSON object")
        tokens = payload.get("verifiableCredential") or []
        if isinstance(tokens, str):
            tokens = [tokens]
        if not isinstance(tokens, list | tuple):
            raise ValueError("verifiableCredential must be a list of tokens")
        return cls(verifiable_credential=tuple(str(token) for token in tokens))

    def to_payload(self) -> dict[str, object]:
        """Return the wire representation."""
        return {"verifiableCredential": list(self.verifiable_credential)}


@dataclass(frozen=True)
class Session:
    """One verification attempt."""

    id: str
    status: str
    holder_link: str
    created_at: datetime
    updated_at: datetime
    presentation: Presentation | None = None

    def __post_init__(self) -> None:
        if self.status not in STATUSES:
            raise ValueError(f"Unknown session status: {self.status}")
        if self.presentation is not None and self.status != VERIFIED:
            raise ValueError("Only verified sessions carry a presentation")

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def snapshot(self) -> "SessionSnapshot":
        """Return the read view handed to pollers."""
        return SessionSnapshot(
            id=self.id, status=self.status, presentation=self.presentation
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Current status of a session as seen by a poller."""

    id: str
    status: str
    presentation: Presentation | None = None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)


@dataclass(frozen=True)
class StartedSession:
    """Result of starting a session."""

    id: str
    holder_link: str


@dataclass(frozen=True)
class BackendRequest:
    """Presentation request allocated by the verification backend."""

    id: str
    url: str


@dataclass(frozen=True)
class BackendStatus:
    """Status of a presentation request as reported by the backend."""

    status: str
    presentation: Presentation | None = None


@dataclass
class PollState:
    """Progress of a single polling loop."""

    session_id: str
    attempts: int = 0
    suspensions: int = 0
    transient_errors: int = 0
    last_status: str | None = None
    statuses: list[str] = field(default_factory=list)
