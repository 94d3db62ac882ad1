"""Error taxonomy for the verification flow."""


class VerifierError(Exception):
    """Base class for all verification flow errors."""


class BackendUnavailable(VerifierError):
    """Raised when the verification backend cannot serve a request."""


class NotFound(VerifierError):
    """Raised when a session id is unknown or has been evicted."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class DuplicateId(VerifierError):
    """Raised when a session id is already registered."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} already exists")
        self.session_id = session_id


class InvalidTransition(VerifierError):
    """Raised when a status change does not follow the session lifecycle."""

    def __init__(self, session_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"Session {session_id} cannot move from {current} to {requested}"
        )
        self.session_id = session_id
        self.current = current
        self.requested = requested


class MalformedToken(VerifierError):
    """Raised when a credential token cannot be decoded."""


class TransientCheckError(VerifierError):
    """Raised when a single status check failed at the transport layer."""


class PollOutcomeError(VerifierError):
    """Base class for terminal, non-retryable polling outcomes."""

    def __init__(self, session_id: str, message: str) -> None:
        super().__init__(message)
        self.session_id = session_id


class VerificationFailed(PollOutcomeError):
    """The session resolved to ``failed``."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Verification failed for session {session_id}")


class VerificationExpired(PollOutcomeError):
    """The session resolved to ``expired``."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session {session_id} expired")


class PollTimeout(PollOutcomeError):
    """The polling loop used up its attempts without a terminal status."""

    def __init__(self, session_id: str, attempts: int) -> None:
        super().__init__(
            session_id,
            f"Session {session_id} unresolved after {attempts} attempts",
        )
        self.attempts = attempts


class Cancelled(PollOutcomeError):
    """The caller cancelled the polling loop."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Polling for session {session_id} cancelled")
