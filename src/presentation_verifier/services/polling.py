"""Polling loop that waits for a verification session to resolve."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from presentation_verifier.domain.errors import (
    BackendUnavailable,
    Cancelled,
    PollTimeout,
    TransientCheckError,
    VerificationExpired,
    VerificationFailed,
)
from presentation_verifier.domain.sessions import (
    EXPIRED,
    FAILED,
    VERIFIED,
    PollState,
    SessionSnapshot,
)

logger = logging.getLogger(__name__)

CheckFn = Callable[[str], Awaitable[SessionSnapshot]]
SleepFn = Callable[[float], Awaitable[None]]

RETRY = "retry"
PROPAGATE = "propagate"
DEFAULT_INTERVAL_MS = 1000


@dataclass(frozen=True)
class PollOptions:
    """Polling policy.

    ``transient_errors`` decides what happens when a single check fails at the
    transport layer: ``retry`` waits one interval and tries again, up to
    ``max_transient_errors`` consecutive failures; ``propagate`` raises at once.
    """

    interval_ms: int = DEFAULT_INTERVAL_MS
    max_attempts: int | None = None
    on_status: Callable[[str], None] | None = None
    transient_errors: str = RETRY
    max_transient_errors: int = 3

    def __post_init__(self) -> None:
        if self.interval_ms < 0:
            raise ValueError("interval_ms must not be negative")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.transient_errors not in {RETRY, PROPAGATE}:
            raise ValueError(f"Unknown transient error policy: {self.transient_errors}")


class CancellationToken:
    """Signals a polling loop to stop at its next suspension point."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Calling it again has no effect."""
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class Poller:
    """Drives repeated checks of one session until it reaches a terminal status."""

    check: CheckFn
    options: PollOptions = field(default_factory=PollOptions)
    sleep: SleepFn = asyncio.sleep

    async def poll(
        self,
        session_id: str,
        token: CancellationToken | None = None,
        state: PollState | None = None,
    ) -> SessionSnapshot:
        """Poll until verified; raise a typed error for every other outcome."""
        token = token or CancellationToken()
        state = state or PollState(session_id=session_id)
        while True:
            if token.cancelled:
                raise Cancelled(session_id)
            state.attempts += 1
            try:
                snapshot = await self.check(session_id)
            except (TransientCheckError, BackendUnavailable) as exc:
                self._handle_transient(session_id, state, exc)
            else:
                state.transient_errors = 0
                if snapshot.status != state.last_status:
                    logger.info("Session %s reported %s", session_id, snapshot.status)
                state.last_status = snapshot.status
                state.statuses.append(snapshot.status)
                if snapshot.status == VERIFIED:
                    return snapshot
                if snapshot.status == FAILED:
                    raise VerificationFailed(session_id)
                if snapshot.status == EXPIRED:
                    raise VerificationExpired(session_id)
                if self.options.on_status is not None:
                    self.options.on_status(snapshot.status)
            max_attempts = self.options.max_attempts
            if max_attempts is not None and state.attempts >= max_attempts:
                raise PollTimeout(session_id, state.attempts)
            await self._suspend(session_id, token, state)

    def start(self, session_id: str) -> "PollHandle":
        """Run ``poll`` as a task and return a handle that can cancel it."""
        token = CancellationToken()
        state = PollState(session_id=session_id)
        task = asyncio.ensure_future(self.poll(session_id, token=token, state=state))
        task.add_done_callback(lambda _: token.cancel())
        return PollHandle(session_id=session_id, state=state, token=token, task=task)

    def _handle_transient(
        self, session_id: str, state: PollState, exc: Exception
    ) -> None:
        if self.options.transient_errors == PROPAGATE:
            raise exc
        state.transient_errors += 1
        if state.transient_errors > self.options.max_transient_errors:
            logger.error(
                "Giving up on session %s after %d consecutive check errors",
                session_id,
                state.transient_errors,
            )
            raise exc
        logger.warning("Check failed for session %s: %s", session_id, exc)

    async def _suspend(
        self, session_id: str, token: CancellationToken, state: PollState
    ) -> None:
        sleeper = asyncio.ensure_future(self.sleep(self.options.interval_ms / 1000))
        canceller = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait(
                {sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pending = [task for task in (sleeper, canceller) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if token.cancelled:
            raise Cancelled(session_id)
        state.suspensions += 1


@dataclass
class PollHandle:
    """Scoped handle for a running polling loop."""

    session_id: str
    state: PollState
    token: CancellationToken
    task: "asyncio.Future[SessionSnapshot]"

    def cancel(self) -> None:
        """Stop the loop at its next suspension point."""
        self.token.cancel()

    @property
    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> SessionSnapshot:
        """Wait for the loop and return its snapshot or raise its error."""
        return await self.task


async def poll_until_resolved(
    check: CheckFn,
    session_id: str,
    options: PollOptions | None = None,
    token: CancellationToken | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> SessionSnapshot:
    """Poll ``check`` for a session until it is verified."""
    poller = Poller(check=check, options=options or PollOptions(), sleep=sleep)
    return await poller.poll(session_id, token=token)
