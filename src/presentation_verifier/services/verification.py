"""End-to-end presentation request flow for a verifier client."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from presentation_verifier.adapters.verifier_api_client import VerifierApi
from presentation_verifier.domain.links import DEFAULT_WALLET_LINK_BASE, to_wallet_link
from presentation_verifier.domain.sessions import SessionSnapshot
from presentation_verifier.services.polling import (
    CancellationToken,
    Poller,
    PollOptions,
    SleepFn,
)
from presentation_verifier.services.tokens import (
    DecodedPresentation,
    decode_presentation,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a successful verification."""

    session_id: str
    wallet_link: str
    snapshot: SessionSnapshot
    decoded: DecodedPresentation


@dataclass
class VerificationFlow:
    """Starts a session, hands the wallet link out, and waits for the result."""

    api: VerifierApi
    options: PollOptions = field(default_factory=PollOptions)
    wallet_link_base: str = DEFAULT_WALLET_LINK_BASE
    strict: bool = False
    sleep: SleepFn = asyncio.sleep

    async def run(
        self,
        on_link: Callable[[str], None] | None = None,
        on_status: Callable[[str], None] | None = None,
        token: CancellationToken | None = None,
    ) -> VerificationResult:
        """Run one verification and return the decoded presentation."""
        started = await self.api.start()
        wallet_link = to_wallet_link(started.holder_link, self.wallet_link_base)
        logger.info("Waiting for holder on session %s", started.id)
        if on_link is not None:
            on_link(wallet_link)
        options = self.options
        if on_status is not None:
            options = replace(options, on_status=on_status)
        poller = Poller(check=self.api.check, options=options, sleep=self.sleep)
        snapshot = await poller.poll(started.id, token=token)
        decoded = decode_presentation(snapshot.presentation, strict=self.strict)
        for error in decoded.errors:
            logger.warning(
                "Credential %d in session %s could not be decoded: %s",
                error.index,
                started.id,
                error.message,
            )
        return VerificationResult(
            session_id=started.id,
            wallet_link=wallet_link,
            snapshot=snapshot,
            decoded=decoded,
        )

    async def close(self) -> None:
        """Close the underlying API client."""
        await self.api.close()
