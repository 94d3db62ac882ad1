"""Structural decoding of compact credential tokens.

The decoder only reads the claims segment. Signature, expiry and issuer
checks belong to the verification backend and are never performed here.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field

from presentation_verifier.domain.errors import MalformedToken
from presentation_verifier.domain.sessions import Presentation


@dataclass(frozen=True)
class TokenError:
    """A token in a presentation that failed to decode."""

    index: int
    message: str


@dataclass
class DecodedPresentation:
    """Claims decoded from a presentation, aligned with the input tokens."""

    credentials: list[dict[str, object] | None] = field(default_factory=list)
    errors: list[TokenError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def decode_token(token: str | None) -> dict[str, object] | None:
    """Decode the payload segment of a compact token into a claims mapping."""
    if not token:
        return None
    segments = token.split(".")
    if len(segments) < 2:
        raise MalformedToken("Token must contain at least two segments")
    raw = _b64url_decode(segments[1])
    try:
        claims = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedToken(f"Token payload is not valid JSON: {exc}") from exc
    if not isinstance(claims, dict):
        raise MalformedToken("Token payload must be a JSON object")
    return claims


def encode_unsigned_token(
    claims: dict[str, object], header: dict[str, object] | None = None
) -> str:
    """Build a compact token with an empty signature segment."""
    header = header or {"alg": "none", "typ": "JWT"}
    return ".".join(
        [
            _b64url_encode(json.dumps(header, separators=(",", ":")).encode()),
            _b64url_encode(json.dumps(claims, separators=(",", ":")).encode()),
            "",
        ]
    )


def decode_presentation(
    presentation: Presentation | None, strict: bool = False
) -> DecodedPresentation:
    """Decode every token in a presentation.

    In the default mode a malformed token is recorded in ``errors`` and the
    remaining tokens are still decoded. With ``strict`` the first malformed
    token raises ``MalformedToken``.
    """
    decoded = DecodedPresentation()
    if presentation is None:
        return decoded
    for index, token in enumerate(presentation.verifiable_credential):
        try:
            decoded.credentials.append(decode_token(token))
        except MalformedToken as exc:
            if strict:
                raise
            decoded.credentials.append(None)
            decoded.errors.append(TokenError(index=index, message=str(exc)))
    return decoded


def _b64url_decode(segment: str) -> bytes:
    normalized = segment.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedToken(f"Token payload is not valid base64url: {exc}") from exc


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")
