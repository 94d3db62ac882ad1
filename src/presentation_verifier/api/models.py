"""Pydantic models for the verifier HTTP API."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from presentation_verifier.domain.sessions import (
    STATUSES,
    Presentation,
    SessionSnapshot,
)


class PresentationPayload(BaseModel):
    """Credential tokens delivered by the holder."""

    model_config = ConfigDict(populate_by_name=True)

    verifiable_credential: list[str] = Field(
        default_factory=list, alias="verifiableCredential"
    )

    @classmethod
    def from_domain(cls, presentation: Presentation) -> "PresentationPayload":
        return cls(verifiable_credential=list(presentation.verifiable_credential))

    def to_domain(self) -> Presentation:
        return Presentation(verifiable_credential=tuple(self.verifiable_credential))


class StartResponse(BaseModel):
    """Response of the start operation."""

    model_config = ConfigDict(populate_by_name=True)

    session_link: str = Field(alias="sessionLink")
    id: str


class CheckRequest(BaseModel):
    """Request body of the check operation."""

    id: str


class CheckResponse(BaseModel):
    """Response of the check operation."""

    status: str
    presentation: PresentationPayload | None = None

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "CheckResponse":
        presentation = None
        if snapshot.presentation is not None:
            presentation = PresentationPayload.from_domain(snapshot.presentation)
        return cls(status=snapshot.status, presentation=presentation)


class CallbackRequest(BaseModel):
    """Status pushed by the verification backend."""

    id: str
    status: str
    presentation: PresentationPayload | None = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str) -> str:
        if value not in STATUSES:
            raise ValueError(f"unknown status {value!r}")
        return value
