"""Tests for the verifier HTTP API."""

from fastapi.testclient import TestClient

from presentation_verifier.api.app import create_app
from presentation_verifier.containers import AppContainer
from presentation_verifier.domain.sessions import BackendStatus, Presentation
from presentation_verifier.services.tokens import encode_unsigned_token
from tests.conftest import FakeClock, FakeVerificationBackend

CALLBACK_HEADERS = {"X-Callback-Token": "callback-secret"}


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.json() == {"status": "ok"}


def test_start_returns_link_and_id(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/verify/start")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "req-1"
    assert body["sessionLink"].startswith("openid-vc://")


def test_start_backend_unavailable_returns_503(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    backend.fail_create = True
    client = TestClient(create_app(container))

    response = client.post("/api/verify/start")

    assert response.status_code == 503


def test_check_flow_until_verified(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]

    pending = client.post("/api/verify/check", json={"id": session_id})
    assert pending.json() == {"status": "initiated"}

    token = encode_unsigned_token({"degree": "BSc"})
    backend.statuses[session_id] = BackendStatus(
        status="verified",
        presentation=Presentation(verifiable_credential=(token,)),
    )
    verified = client.post("/api/verify/check", json={"id": session_id})

    assert verified.json() == {
        "status": "verified",
        "presentation": {"verifiableCredential": [token]},
    }


def test_check_unknown_returns_404(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/verify/check", json={"id": "missing"})

    assert response.status_code == 404


def test_check_expired_session(container: AppContainer, clock: FakeClock) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]
    clock.advance(3600)

    response = client.post("/api/verify/check", json={"id": session_id})

    assert response.json() == {"status": "expired"}


def test_callback_applies_status(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]

    response = client.post(
        "/api/verify/callback",
        json={"id": session_id, "status": "presented"},
        headers=CALLBACK_HEADERS,
    )

    assert response.status_code == 200
    assert response.json() == {"status": "presented"}


def test_callback_requires_token(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]

    response = client.post(
        "/api/verify/callback", json={"id": session_id, "status": "presented"}
    )

    assert response.status_code == 401


def test_callback_invalid_transition_returns_409(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]
    client.post(
        "/api/verify/callback",
        json={"id": session_id, "status": "failed"},
        headers=CALLBACK_HEADERS,
    )

    response = client.post(
        "/api/verify/callback",
        json={"id": session_id, "status": "presented"},
        headers=CALLBACK_HEADERS,
    )

    assert response.status_code == 409


def test_callback_rejects_unknown_status(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]

    response = client.post(
        "/api/verify/callback",
        json={"id": session_id, "status": "pending"},
        headers=CALLBACK_HEADERS,
    )

    assert response.status_code == 422


def test_check_backend_failure_returns_503(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]
    backend.fail_status = True

    response = client.post("/api/verify/check", json={"id": session_id})

    assert response.status_code == 503


def test_invalid_transition_body_names_statuses(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = client.get("/api/verify/start").json()["id"]
    client.post(
        "/api/verify/callback",
        json={"id": session_id, "status": "expired"},
        headers=CALLBACK_HEADERS,
    )

    response = client.post(
        "/api/verify/callback",
        json={"id": session_id, "status": "failed"},
        headers=CALLBACK_HEADERS,
    )

    assert response.status_code == 409
    assert response.json()["current"] == "expired"
    assert response.json()["requested"] == "failed"
