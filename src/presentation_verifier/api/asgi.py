"""ASGI entrypoint for the presentation verifier API."""

from presentation_verifier.api.app import create_app
from presentation_verifier.containers import build_container

app = create_app(build_container())
