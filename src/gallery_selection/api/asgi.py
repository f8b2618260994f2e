"""ASGI entrypoint for the gallery selection API."""

from gallery_selection.api.app import create_app
from gallery_selection.containers import build_container

app = create_app(build_container())
