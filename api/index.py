"""Serverless entrypoint exposing the gallery API as a single ASGI app."""

import sys
from pathlib import Path

_SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if _SRC_DIR.is_dir() and str(_SRC_DIR) not in sys.path:
    sys.path.append(str(_SRC_DIR))

from gallery_selection.api.app import create_app  # noqa: E402
from gallery_selection.containers import build_container  # noqa: E402

app = create_app(build_container())
