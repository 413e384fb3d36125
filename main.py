"""ASGI entrypoint for the Aggregators API.

Serve it with ``uvicorn main:app`` or run ``python main.py``, which binds to
``AGGREGATORS_HOST``/``AGGREGATORS_PORT`` (default ``127.0.0.1:8000``).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Make the src layout importable without installing the package
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from aggregators.api.app import app  # noqa: E402  (import after path setup)

__all__ = ("app",)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("AGGREGATORS_HOST", "127.0.0.1"),
        port=int(os.environ.get("AGGREGATORS_PORT", "8000")),
    )
