"""Aggregators package exposing configuration, API, and traversal helpers.

Settings read from the environment: ``AGGREGATORS_CONFIG_PATH`` (source
configuration file) and, for ``main.py``, ``AGGREGATORS_HOST`` and
``AGGREGATORS_PORT``. They may also be placed in a project-level ``.env`` file.
"""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


def _load_local_env(env_path: Path = ENV_FILE) -> None:
    """Copy ``KEY=value`` pairs from ``env_path`` into ``os.environ``.

    Variables already set in the environment win. ``export`` prefixes and
    surrounding quotes are accepted.
    """

    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = (part.strip() for part in line.split("=", 1))
        if key and key not in os.environ:
            os.environ[key] = value.strip("\"'")


_load_local_env()

from .config import AppConfig, SourceConfig  # noqa: E402,F401
from .models import Article  # noqa: E402,F401
from .services.traversal import PagedCrawlTraversal  # noqa: E402,F401

__all__ = ["AppConfig", "Article", "PagedCrawlTraversal", "SourceConfig"]
