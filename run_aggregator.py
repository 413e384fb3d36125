"""Convenience script for running the configured aggregators locally."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

# Ensure the src directory is on the Python path so the aggregators package can be imported
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from aggregators.api.routes import run_source  # noqa: E402  (import after path setup)
from aggregators.config import AppConfig  # noqa: E402
from aggregators.errors import AggregatorError  # noqa: E402


def main() -> None:
    """Load the source configuration and aggregate each entry."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        config = AppConfig.from_file()
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Could not load source configuration: %s", exc)
        sys.exit(1)

    results = []
    for source in config.iter_sources():
        logging.info("Aggregating %s (%s)", source.name, source.uri)
        try:
            result = run_source(source)
        except AggregatorError as exc:
            logging.error("Failed to aggregate %s: %s", source.uri, exc)
            continue
        results.append(result.model_dump(mode="json"))

    json.dump(results, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
