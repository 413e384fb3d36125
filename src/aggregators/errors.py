"""Exception hierarchy raised while aggregating article listings."""

from __future__ import annotations

__all__ = [
    "AggregatorError",
    "ExtractionError",
    "FetchError",
    "FetchTimeoutError",
    "FieldExtractionError",
    "PageLimitExceededError",
    "PaginationCycleError",
    "PaginationError",
    "SelectorError",
]


class AggregatorError(Exception):
    """Base class for every error raised by the aggregators package."""


class FetchError(AggregatorError):
    """A listing page could not be retrieved."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.status_code = status_code


class FetchTimeoutError(FetchError):
    """The remote server did not answer within the configured timeout."""


class ExtractionError(AggregatorError):
    """Articles could not be extracted from a fetched page."""


class SelectorError(ExtractionError):
    """A CSS selector is blank or syntactically invalid."""

    def __init__(self, selector: str, message: str = "invalid selector") -> None:
        super().__init__(f"{message}: {selector!r}")
        self.selector = selector


class FieldExtractionError(ExtractionError):
    """A field extractor failed for one article node."""

    def __init__(self, field: str, provider: str) -> None:
        super().__init__(f"Could not extract {field!r} for provider {provider!r}")
        self.field = field
        self.provider = provider


class PaginationError(AggregatorError):
    """Following the next-page links did not terminate cleanly."""


class PaginationCycleError(PaginationError):
    """The next-page link points at a page already visited."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Pagination cycle detected at {url}")
        self.url = url


class PageLimitExceededError(PaginationError):
    """More pages were requested than the traversal allows."""

    def __init__(self, limit: int, url: str) -> None:
        super().__init__(f"Page limit of {limit} reached before {url}")
        self.limit = limit
        self.url = url
