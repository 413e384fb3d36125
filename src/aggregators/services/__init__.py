"""Service layer entry points for the aggregators package."""

from __future__ import annotations

from .extractor import extract_articles  # noqa: F401
from .fetcher import DocumentFetcher  # noqa: F401
from .source import ArticleSource, Source  # noqa: F401
from .traversal import ArticleStream, PagedCrawlTraversal  # noqa: F401

__all__ = [
    "ArticleSource",
    "ArticleStream",
    "DocumentFetcher",
    "PagedCrawlTraversal",
    "Source",
    "extract_articles",
]
