"""Turn listing pages into :class:`~aggregators.models.Article` records."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from bs4 import BeautifulSoup, Tag
from dateutil import parser as date_parser
from pydantic import ValidationError
from soupsieve import SelectorSyntaxError

from aggregators.errors import ExtractionError, FieldExtractionError, SelectorError
from aggregators.models import Article

if TYPE_CHECKING:
    from aggregators.services.source import ArticleSource

__all__ = [
    "extract_articles",
    "node_attribute",
    "node_text",
    "extraction_time",
    "parse_timestamp",
    "select_first",
    "select_nodes",
]

logger = logging.getLogger(__name__)

FIELDS = ("image", "title", "content", "link", "created_at", "updated_at")

_extracted_at: ContextVar[datetime | None] = ContextVar("extracted_at", default=None)


def extraction_time() -> datetime:
    """Timestamp shared by every fallback of the article being built.

    Outside article extraction this is simply the current time in UTC.
    """

    current = _extracted_at.get()
    return current if current is not None else datetime.now(timezone.utc)


def select_nodes(document: BeautifulSoup | Tag, selector: str) -> List[Tag]:
    """Return every node matching ``selector`` in document order.

    Raises :class:`~aggregators.errors.SelectorError` when the selector is blank
    or cannot be parsed.
    """

    if not selector or not selector.strip():
        raise SelectorError(selector, "empty selector")
    try:
        return list(document.select(selector))
    except SelectorSyntaxError as exc:
        raise SelectorError(selector) from exc


def select_first(node: Tag, selector: str | None) -> Tag | None:
    """Return the first match of ``selector`` under ``node``; ``node`` itself without one."""

    if not selector:
        return node
    try:
        return node.select_one(selector)
    except SelectorSyntaxError as exc:
        raise SelectorError(selector) from exc


def node_text(node: Tag, selector: str | None = None) -> str | None:
    """Return the stripped text of the first match, or ``None``."""

    match = select_first(node, selector)
    if match is None:
        return None
    text = match.get_text(" ", strip=True)
    return text or None


def node_attribute(node: Tag, selector: str | None, attribute: str) -> str | None:
    """Return ``attribute`` of the first match, or ``None`` when absent."""

    match = select_first(node, selector)
    if match is None:
        return None
    value = match.get(attribute)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_timestamp(value: str | None, fmt: str | None = None) -> datetime | None:
    """Parse a date string found on a page.

    ``fmt`` is a :func:`datetime.strptime` format; without one the value is
    handed to :mod:`dateutil`. Naive results are assumed to be UTC.
    """

    if not value:
        return None
    try:
        if fmt:
            parsed = datetime.strptime(value.strip(), fmt)
        else:
            parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build_article(node: Tag, source: "ArticleSource") -> Article:
    values = {}
    token = _extracted_at.set(datetime.now(timezone.utc))
    try:
        for field in FIELDS:
            try:
                values[field] = getattr(source, field)(node)
            except Exception as exc:
                raise FieldExtractionError(field, source.provider) from exc
    finally:
        _extracted_at.reset(token)
    try:
        return Article(provider=source.provider, **values)
    except ValidationError as exc:
        raise ExtractionError(f"Invalid article from {source.provider}: {exc}") from exc


def extract_articles(document: BeautifulSoup, source: "ArticleSource") -> List[Article]:
    """Build one article per node matched by the source's article selector.

    An invalid article selector yields an empty page instead of an error so the
    caller can still follow pagination. Failures inside field extractors
    propagate as :class:`~aggregators.errors.FieldExtractionError`.
    """

    selector = source.article_selector()
    try:
        nodes = select_nodes(document, selector)
    except SelectorError as exc:
        logger.warning("Skipping page for %s: %s", source.provider, exc)
        return []

    return [_build_article(node, source) for node in nodes]
