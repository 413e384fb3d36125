"""Source protocol: the per-site extraction layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable

from bs4 import BeautifulSoup, Tag

from aggregators.errors import SelectorError
from aggregators.services.extractor import (
    extraction_time,
    node_attribute,
    node_text,
    parse_timestamp,
    select_first,
)

__all__ = [
    "ArticleSource",
    "DateExtractor",
    "FieldExtractor",
    "NextLinkResolver",
    "Source",
    "attribute_field",
    "date_field",
    "next_link",
    "no_next_link",
    "text_field",
]

FieldExtractor = Callable[[Tag], Optional[str]]
DateExtractor = Callable[[Tag], datetime]
NextLinkResolver = Callable[[BeautifulSoup], Optional[str]]


@runtime_checkable
class ArticleSource(Protocol):
    provider: str
    uri: str
    logo: str

    def article_selector(self) -> str: ...

    def image(self, node: Tag) -> str | None: ...

    def title(self, node: Tag) -> str | None: ...

    def content(self, node: Tag) -> str | None: ...

    def link(self, node: Tag) -> str | None: ...

    def created_at(self, node: Tag) -> datetime: ...

    def updated_at(self, node: Tag) -> datetime: ...

    def next_url(self, document: BeautifulSoup) -> str | None: ...


def _nothing(node: Tag) -> None:
    return None


def _now(node: Tag) -> datetime:
    return extraction_time()


def no_next_link(document: BeautifulSoup) -> None:
    return None


@dataclass(frozen=True)
class Source:
    """An :class:`ArticleSource` assembled from plain values and callables."""

    provider: str
    uri: str
    selector: str
    title: FieldExtractor = _nothing
    content: FieldExtractor = _nothing
    image: FieldExtractor = _nothing
    link: FieldExtractor = _nothing
    created_at: DateExtractor = _now
    updated_at: DateExtractor = _now
    next_url: NextLinkResolver = no_next_link
    logo: str = ""

    def article_selector(self) -> str:
        return self.selector


def text_field(selector: str | None = None) -> FieldExtractor:
    """Extractor returning the text of ``selector`` within the article node."""

    def extract(node: Tag) -> str | None:
        return node_text(node, selector)

    return extract


def attribute_field(selector: str | None, attribute: str) -> FieldExtractor:
    """Extractor returning ``attribute`` of ``selector`` within the article node."""

    def extract(node: Tag) -> str | None:
        return node_attribute(node, selector, attribute)

    return extract


def date_field(
    raw: FieldExtractor,
    fmt: str | None = None,
    fallback: DateExtractor = _now,
) -> DateExtractor:
    """Extractor parsing the string produced by ``raw`` into a timestamp.

    ``fallback`` supplies the value when the page omits a date or it cannot be
    parsed.
    """

    def extract(node: Tag) -> datetime:
        parsed = parse_timestamp(raw(node), fmt)
        return parsed if parsed is not None else fallback(node)

    return extract


def next_link(
    selector: str,
    attribute: str = "href",
    disabled_class: str | None = None,
) -> NextLinkResolver:
    """Resolver following the first element matching ``selector``.

    Returns ``None`` when nothing matches or when the element or its parent
    carries ``disabled_class``.
    """

    def resolve(document: BeautifulSoup) -> str | None:
        if not selector.strip():
            raise SelectorError(selector, "empty selector")
        element = select_first(document, selector)
        if element is None:
            return None
        if disabled_class:
            for candidate in (element, element.parent):
                if candidate is not None and disabled_class in (candidate.get("class") or []):
                    return None
        return node_attribute(element, None, attribute)

    return resolve
