"""Paginated traversal of article listings."""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Protocol
from urllib.parse import urldefrag, urljoin

from aggregators.errors import PageLimitExceededError, PaginationCycleError
from aggregators.models import Article
from aggregators.services.extractor import extract_articles
from aggregators.services.fetcher import DocumentFetcher, Page
from aggregators.services.source import ArticleSource

__all__ = ["ArticleStream", "DEFAULT_MAX_PAGES", "PagedCrawlTraversal"]

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 100


class Fetcher(Protocol):
    def fetch_page(self, url: str) -> Page: ...


def _page_key(url: str) -> str:
    return urldefrag(url)[0]


class PagedCrawlTraversal:
    """Walk a source's listing pages and hand out the extracted articles.

    Pages are fetched strictly one at a time. Every article of a page is
    delivered before the next page is requested, whichever delivery mode is
    used: a callback (:meth:`traverse`), a lazy iterator (:meth:`iter_articles`,
    :meth:`stream`) or a list (:meth:`collect`).
    """

    def __init__(
        self,
        source: ArticleSource,
        fetcher: Fetcher | None = None,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.source = source
        self.fetcher = fetcher if fetcher is not None else DocumentFetcher()
        self.max_pages = max_pages

    def iter_articles(self, fetch_all: bool = False, uri: str | None = None) -> Iterator[Article]:
        """Yield articles page by page, fetching lazily.

        With ``fetch_all`` false only the first page is fetched. Otherwise the
        next-page links are followed until the source resolves none.
        """

        url = uri if uri is not None else self.source.uri
        visited: set[str] = set()
        pages = 0

        while True:
            if _page_key(url) in visited:
                raise PaginationCycleError(url)
            if pages >= self.max_pages:
                raise PageLimitExceededError(self.max_pages, url)
            visited.add(_page_key(url))
            pages += 1

            logger.info("Fetching page %d for %s: %s", pages, self.source.provider, url)
            page = self.fetcher.fetch_page(url)
            # A redirect onto a page already walked is a cycle too.
            landed = _page_key(page.url)
            if landed != _page_key(url):
                if landed in visited:
                    raise PaginationCycleError(page.url)
                visited.add(landed)

            articles = extract_articles(page.document, self.source)
            logger.info("Extracted %d articles from %s", len(articles), page.url)
            yield from articles

            if not fetch_all:
                return
            next_url = self.source.next_url(page.document)
            if next_url is None:
                return
            url = urljoin(page.url, next_url)

    def traverse(
        self,
        fetch_all: bool = False,
        uri: str | None = None,
        on_record: Callable[[Article], object] | None = None,
    ) -> None:
        """Run the traversal, invoking ``on_record`` for every article in order."""

        for article in self.iter_articles(fetch_all, uri):
            if on_record is not None:
                on_record(article)

    def stream(self, fetch_all: bool = False, uri: str | None = None) -> "ArticleStream":
        """Return a restartable lazy sequence of articles."""

        return ArticleStream(self, fetch_all, uri)

    def collect(self, fetch_all: bool = False, uri: str | None = None) -> List[Article]:
        """Return every article of the traversal as an ordered list."""

        return list(self.iter_articles(fetch_all, uri))


class ArticleStream:
    """Iterable re-running its traversal each time it is iterated."""

    def __init__(self, traversal: PagedCrawlTraversal, fetch_all: bool, uri: str | None) -> None:
        self._traversal = traversal
        self._fetch_all = fetch_all
        self._uri = uri

    def __iter__(self) -> Iterator[Article]:
        return self._traversal.iter_articles(self._fetch_all, self._uri)
