"""HTTP transport that turns listing page addresses into parsed documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.exceptions import MaxRetryError, ReadTimeoutError
from urllib3.util.retry import Retry

try:  # pragma: no cover - optional dependency during tests
    from playwright.sync_api import Error as PlaywrightError
    from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
    from playwright.sync_api import sync_playwright
except ModuleNotFoundError:  # pragma: no cover - optional dependency during tests
    sync_playwright = None  # type: ignore[assignment]
    PlaywrightError = PlaywrightTimeoutError = None  # type: ignore[assignment,misc]

from aggregators.errors import FetchError, FetchTimeoutError

__all__ = [
    "DEFAULT_HEADERS",
    "DEFAULT_TIMEOUT",
    "DocumentFetcher",
    "Page",
    "fetch_with_playwright",
]

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/129.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

#: ``(connect, read)`` timeout in seconds handed to :mod:`requests`.
DEFAULT_TIMEOUT: Tuple[float, float] = (10, 60)

RETRY_STATUSES = [429, 500, 502, 503, 504]


@dataclass(frozen=True)
class Page:
    """A parsed listing page and the address it was finally served from."""

    url: str
    document: BeautifulSoup


def _timed_out(exc: requests.RequestException) -> bool:
    for arg in exc.args:
        if isinstance(arg, MaxRetryError) and isinstance(arg.reason, ReadTimeoutError):
            return True
        if isinstance(arg, ReadTimeoutError):
            return True
    return False


def _ensure_playwright() -> None:
    """Ensure the Playwright dependency is available."""

    if sync_playwright is None:  # pragma: no cover - runtime guard
        raise RuntimeError(
            "Playwright is required for this source but is not installed. Install the "
            "'playwright' package and run 'playwright install firefox' to enable rendering."
        )


def fetch_with_playwright(url: str, *, timeout: float = 60, wait_ms: int = 3000) -> Tuple[str, str]:
    """Render ``url`` with a headless Firefox browser.

    Returns the final URL after redirects together with the page content.
    """

    _ensure_playwright()

    with sync_playwright() as playwright:  # type: ignore[operator]
        try:
            browser = playwright.firefox.launch(headless=True)
        except PlaywrightError as exc:
            raise FetchError(url, f"could not launch browser: {exc}") from exc
        context = browser.new_context(extra_http_headers=DEFAULT_HEADERS)
        try:
            page = context.new_page()
            try:
                response = page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
            except PlaywrightTimeoutError as exc:
                raise FetchTimeoutError(url, "timed out while rendering") from exc
            except PlaywrightError as exc:
                raise FetchError(url, str(exc)) from exc
            if response is not None and not response.ok:
                raise FetchError(url, f"HTTP {response.status}", status_code=response.status)
            page.wait_for_timeout(wait_ms)
            return page.url or url, page.content()
        finally:
            context.close()
            browser.close()


def _build_session(max_retries: int, headers: dict[str, str]) -> requests.Session:
    session = requests.Session()
    session.headers.update(headers)
    if max_retries > 0:
        retry = Retry(
            total=max_retries,
            connect=max_retries,
            read=max_retries,
            backoff_factor=1,
            status_forcelist=RETRY_STATUSES,
            allowed_methods={"GET"},
            raise_on_status=False,
        )
        session.mount("https://", HTTPAdapter(max_retries=retry))
        session.mount("http://", HTTPAdapter(max_retries=retry))
    return session


class DocumentFetcher:
    """Retrieve listing pages and parse them with BeautifulSoup.

    A single :class:`requests.Session` is reused for every page fetched by the
    instance, so one fetcher should be owned by one traversal at a time.
    Transport failures are translated into :class:`~aggregators.errors.FetchError`
    and timeouts into :class:`~aggregators.errors.FetchTimeoutError`.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        headers: dict[str, str] | None = None,
        parser: str = "lxml",
        use_playwright: bool = False,
    ) -> None:
        merged_headers = dict(DEFAULT_HEADERS)
        if headers:
            merged_headers.update(headers)
        if session is None:
            session = _build_session(max_retries, merged_headers)
        else:
            session.headers.update(merged_headers)
        self._session = session
        self.timeout = timeout
        self.parser = parser
        self.use_playwright = use_playwright

    def __enter__(self) -> "DocumentFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def download(self, url: str) -> Tuple[str, str]:
        """Return ``(final_url, html)`` for ``url``, following redirects."""

        if self.use_playwright:
            return fetch_with_playwright(url, timeout=self.timeout[1])

        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise FetchTimeoutError(url, "request timed out") from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise FetchError(url, f"HTTP {status}", status_code=status) from exc
        except requests.RequestException as exc:
            # Exhausted read retries arrive as ConnectionError(MaxRetryError(reason=ReadTimeoutError)).
            if _timed_out(exc):
                raise FetchTimeoutError(url, "request timed out after retries") from exc
            raise FetchError(url, str(exc)) from exc
        return response.url or url, response.text

    def fetch_page(self, url: str) -> Page:
        """Fetch ``url`` and return the parsed document with its final address."""

        logger.debug("Requesting %s", url)
        final_url, html = self.download(url)
        if final_url != url:
            logger.info("%s redirected to %s", url, final_url)
        return Page(url=final_url, document=BeautifulSoup(html, self.parser))

    def fetch(self, url: str) -> BeautifulSoup:
        """Fetch ``url`` and return the parsed document."""

        return self.fetch_page(url).document
