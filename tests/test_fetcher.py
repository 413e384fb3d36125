from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests
from urllib3.exceptions import MaxRetryError, ReadTimeoutError

from aggregators.errors import FetchError, FetchTimeoutError
from aggregators.services import fetcher as fetcher_module
from aggregators.services.fetcher import DEFAULT_TIMEOUT, DocumentFetcher, fetch_with_playwright


class DummyResponse:
    def __init__(self, text: str, status_code: int = 200, url: str = "") -> None:
        self.text = text
        self.status_code = status_code
        self.url = url

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


def make_session(fake_get):
    return SimpleNamespace(get=fake_get, headers={}, close=lambda: None)


def test_fetch_parses_document() -> None:
    captured = {}

    def fake_get(url, timeout):
        captured["url"] = url
        captured["timeout"] = timeout
        return DummyResponse("<html><body><h1>Listing</h1></body></html>")

    session = make_session(fake_get)
    fetcher = DocumentFetcher(session)

    document = fetcher.fetch("https://example.com/blog")

    assert document.h1.get_text() == "Listing"
    assert captured == {"url": "https://example.com/blog", "timeout": DEFAULT_TIMEOUT}
    assert "Mozilla" in session.headers["User-Agent"]


def test_custom_headers_and_timeout() -> None:
    captured = {}

    def fake_get(url, timeout):
        captured["timeout"] = timeout
        return DummyResponse("<html></html>")

    session = make_session(fake_get)
    fetcher = DocumentFetcher(session, timeout=(1, 2), headers={"User-Agent": "aggregators-test"})
    fetcher.fetch("https://example.com")

    assert captured["timeout"] == (1, 2)
    assert session.headers["User-Agent"] == "aggregators-test"


def test_timeout_is_reported_as_fetch_timeout() -> None:
    def fake_get(url, timeout):
        raise requests.ConnectTimeout("timed out")

    fetcher = DocumentFetcher(make_session(fake_get))

    with pytest.raises(FetchTimeoutError) as info:
        fetcher.fetch("https://example.com")

    assert info.value.url == "https://example.com"


def test_http_error_carries_status_code() -> None:
    fetcher = DocumentFetcher(make_session(lambda url, timeout: DummyResponse("gone", 404)))

    with pytest.raises(FetchError) as info:
        fetcher.fetch("https://example.com/missing")

    assert not isinstance(info.value, FetchTimeoutError)
    assert info.value.status_code == 404


def test_connection_error_is_reported_as_fetch_error() -> None:
    def fake_get(url, timeout):
        raise requests.ConnectionError("refused")

    fetcher = DocumentFetcher(make_session(fake_get))

    with pytest.raises(FetchError) as info:
        fetcher.fetch("https://example.com")

    assert info.value.status_code is None


def test_retries_are_mounted_on_default_session() -> None:
    with DocumentFetcher(max_retries=2) as fetcher:
        adapter = fetcher._session.get_adapter("https://example.com")

        assert adapter.max_retries.total == 2
        assert 503 in adapter.max_retries.status_forcelist


def test_playwright_rendering_is_used_when_enabled(monkeypatch) -> None:
    def fail_get(url, timeout):
        raise AssertionError("HTTP session should not be used")

    monkeypatch.setattr(
        "aggregators.services.fetcher.fetch_with_playwright",
        lambda url, timeout: (url, "<html><body><h1>Rendered</h1></body></html>"),
    )
    fetcher = DocumentFetcher(make_session(fail_get), use_playwright=True)

    assert fetcher.fetch("https://example.com").h1.get_text() == "Rendered"


def test_exhausted_read_retries_are_reported_as_timeout() -> None:
    url = "https://example.com/slow"

    def fake_get(url, timeout):
        reason = ReadTimeoutError(None, url, "Read timed out. (read timeout=0.3)")
        raise requests.ConnectionError(MaxRetryError(None, url, reason=reason))

    fetcher = DocumentFetcher(make_session(fake_get), max_retries=1)

    with pytest.raises(FetchTimeoutError) as info:
        fetcher.fetch(url)

    assert info.value.url == url


def test_fetch_page_reports_redirected_address() -> None:
    def fake_get(url, timeout):
        return DummyResponse("<html><body><h1>Blog</h1></body></html>", url="https://example.com/blog/")

    fetcher = DocumentFetcher(make_session(fake_get))

    page = fetcher.fetch_page("https://example.com/blog?page=1")

    assert page.url == "https://example.com/blog/"
    assert page.document.h1.get_text() == "Blog"


class FakePlaywrightError(Exception):
    pass


class FakePlaywrightTimeout(FakePlaywrightError):
    pass


class FakeBrowserPage:
    def __init__(self, status: int) -> None:
        self.status = status
        self.url = ""

    def goto(self, url, wait_until, timeout):
        self.url = url
        return SimpleNamespace(status=self.status, ok=200 <= self.status < 400)

    def wait_for_timeout(self, wait_ms) -> None:
        pass

    def content(self) -> str:
        return "<html><body><h1>Rendered</h1></body></html>"


def install_fake_playwright(monkeypatch, *, status: int = 200, launch_error: bool = False) -> list[str]:
    closed: list[str] = []
    page = FakeBrowserPage(status)
    context = SimpleNamespace(new_page=lambda: page, close=lambda: closed.append("context"))
    browser = SimpleNamespace(new_context=lambda **kwargs: context, close=lambda: closed.append("browser"))

    def launch(headless):
        if launch_error:
            raise FakePlaywrightError("Executable doesn't exist")
        return browser

    class Manager:
        def __enter__(self):
            return SimpleNamespace(firefox=SimpleNamespace(launch=launch))

        def __exit__(self, *exc_info):
            return False

    monkeypatch.setattr(fetcher_module, "sync_playwright", Manager)
    monkeypatch.setattr(fetcher_module, "PlaywrightError", FakePlaywrightError)
    monkeypatch.setattr(fetcher_module, "PlaywrightTimeoutError", FakePlaywrightTimeout)
    return closed


def test_playwright_returns_rendered_content(monkeypatch) -> None:
    closed = install_fake_playwright(monkeypatch)

    url, html = fetch_with_playwright("https://example.com/news", wait_ms=0)

    assert url == "https://example.com/news"
    assert "Rendered" in html
    assert closed == ["context", "browser"]


def test_playwright_rejects_error_status(monkeypatch) -> None:
    closed = install_fake_playwright(monkeypatch, status=404)

    with pytest.raises(FetchError) as info:
        fetch_with_playwright("https://example.com/missing", wait_ms=0)

    assert info.value.status_code == 404
    assert closed == ["context", "browser"]


def test_playwright_launch_failure_is_a_fetch_error(monkeypatch) -> None:
    install_fake_playwright(monkeypatch, launch_error=True)

    with pytest.raises(FetchError) as info:
        fetch_with_playwright("https://example.com/news", wait_ms=0)

    assert "launch" in str(info.value)
