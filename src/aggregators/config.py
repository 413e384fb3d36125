"""Configuration models and helpers for the article aggregators."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Iterable, List
from urllib.parse import urlparse

from pydantic import BaseModel, Field, HttpUrl, ValidationError

from aggregators.services.fetcher import DEFAULT_HEADERS, DocumentFetcher
from aggregators.services.source import (
    FieldExtractor,
    Source,
    attribute_field,
    date_field,
    next_link,
    no_next_link,
    text_field,
)
from aggregators.services.traversal import PagedCrawlTraversal

__all__ = [
    "AppConfig",
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "DateFieldConfig",
    "FetchConfig",
    "FieldConfig",
    "NextLinkConfig",
    "SourceConfig",
]

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "data" / "sources.json"
CONFIG_PATH_ENV = "AGGREGATORS_CONFIG_PATH"


def _default_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV)
    return Path(override) if override else DEFAULT_CONFIG_PATH


class FetchConfig(BaseModel):
    """Transport settings for one source."""

    connect_timeout: float = Field(default=10, gt=0, description="Seconds to wait for a connection")
    read_timeout: float = Field(default=60, gt=0, description="Seconds to wait for the response")
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Retries on connection errors and 429/5xx answers; 0 disables retrying",
    )
    user_agent: str | None = Field(
        default=None,
        description="Overrides the default browser-like User-Agent header",
    )
    use_playwright: bool = Field(
        default=False,
        description=(
            "Whether to render pages using Playwright instead of plain HTTP requests. "
            "This can help when sites rely on heavy client-side rendering."
        ),
    )

    def build_fetcher(self) -> DocumentFetcher:
        """Return a :class:`DocumentFetcher` using these settings."""

        headers = dict(DEFAULT_HEADERS)
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return DocumentFetcher(
            timeout=(self.connect_timeout, self.read_timeout),
            max_retries=self.max_retries,
            headers=headers,
            use_playwright=self.use_playwright,
        )


class FieldConfig(BaseModel):
    """Where to find one article field within the article node."""

    selector: str | None = Field(
        default=None,
        description="CSS selector relative to the article node; the node itself when omitted",
    )
    attribute: str | None = Field(
        default=None,
        description="Attribute to read; the element text is used when omitted",
    )

    def build(self) -> FieldExtractor:
        if self.attribute:
            return attribute_field(self.selector, self.attribute)
        return text_field(self.selector)


class DateFieldConfig(FieldConfig):
    """Location and format of a timestamp field."""

    format: str | None = Field(
        default=None,
        description="strptime format; free-form dates are parsed when omitted",
    )


class NextLinkConfig(BaseModel):
    """How to find the link to the following listing page."""

    selector: str = Field(..., description="CSS selector of the next-page element")
    attribute: str = Field(default="href")
    disabled_class: str | None = Field(
        default=None,
        description="CSS class marking the next-page control as disabled on the last page",
    )


class SourceConfig(BaseModel):
    """Configuration for a single source of paginated article listings."""

    name: str = Field(..., description="Human friendly source name")
    provider: str | None = Field(
        default=None,
        description="Provider label attached to every article; defaults to the name",
    )
    uri: HttpUrl = Field(..., description="First listing page")
    logo: str = Field(default="", description="Logo file shown next to the provider's articles")
    article_selector: str = Field(..., description="CSS selector of the repeating article node")
    image: FieldConfig | None = None
    title: FieldConfig | None = None
    content: FieldConfig | None = None
    link: FieldConfig | None = None
    created_at: DateFieldConfig | None = None
    updated_at: DateFieldConfig | None = Field(
        default=None,
        description="Falls back to the created_at extraction when omitted",
    )
    next_link: NextLinkConfig | None = None
    fetch_all: bool = Field(default=False, description="Follow next-page links by default")
    max_pages: int = Field(default=50, ge=1)
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    @property
    def label(self) -> str:
        return self.provider or self.name

    @property
    def slug(self) -> str:
        """Return a URL-safe identifier for the source."""

        normalized = re.sub(r"[^a-z0-9]+", "-", self.name.strip().lower())
        return normalized.strip("-") or "source"

    @property
    def host(self) -> str:
        return urlparse(str(self.uri)).netloc

    def build(self) -> Source:
        """Return the :class:`Source` described by this configuration."""

        optional = {}
        for field in ("image", "title", "content", "link"):
            field_config = getattr(self, field)
            if field_config is not None:
                optional[field] = field_config.build()

        if self.created_at is not None:
            created = date_field(self.created_at.build(), self.created_at.format)
            optional["created_at"] = created
            if self.updated_at is None:
                optional["updated_at"] = created
        if self.updated_at is not None:
            optional["updated_at"] = date_field(self.updated_at.build(), self.updated_at.format)

        if self.next_link is not None:
            resolver = next_link(
                self.next_link.selector,
                self.next_link.attribute,
                self.next_link.disabled_class,
            )
        else:
            resolver = no_next_link

        return Source(
            provider=self.label,
            uri=str(self.uri),
            selector=self.article_selector,
            next_url=resolver,
            logo=self.logo,
            **optional,
        )

    def traversal(self, *, max_pages: int | None = None) -> PagedCrawlTraversal:
        """Return a traversal wired with this source's fetcher settings."""

        return PagedCrawlTraversal(
            self.build(),
            self.fetch.build_fetcher(),
            max_pages=max_pages if max_pages is not None else self.max_pages,
        )


class AppConfig(BaseModel):
    """Collection of :class:`SourceConfig` entries."""

    sources: List[SourceConfig] = Field(default_factory=list)

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "AppConfig":
        """Load configuration data from a JSON file."""

        config_path = Path(path) if path else _default_path()
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Configuration file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file: {config_path}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc

    def dump(self, path: Path | str | None = None) -> None:
        """Persist the configuration back to disk as JSON."""

        config_path = Path(path) if path else _default_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(self.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")

    def iter_sources(self) -> Iterable[SourceConfig]:
        """Iterate over configured sources."""

        return iter(self.sources)

    def add_source(self, source: SourceConfig) -> None:
        """Append a new source configuration to the collection."""

        self.sources.append(source)

    def get_source(self, slug: str) -> SourceConfig | None:
        """Return the source whose slug matches ``slug``."""

        for source in self.sources:
            if source.slug == slug:
                return source
        return None
