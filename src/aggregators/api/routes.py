"""API routes exposing the aggregators."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import List

from fastapi import APIRouter, Body, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from aggregators.config import AppConfig, SourceConfig
from aggregators.errors import (
    AggregatorError,
    FetchError,
    FetchTimeoutError,
    PaginationError,
)
from aggregators.models import AggregateResult

logger = logging.getLogger(__name__)

router = APIRouter()


class AggregateError(BaseModel):
    source: str
    uri: str
    error: str


class AggregateResponse(BaseModel):
    results: List[AggregateResult] = Field(default_factory=list)
    errors: List[AggregateError] = Field(default_factory=list)


class AggregateRequest(BaseModel):
    fetch_all: bool | None = None
    uri: str | None = None
    max_pages: int | None = Field(default=None, ge=1)


class SourceEntry(BaseModel):
    name: str
    slug: str
    provider: str
    host: str
    logo: str = ""


class SourcesResponse(BaseModel):
    sources: List[SourceEntry] = Field(default_factory=list)


def _load_config() -> AppConfig:
    try:
        return AppConfig.from_file()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def run_source(
    source: SourceConfig,
    *,
    fetch_all: bool | None = None,
    uri: str | None = None,
    max_pages: int | None = None,
) -> AggregateResult:
    """Traverse ``source`` and gather its articles."""

    traversal = source.traversal(max_pages=max_pages)
    resolved_fetch_all = source.fetch_all if fetch_all is None else fetch_all
    try:
        articles = traversal.collect(resolved_fetch_all, uri)
    finally:
        traversal.fetcher.close()
    return AggregateResult(
        source=source.name,
        provider=source.label,
        articles=articles,
        fetched_at=datetime.now(UTC),
    )


def _status_for(exc: AggregatorError) -> int:
    if isinstance(exc, FetchTimeoutError):
        return 504
    if isinstance(exc, FetchError):
        return 502
    if isinstance(exc, PaginationError):
        return 508
    return 500


@router.get("/sources", response_model=SourcesResponse)
async def list_sources() -> SourcesResponse:
    """Return the configured set of sources."""

    config = _load_config()
    entries = [
        SourceEntry(
            name=source.name,
            slug=source.slug,
            provider=source.label,
            host=source.host,
            logo=source.logo,
        )
        for source in config.iter_sources()
    ]
    return SourcesResponse(sources=entries)


@router.post("/sources/{slug}/aggregate", response_model=AggregateResult)
async def aggregate_source(
    slug: str, payload: AggregateRequest | None = Body(default=None)
) -> AggregateResult:
    """Aggregate a single configured source."""

    config = _load_config()
    source = config.get_source(slug)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Unknown source: {slug}")

    request = payload or AggregateRequest()
    try:
        return await run_in_threadpool(
            run_source,
            source,
            fetch_all=request.fetch_all,
            uri=request.uri,
            max_pages=request.max_pages,
        )
    except AggregatorError as exc:
        logger.exception("Failed to aggregate %s", source.name)
        raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc


@router.post("/aggregate", response_model=AggregateResponse)
async def aggregate_all() -> AggregateResponse:
    """Aggregate every configured source, reporting failures per source."""

    config = _load_config()
    results: List[AggregateResult] = []
    errors: List[AggregateError] = []

    for source in config.iter_sources():
        try:
            result = await run_in_threadpool(run_source, source)
        except AggregatorError as exc:
            logger.exception("Failed to aggregate %s", source.uri)
            errors.append(AggregateError(source=source.name, uri=str(source.uri), error=str(exc)))
            continue
        results.append(result)

    return AggregateResponse(results=results, errors=errors)
