"""Domain models used across the application."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Article(BaseModel):
    """A single article extracted from a listing page."""

    model_config = ConfigDict(frozen=True)

    image: Optional[str] = None
    title: str = ""
    content: str = ""
    provider: str
    link: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("title", "content", mode="before")
    @classmethod
    def _blank_when_missing(cls, value: object) -> object:
        return "" if value is None else value


class AggregateResult(BaseModel):
    """Articles gathered for one source."""

    source: str
    provider: str
    articles: List[Article] = Field(default_factory=list)
    fetched_at: datetime
