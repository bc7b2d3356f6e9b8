"""Pydantic schemas for news responses."""

from datetime import datetime

from pydantic import BaseModel, Field


class Article(BaseModel):
    """A normalized news article."""

    title: str = Field(..., description="Article headline.")
    url: str = Field(..., description="Canonical link to the article.")
    source: str | None = Field(None, description="Publisher name as reported by the provider.")
    author: str | None = Field(None, description="Author byline, when provided.")
    description: str | None = Field(None, description="Short summary or lede.")
    image_url: str | None = Field(None, description="Lead image URL, when provided.")
    published_at: datetime | None = Field(None, description="Publication time (UTC).")


class HeadlinesResponse(BaseModel):
    """A page of articles for headlines or search."""

    articles: list[Article] = Field(
        default_factory=list,
        description="Articles after dropping removed or incomplete items.",
    )
    total: int = Field(..., ge=0, description="Number of articles in this page.")
    page: int = Field(..., ge=1, description="1-based page number.")
    page_size: int = Field(..., ge=1, description="Requested page size.")
    category: str | None = Field(None, description="Category filter, if any.")
    query: str | None = Field(None, description="Search query, if any.")
