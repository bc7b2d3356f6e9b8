"""News service: validated, coalesced access to the news provider.

Free news API tiers allow only a handful of requests per minute, while every
dashboard load asks for the same headlines. Requests with identical
parameters that overlap in time share one upstream call through the
injected coalescer. Completed results are not kept; the next request after
settlement calls the provider again.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from app.adapters.coalescing.base import AbstractRequestCoalescer
from app.adapters.upstream.base import AbstractNewsProvider
from app.core.errors import ValidationAppError
from app.schemas.news import Article, HeadlinesResponse
from app.utils.coalescing_keys import build_coalescing_key

logger = logging.getLogger(__name__)

NEWS_CATEGORIES = frozenset(
    {"business", "entertainment", "general", "health", "science", "sports", "technology"}
)
MAX_PAGE_SIZE = 100
MAX_QUERY_CHARS = 500

# Placeholder NewsAPI returns for articles pulled by the publisher
_REMOVED_MARKER = "[Removed]"


def _validate_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationAppError(
            code="invalid_page",
            message="page must be >= 1",
            details={"field": "page"},
        )
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationAppError(
            code="invalid_page_size",
            message=f"page_size must be between 1 and {MAX_PAGE_SIZE}",
            details={"field": "page_size"},
        )


def normalize_article(raw: dict[str, Any]) -> Article | None:
    """Convert a raw provider article into an ``Article``.

    Returns:
        The normalized article, or None when it was removed by the publisher
        or lacks a title or URL.
    """

    title = (raw.get("title") or "").strip()
    url = (raw.get("url") or "").strip()
    if not title or not url or title == _REMOVED_MARKER:
        return None

    source = raw.get("source")
    source_name = source.get("name") if isinstance(source, dict) else source

    published_at: datetime | None = None
    raw_published = raw.get("publishedAt")
    if raw_published:
        try:
            published_at = datetime.fromisoformat(str(raw_published).replace("Z", "+00:00"))
        except ValueError:
            published_at = None

    try:
        return Article(
            title=title,
            url=url,
            source=source_name,
            author=raw.get("author"),
            description=raw.get("description"),
            image_url=raw.get("urlToImage"),
            published_at=published_at,
        )
    except ValidationError:
        return None


class NewsService:
    """Headlines and search on top of a news provider and a coalescer."""

    def __init__(self, provider: AbstractNewsProvider, coalescer: AbstractRequestCoalescer) -> None:
        self._provider = provider
        self._coalescer = coalescer

    async def get_headlines(
        self,
        *,
        category: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> HeadlinesResponse:
        """Return top headlines, optionally filtered by category.

        Args:
            category: One of ``NEWS_CATEGORIES`` (case-insensitive) or None.
            page: 1-based page number.
            page_size: Articles per page (1-100).

        Returns:
            HeadlinesResponse with normalized articles.

        Raises:
            ValidationAppError: For an unknown category or invalid paging.
            UpstreamAppError: When the provider call fails (shared by all
                coalesced callers).
        """

        normalized_category = category.strip().lower() if category else None
        if normalized_category and normalized_category not in NEWS_CATEGORIES:
            raise ValidationAppError(
                code="invalid_category",
                message=f"Unknown category '{category}'",
                details={
                    "field": "category",
                    "hint": "Use one of: " + ", ".join(sorted(NEWS_CATEGORIES)),
                },
            )
        _validate_paging(page, page_size)

        key = build_coalescing_key(
            "news:headlines",
            {"category": normalized_category, "page": page, "page_size": page_size},
        )
        raw_articles = await self._coalescer.resolve(
            key,
            lambda: self._provider.fetch_top_headlines(
                category=normalized_category,
                page=page,
                page_size=page_size,
            ),
        )
        return self._build_response(
            raw_articles,
            page=page,
            page_size=page_size,
            category=normalized_category,
        )

    async def search(self, query: str, *, page: int = 1, page_size: int = 20) -> HeadlinesResponse:
        """Search articles by free-text query.

        Raises:
            ValidationAppError: For an empty/oversized query or invalid paging.
            UpstreamAppError: When the provider call fails.
        """

        cleaned = " ".join((query or "").split())
        if not cleaned:
            raise ValidationAppError(
                code="empty_query",
                message="Search query must not be empty",
                details={"field": "q"},
            )
        if len(cleaned) > MAX_QUERY_CHARS:
            raise ValidationAppError(
                code="query_too_long",
                message=f"Search query exceeds {MAX_QUERY_CHARS} characters",
                details={"field": "q"},
            )
        _validate_paging(page, page_size)

        # Case differences should still share one upstream call
        key = build_coalescing_key(
            "news:search",
            {"q": cleaned.lower(), "page": page, "page_size": page_size},
        )
        raw_articles = await self._coalescer.resolve(
            key,
            lambda: self._provider.search(cleaned, page=page, page_size=page_size),
        )
        return self._build_response(raw_articles, page=page, page_size=page_size, query=cleaned)

    def _build_response(
        self,
        raw_articles: list[dict[str, Any]],
        *,
        page: int,
        page_size: int,
        category: str | None = None,
        query: str | None = None,
    ) -> HeadlinesResponse:
        articles = [a for a in (normalize_article(raw) for raw in raw_articles) if a is not None]
        dropped = len(raw_articles) - len(articles)
        if dropped:
            logger.debug(
                "news.articles_dropped",
                extra={"dropped": dropped, "received": len(raw_articles)},
            )
        return HeadlinesResponse(
            articles=articles,
            total=len(articles),
            page=page,
            page_size=page_size,
            category=category,
            query=query,
        )
