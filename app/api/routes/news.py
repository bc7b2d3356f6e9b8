from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_news_service
from app.schemas.news import HeadlinesResponse
from app.services.news_service import NewsService

router = APIRouter(tags=["News"])


@router.get("/news/headlines", response_model=HeadlinesResponse)
async def get_headlines(
    service: Annotated[NewsService, Depends(get_news_service)],
    category: Annotated[str | None, Query(description="News category, e.g. 'business'")] = None,
    page: Annotated[int, Query(description="1-based page number")] = 1,
    page_size: Annotated[int, Query(description="Articles per page (1-100)")] = 20,
) -> HeadlinesResponse:
    """Top headlines endpoint.

    Concurrent requests with the same category and paging share one upstream
    call. Validation and upstream errors are rendered by the global handlers.
    """
    return await service.get_headlines(category=category, page=page, page_size=page_size)


@router.get("/news/search", response_model=HeadlinesResponse)
async def search_news(
    service: Annotated[NewsService, Depends(get_news_service)],
    q: Annotated[str, Query(description="Free-text search query")],
    page: Annotated[int, Query(description="1-based page number")] = 1,
    page_size: Annotated[int, Query(description="Articles per page (1-100)")] = 20,
) -> HeadlinesResponse:
    """Article search endpoint."""
    return await service.search(q, page=page, page_size=page_size)
