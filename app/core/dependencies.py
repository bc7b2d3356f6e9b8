"""FastAPI dependencies exposing the per-app service instances.

The coalescer and services are built once by ``create_app`` and stored on
``app.state``; routes receive them through these functions rather than
module-level globals, so tests can build isolated apps or override them via
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Request

from app.adapters.coalescing.base import AbstractRequestCoalescer
from app.services.market_service import MarketDataService
from app.services.news_service import NewsService


def get_request_coalescer(request: Request) -> AbstractRequestCoalescer:
    return request.app.state.coalescer


def get_news_service(request: Request) -> NewsService:
    return request.app.state.news_service


def get_market_service(request: Request) -> MarketDataService:
    return request.app.state.market_service
