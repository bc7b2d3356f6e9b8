"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
wires the explicit per-app instances: one request coalescer shared by the
news and market services, and one ``httpx.AsyncClient`` shared by the
upstream providers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from app.adapters.coalescing.base import AbstractRequestCoalescer
from app.adapters.coalescing.in_memory import InMemoryRequestCoalescer
from app.adapters.upstream.base import AbstractMarketDataProvider, AbstractNewsProvider
from app.adapters.upstream.factory import create_market_provider, create_news_provider
from app.api.routes import coalescer_router, health_router, market_router, news_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.market_service import MarketDataService
from app.services.news_service import NewsService

logger = logging.getLogger(__name__)


def create_app(
    *,
    app_settings: Settings | None = None,
    coalescer: AbstractRequestCoalescer | None = None,
    news_provider: AbstractNewsProvider | None = None,
    market_provider: AbstractMarketDataProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Every collaborator can be injected; anything omitted is built from
    settings.

    Args:
        app_settings: Settings to use instead of the process-wide ones.
        coalescer: Request coalescer shared by all services.
        news_provider: News provider (defaults to the configured one).
        market_provider: Market data provider (defaults to the configured one).
        http_client: Client for the default providers. A client created here
            is closed on shutdown; an injected one is left to its owner.

    Returns:
        Configured FastAPI app.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)
    if cfg.app.debug:
        logging.getLogger("app").setLevel(logging.DEBUG)

    owns_client = http_client is None and (news_provider is None or market_provider is None)
    client = http_client
    if owns_client:
        client = httpx.AsyncClient(timeout=max(cfg.news.timeout_seconds, cfg.market.timeout_seconds))

    if news_provider is None:
        news_provider = create_news_provider(client, cfg.news)
    if market_provider is None:
        market_provider = create_market_provider(client, cfg.market)

    shared_coalescer = coalescer or InMemoryRequestCoalescer(name="upstream")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "app.startup",
            extra={
                "app_env": cfg.app_env,
                "news_provider": news_provider.name,
                "market_provider": market_provider.name,
            },
        )
        yield
        pending = shared_coalescer.size()
        if owns_client and client is not None:
            await client.aclose()
        logger.info("app.shutdown", extra={"pending_on_shutdown": pending})

    app = FastAPI(
        title="Newsdesk API",
        description=(
            "News headlines, search and market data for the newsdesk dashboard. "
            "Concurrent identical upstream requests are coalesced into a single "
            "provider call; results are not cached."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.coalescer = shared_coalescer
    app.state.news_service = NewsService(news_provider, shared_coalescer)
    app.state.market_service = MarketDataService(market_provider, shared_coalescer)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(news_router, prefix="/v1")
    app.include_router(market_router, prefix="/v1")
    app.include_router(coalescer_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
