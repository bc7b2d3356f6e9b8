"""Factory functions for upstream provider instances."""

import httpx

from app.adapters.upstream.base import AbstractMarketDataProvider, AbstractNewsProvider
from app.adapters.upstream.finnhub_client import FinnhubProvider
from app.adapters.upstream.newsapi_client import NewsApiProvider
from app.core.config import MarketSettings, NewsSettings
from app.core.errors import ValidationAppError


def create_news_provider(client: httpx.AsyncClient, cfg: NewsSettings) -> AbstractNewsProvider:
    """Instantiate the configured news provider.

    A missing API key is not an error here; calls fail later with
    ``upstream_not_configured`` so the rest of the API stays usable.

    Raises:
        ValidationAppError: If the provider name is unknown.
    """
    provider = cfg.provider.lower()

    if provider == "newsapi":
        return NewsApiProvider(
            client,
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            country=cfg.country,
        )

    raise ValidationAppError(
        code="news_unknown_provider",
        message=f"Unknown news provider: '{provider}'. Supported providers: newsapi",
    )


def create_market_provider(
    client: httpx.AsyncClient, cfg: MarketSettings
) -> AbstractMarketDataProvider:
    """Instantiate the configured market data provider.

    Raises:
        ValidationAppError: If the provider name is unknown.
    """
    provider = cfg.provider.lower()

    if provider == "finnhub":
        return FinnhubProvider(client, api_key=cfg.api_key, base_url=cfg.base_url)

    raise ValidationAppError(
        code="market_unknown_provider",
        message=f"Unknown market provider: '{provider}'. Supported providers: finnhub",
    )
