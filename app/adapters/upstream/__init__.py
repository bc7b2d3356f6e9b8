"""Upstream adapter layer - abstracts over news and market data providers."""

from app.adapters.upstream.base import AbstractMarketDataProvider, AbstractNewsProvider
from app.adapters.upstream.factory import create_market_provider, create_news_provider
from app.adapters.upstream.finnhub_client import FinnhubProvider
from app.adapters.upstream.newsapi_client import NewsApiProvider

__all__ = [
    "AbstractMarketDataProvider",
    "AbstractNewsProvider",
    "FinnhubProvider",
    "NewsApiProvider",
    "create_market_provider",
    "create_news_provider",
]
