"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the testing environment before any app module reads settings, and
provides fake upstream providers that record their calls.
"""

import asyncio
import os
from typing import Any

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("NEWS_API_KEY", "test-news-key")
os.environ.setdefault("MARKET_API_KEY", "test-market-key")

import pytest  # noqa: E402

from app.adapters.upstream.base import AbstractMarketDataProvider, AbstractNewsProvider  # noqa: E402


def sample_article(**overrides: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "source": {"id": "reuters", "name": "Reuters"},
        "author": "Jane Reporter",
        "title": "Markets rally on rate cut hopes",
        "description": "Stocks climbed for a third day.",
        "url": "https://example.com/markets-rally",
        "urlToImage": "https://example.com/markets-rally.jpg",
        "publishedAt": "2026-10-16T13:45:00Z",
        "content": "...",
    }
    base.update(overrides)
    return base


class FakeNewsProvider(AbstractNewsProvider):
    """News provider double; set ``gate`` to hold calls until it is set."""

    def __init__(self, articles: list[dict[str, Any]] | None = None) -> None:
        self.articles = articles if articles is not None else [sample_article()]
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def _respond(self) -> list[dict[str, Any]]:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.articles

    async def fetch_top_headlines(self, *, category=None, country=None, page=1, page_size=20):
        self.calls.append(
            ("headlines", {"category": category, "country": country, "page": page, "page_size": page_size})
        )
        return await self._respond()

    async def search(self, query, *, page=1, page_size=20):
        self.calls.append(("search", {"query": query, "page": page, "page_size": page_size}))
        return await self._respond()


class FakeMarketProvider(AbstractMarketDataProvider):
    """Market provider double returning canned quotes per symbol."""

    def __init__(self, quotes: dict[str, dict[str, Any]] | None = None) -> None:
        self.quotes = quotes or {
            "AAPL": {"c": 227.5, "d": 1.5, "dp": 0.66, "h": 228.0, "l": 224.1, "o": 225.0, "pc": 226.0, "t": 1760630400},
            "SPY": {"c": 571.234, "d": 2.1, "dp": 0.3712, "h": 572.0, "l": 568.0, "o": 569.0, "pc": 569.1, "t": 1760630400},
            "BINANCE:BTCUSDT": {"c": 67123.456, "d": -500.0, "dp": -0.7391, "t": 1760630400},
            "VIX": {"c": 15.678, "d": 0.2, "dp": 1.2312, "t": 1760630400},
        }
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []

    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        self.calls.append(symbol)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.quotes[symbol]


async def drain_loop(iterations: int = 10) -> None:
    """Let every ready task run a few steps."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def news_provider() -> FakeNewsProvider:
    return FakeNewsProvider()


@pytest.fixture
def market_provider() -> FakeMarketProvider:
    return FakeMarketProvider()
