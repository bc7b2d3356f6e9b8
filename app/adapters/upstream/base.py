"""Upstream provider interfaces.

Services call these abstractions from inside coalesced producers; concrete
clients (NewsAPI, Finnhub) live next to this module.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AbstractNewsProvider(ABC):
    """Interface for news providers returning raw article payloads."""

    name: str = "news"

    @abstractmethod
    async def fetch_top_headlines(
        self,
        *,
        category: str | None = None,
        country: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[dict[str, Any]]:
        """Fetch the current top headlines.

        Args:
            category: Optional provider category (e.g., "business").
            country: Optional ISO country code; provider default when omitted.
            page: 1-based page number.
            page_size: Articles per page.

        Returns:
            list[dict[str, Any]]: Raw article objects as sent by the provider.

        Raises:
            UpstreamAppError: If the provider is unconfigured or the call fails.
        """
        ...

    @abstractmethod
    async def search(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> list[dict[str, Any]]:
        """Search articles matching ``query``.

        Raises:
            UpstreamAppError: If the provider is unconfigured or the call fails.
        """
        ...


class AbstractMarketDataProvider(ABC):
    """Interface for market data providers."""

    name: str = "market"

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        """Fetch the latest quote for ``symbol``.

        Returns:
            dict[str, Any]: Raw quote payload.

        Raises:
            UpstreamAppError: If the provider is unconfigured or the call fails.
        """
        ...
