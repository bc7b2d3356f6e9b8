"""Finnhub market data provider adapter."""

from __future__ import annotations

from typing import Any

import httpx

from app.adapters.upstream.base import AbstractMarketDataProvider
from app.adapters.upstream.http import get_json, require_api_key
from app.core.errors import UpstreamAppError


class FinnhubProvider(AbstractMarketDataProvider):
    """Client for the Finnhub ``/quote`` endpoint.

    Finnhub answers unknown symbols with HTTP 200 and an all-zero quote, so a
    zero current price with no timestamp is treated as "no data".
    """

    name = "market"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str | None,
        base_url: str = "https://finnhub.io/api/v1",
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def fetch_quote(self, symbol: str) -> dict[str, Any]:
        api_key = require_api_key(self._api_key, provider=self.name)
        payload = await get_json(
            self._client,
            f"{self._base_url}/quote",
            params={"symbol": symbol, "token": api_key},
            provider=self.name,
        )

        if not isinstance(payload, dict) or "c" not in payload:
            raise UpstreamAppError(
                code="upstream_bad_response",
                message="market provider returned an unexpected payload",
                details={"provider": self.name, "symbol": symbol},
            )
        if not payload.get("c") and not payload.get("t"):
            raise UpstreamAppError(
                code="upstream_no_data",
                message=f"No quote available for {symbol}",
                details={"provider": self.name, "symbol": symbol},
            )
        return payload
