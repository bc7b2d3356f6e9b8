"""NewsAPI (v2) provider adapter."""

from __future__ import annotations

from typing import Any

import httpx

from app.adapters.upstream.base import AbstractNewsProvider
from app.adapters.upstream.http import get_json, require_api_key
from app.core.errors import UpstreamAppError


class NewsApiProvider(AbstractNewsProvider):
    """Client for NewsAPI ``/top-headlines`` and ``/everything``.

    The ``httpx.AsyncClient`` is injected so the app can share one connection
    pool across providers and tests can plug in ``httpx.MockTransport``.
    """

    name = "news"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str | None,
        base_url: str = "https://newsapi.org/v2",
        country: str = "us",
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._country = country

    async def fetch_top_headlines(
        self,
        *,
        category: str | None = None,
        country: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> list[dict[str, Any]]:
        api_key = require_api_key(self._api_key, provider=self.name)
        payload = await get_json(
            self._client,
            f"{self._base_url}/top-headlines",
            params={
                "apiKey": api_key,
                "country": country or self._country,
                "category": category,
                "page": page,
                "pageSize": page_size,
            },
            provider=self.name,
        )
        return self._articles(payload)

    async def search(
        self,
        query: str,
        *,
        page: int = 1,
        page_size: int = 20,
    ) -> list[dict[str, Any]]:
        api_key = require_api_key(self._api_key, provider=self.name)
        payload = await get_json(
            self._client,
            f"{self._base_url}/everything",
            params={
                "apiKey": api_key,
                "q": query,
                "sortBy": "publishedAt",
                "language": "en",
                "page": page,
                "pageSize": page_size,
            },
            provider=self.name,
        )
        return self._articles(payload)

    def _articles(self, payload: Any) -> list[dict[str, Any]]:
        # NewsAPI reports errors as {"status": "error", "code": ..., "message": ...}
        if not isinstance(payload, dict) or payload.get("status") != "ok":
            code = payload.get("code") if isinstance(payload, dict) else None
            raise UpstreamAppError(
                code="upstream_bad_response",
                message="news provider returned an error payload",
                details={"provider": self.name, "hint": str(code or "unknown")},
            )
        articles = payload.get("articles") or []
        return [a for a in articles if isinstance(a, dict)]
