"""HTTP-level tests for the news, market and coalescer routes."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.adapters.coalescing.in_memory import InMemoryRequestCoalescer
from app.core.app_factory import create_app
from app.core.errors import UpstreamAppError
from conftest import FakeMarketProvider, FakeNewsProvider, drain_loop, sample_article


@pytest.fixture
def coalescer() -> InMemoryRequestCoalescer:
    return InMemoryRequestCoalescer()


@pytest.fixture
def app(news_provider, market_provider, coalescer):
    return create_app(
        coalescer=coalescer,
        news_provider=news_provider,
        market_provider=market_provider,
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestNewsRoutes:
    def test_headlines(self, client, news_provider):
        news_provider.articles = [sample_article(), sample_article(title="[Removed]")]

        resp = client.get("/v1/news/headlines", params={"category": "Technology", "page_size": 5})

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["category"] == "technology"
        assert body["page_size"] == 5
        assert body["articles"][0]["source"] == "Reuters"

    def test_invalid_category_is_400(self, client, news_provider):
        resp = client.get("/v1/news/headlines", params={"category": "weather"})

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_category"
        assert resp.json()["error"]["details"]["field"] == "category"
        assert news_provider.calls == []

    def test_search(self, client, news_provider):
        resp = client.get("/v1/news/search", params={"q": "  rate   cuts "})

        assert resp.status_code == 200
        assert resp.json()["query"] == "rate cuts"
        assert news_provider.calls[0][0] == "search"

    def test_search_requires_query(self, client):
        resp = client.get("/v1/news/search")

        assert resp.status_code == 422

    def test_upstream_failure_is_502(self, client, news_provider):
        news_provider.error = UpstreamAppError(
            code="upstream_request_failed",
            message="news returned HTTP 500",
            details={"provider": "news", "upstream_status": 500},
        )

        resp = client.get("/v1/news/headlines")

        assert resp.status_code == 502
        assert resp.json()["error"]["details"]["upstream_status"] == 500

    def test_missing_api_key_is_503(self, client, news_provider):
        news_provider.error = UpstreamAppError(code="upstream_not_configured", message="no key")

        resp = client.get("/v1/news/headlines")

        assert resp.status_code == 503


class TestMarketRoutes:
    def test_quote_symbol_is_uppercased(self, client, market_provider):
        resp = client.get("/v1/market/quotes/aapl")

        assert resp.status_code == 200
        assert resp.json()["symbol"] == "AAPL"
        assert resp.json()["current"] == 227.5
        assert market_provider.calls == ["AAPL"]

    def test_unknown_symbol_is_404(self, client, market_provider):
        market_provider.error = UpstreamAppError(
            code="upstream_no_data",
            message="No quote available for ZZZZ",
            details={"symbol": "ZZZZ"},
        )

        resp = client.get("/v1/market/quotes/zzzz")

        assert resp.status_code == 404
        assert resp.json()["error"]["details"]["symbol"] == "ZZZZ"

    def test_invalid_symbol_is_400(self, client):
        resp = client.get("/v1/market/quotes/b@d")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_symbol"

    def test_snapshot(self, client):
        resp = client.get("/v1/market/snapshot")

        assert resp.status_code == 200
        body = resp.json()
        assert body["sp500"]["value"] == pytest.approx(5712.34)
        assert body["btc"]["change"] == pytest.approx(-0.74)
        assert isinstance(body["is_market_open"], bool)


class TestCoalescerRoutes:
    def test_stats_when_idle(self, client):
        client.get("/v1/market/quotes/AAPL")

        resp = client.get("/v1/coalescer")

        assert resp.status_code == 200
        body = resp.json()
        assert body["in_flight"] == 0
        assert body["pending_keys"] == []
        assert body["started"] == 1
        assert body["succeeded"] == 1

    def test_clear_when_idle(self, client):
        resp = client.delete("/v1/coalescer")

        assert resp.status_code == 200
        assert resp.json() == {"cleared": 0}


@pytest.mark.asyncio
async def test_concurrent_http_requests_share_one_upstream_call():
    coalescer = InMemoryRequestCoalescer()
    news_provider = FakeNewsProvider()
    news_provider.gate = asyncio.Event()
    app = create_app(
        coalescer=coalescer,
        news_provider=news_provider,
        market_provider=FakeMarketProvider(),
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        requests = [
            asyncio.create_task(client.get("/v1/news/headlines", params={"category": "business"}))
            for _ in range(5)
        ]
        for _ in range(50):
            await drain_loop()
            if coalescer.stats().coalesced == 4:
                break

        stats = (await client.get("/v1/coalescer")).json()
        assert stats["in_flight"] == 1
        assert stats["coalesced"] == 4
        assert len(stats["pending_keys"]) == 1

        news_provider.gate.set()
        responses = await asyncio.gather(*requests)

    assert [r.status_code for r in responses] == [200] * 5
    assert len(news_provider.calls) == 1
    assert coalescer.size() == 0


@pytest.mark.asyncio
async def test_clear_via_http_does_not_fail_waiting_requests():
    coalescer = InMemoryRequestCoalescer()
    market_provider = FakeMarketProvider()
    market_provider.gate = asyncio.Event()
    app = create_app(
        coalescer=coalescer,
        news_provider=FakeNewsProvider(),
        market_provider=market_provider,
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        first = asyncio.create_task(client.get("/v1/market/quotes/AAPL"))
        for _ in range(50):
            await drain_loop()
            if coalescer.has("quote:AAPL"):
                break

        cleared = (await client.delete("/v1/coalescer")).json()
        assert cleared == {"cleared": 1}

        second = asyncio.create_task(client.get("/v1/market/quotes/AAPL"))
        for _ in range(50):
            await drain_loop()
            if len(market_provider.calls) == 2:
                break

        market_provider.gate.set()
        responses = await asyncio.gather(first, second)

    assert [r.status_code for r in responses] == [200, 200]
    assert market_provider.calls == ["AAPL", "AAPL"]
