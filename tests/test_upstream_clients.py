"""Tests for the NewsAPI and Finnhub adapters using httpx.MockTransport."""

import httpx
import pytest

from app.adapters.upstream.factory import create_market_provider, create_news_provider
from app.adapters.upstream.finnhub_client import FinnhubProvider
from app.adapters.upstream.newsapi_client import NewsApiProvider
from app.core.config import MarketSettings, NewsSettings
from app.core.errors import UpstreamAppError, ValidationAppError
from conftest import sample_article


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestNewsApiProvider:
    @pytest.mark.asyncio
    async def test_top_headlines_sends_expected_params(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "ok", "articles": [sample_article()]})

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key", base_url="https://news.test/v2/")
            articles = await provider.fetch_top_headlines(category="business", page=2, page_size=5)

        assert articles == [sample_article()]
        request = seen[0]
        assert request.url.path == "/v2/top-headlines"
        assert request.url.params["apiKey"] == "news-key"
        assert request.url.params["category"] == "business"
        assert request.url.params["country"] == "us"
        assert request.url.params["page"] == "2"
        assert request.url.params["pageSize"] == "5"

    @pytest.mark.asyncio
    async def test_omitted_category_is_not_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "ok", "articles": []})

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key")
            assert await provider.fetch_top_headlines() == []

        assert "category" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_search_uses_everything_endpoint(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "ok", "articles": [sample_article(), "junk"]})

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key")
            articles = await provider.search("interest rates")

        assert len(articles) == 1
        assert seen[0].url.path.endswith("/everything")
        assert seen[0].url.params["q"] == "interest rates"

    @pytest.mark.asyncio
    async def test_error_payload_raises_bad_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "error", "code": "parameterInvalid"})

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key")
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.fetch_top_headlines()

        assert exc_info.value.code == "upstream_bad_response"
        assert exc_info.value.details["hint"] == "parameterInvalid"

    @pytest.mark.asyncio
    async def test_http_error_status_raises_request_failed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"status": "error", "code": "rateLimited"})

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key")
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.fetch_top_headlines()

        assert exc_info.value.code == "upstream_request_failed"
        assert exc_info.value.details["upstream_status"] == 429

    @pytest.mark.asyncio
    async def test_transport_error_raises_request_failed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key")
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.search("anything")

        assert exc_info.value.code == "upstream_request_failed"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_invalid_json_raises_bad_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key="news-key")
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.fetch_top_headlines()

        assert exc_info.value.code == "upstream_bad_response"

    @pytest.mark.asyncio
    async def test_missing_api_key_never_calls_upstream(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"status": "ok", "articles": []})

        async with _client(handler) as client:
            provider = NewsApiProvider(client, api_key=None)
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.fetch_top_headlines()

        assert exc_info.value.code == "upstream_not_configured"
        assert calls == 0


class TestFinnhubProvider:
    @pytest.mark.asyncio
    async def test_fetch_quote(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"c": 227.5, "dp": 0.66, "t": 1760630400})

        async with _client(handler) as client:
            provider = FinnhubProvider(client, api_key="market-key", base_url="https://fh.test/api/v1")
            quote = await provider.fetch_quote("AAPL")

        assert quote["c"] == 227.5
        assert seen[0].url.path == "/api/v1/quote"
        assert seen[0].url.params["symbol"] == "AAPL"
        assert seen[0].url.params["token"] == "market-key"

    @pytest.mark.asyncio
    async def test_all_zero_quote_means_no_data(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"c": 0, "d": None, "dp": None, "t": 0})

        async with _client(handler) as client:
            provider = FinnhubProvider(client, api_key="market-key")
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.fetch_quote("NOPE")

        assert exc_info.value.code == "upstream_no_data"
        assert exc_info.value.details["symbol"] == "NOPE"

    @pytest.mark.asyncio
    async def test_unexpected_payload_raises_bad_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "You don't have access to this resource."})

        async with _client(handler) as client:
            provider = FinnhubProvider(client, api_key="market-key")
            with pytest.raises(UpstreamAppError) as exc_info:
                await provider.fetch_quote("AAPL")

        assert exc_info.value.code == "upstream_bad_response"


class TestFactories:
    def test_creates_configured_providers(self) -> None:
        client = httpx.AsyncClient()

        news = create_news_provider(client, NewsSettings(provider="NewsAPI", api_key="k"))
        market = create_market_provider(client, MarketSettings(provider="finnhub", api_key="k"))

        assert isinstance(news, NewsApiProvider)
        assert isinstance(market, FinnhubProvider)

    def test_unknown_providers_rejected(self) -> None:
        client = httpx.AsyncClient()

        with pytest.raises(ValidationAppError) as news_exc:
            create_news_provider(client, NewsSettings(provider="gnews"))
        with pytest.raises(ValidationAppError) as market_exc:
            create_market_provider(client, MarketSettings(provider="alphavantage"))

        assert news_exc.value.code == "news_unknown_provider"
        assert market_exc.value.code == "market_unknown_provider"
