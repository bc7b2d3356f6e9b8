"""Market data service: coalesced quotes and the dashboard market snapshot."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable

from app.adapters.coalescing.base import AbstractRequestCoalescer
from app.adapters.upstream.base import AbstractMarketDataProvider
from app.core.errors import ValidationAppError
from app.schemas.market import IndicatorValue, MarketSnapshotResponse, QuoteResponse

logger = logging.getLogger(__name__)

SP500_PROXY_SYMBOL = "SPY"
BTC_SYMBOL = "BINANCE:BTCUSDT"
VIX_SYMBOL = "VIX"
# SPY trades at roughly a tenth of the index level
SP500_PROXY_FACTOR = 10

_SYMBOL_RE = re.compile(r"^[A-Z0-9.:\-^]{1,32}$")

# US regular session in UTC (9:30-16:00 ET, ignoring DST shifts)
_MARKET_OPEN_UTC = 14.5
_MARKET_CLOSE_UTC = 21.0


def is_market_hours(now: datetime) -> bool:
    """Return whether ``now`` falls in the US regular trading session.

    Weekdays only, 14:30 <= UTC time < 21:00. Naive datetimes are taken as UTC.
    """

    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    if now.weekday() >= 5:
        return False
    current = now.hour + now.minute / 60
    return _MARKET_OPEN_UTC <= current < _MARKET_CLOSE_UTC


def normalize_symbol(symbol: str) -> str:
    """Upper-case and validate a ticker symbol.

    Raises:
        ValidationAppError: If the symbol is empty or has unexpected characters.
    """

    cleaned = (symbol or "").strip().upper()
    if not _SYMBOL_RE.match(cleaned):
        raise ValidationAppError(
            code="invalid_symbol",
            message=f"Invalid symbol '{symbol}'",
            details={"field": "symbol"},
        )
    return cleaned


def _as_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _to_quote(symbol: str, raw: dict[str, Any]) -> QuoteResponse:
    timestamp = raw.get("t")
    return QuoteResponse(
        symbol=symbol,
        current=_as_float(raw.get("c")) or 0.0,
        change=_as_float(raw.get("d")),
        percent_change=_as_float(raw.get("dp")),
        high=_as_float(raw.get("h")),
        low=_as_float(raw.get("l")),
        open=_as_float(raw.get("o")),
        previous_close=_as_float(raw.get("pc")),
        as_of=datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp else None,
    )


def _indicator(quote: QuoteResponse, factor: float = 1) -> IndicatorValue:
    return IndicatorValue(
        value=round(quote.current * factor, 2),
        change=round(quote.percent_change or 0.0, 2),
    )


class MarketDataService:
    """Quotes and snapshot on top of a market provider and a coalescer.

    Each quote is coalesced per symbol (``quote:AAPL``); the snapshot is
    coalesced as a whole (``market:snapshot``) and its three quotes go
    through the per-symbol keys, so a snapshot and a concurrent SPY quote
    share one upstream call.
    """

    def __init__(
        self,
        provider: AbstractMarketDataProvider,
        coalescer: AbstractRequestCoalescer,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._provider = provider
        self._coalescer = coalescer
        self._clock = clock

    async def get_quote(self, symbol: str) -> QuoteResponse:
        """Return the latest quote for ``symbol``.

        Raises:
            ValidationAppError: If the symbol is invalid.
            UpstreamAppError: When the provider call fails.
        """

        normalized = normalize_symbol(symbol)
        raw = await self._coalescer.resolve(
            f"quote:{normalized}",
            lambda: self._provider.fetch_quote(normalized),
        )
        return _to_quote(normalized, raw)

    async def get_snapshot(self) -> MarketSnapshotResponse:
        """Return S&P 500 (via SPY), Bitcoin and VIX in one response.

        Raises:
            UpstreamAppError: If any of the three quotes fails.
        """

        return await self._coalescer.resolve("market:snapshot", self._build_snapshot)

    async def _build_snapshot(self) -> MarketSnapshotResponse:
        sp500, btc, vix = await asyncio.gather(
            self.get_quote(SP500_PROXY_SYMBOL),
            self.get_quote(BTC_SYMBOL),
            self.get_quote(VIX_SYMBOL),
        )
        now = self._clock()
        logger.info(
            "market.snapshot_built",
            extra={"sp500_proxy": sp500.current, "btc": btc.current, "vix": vix.current},
        )
        return MarketSnapshotResponse(
            sp500=_indicator(sp500, SP500_PROXY_FACTOR),
            btc=_indicator(btc),
            vix=_indicator(vix),
            is_market_open=is_market_hours(now),
            last_updated=now,
        )
