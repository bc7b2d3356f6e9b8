"""Pydantic schemas for market data responses."""

from datetime import datetime

from pydantic import BaseModel, Field


class QuoteResponse(BaseModel):
    """Latest quote for one symbol."""

    symbol: str = Field(..., description="Upper-cased ticker symbol.")
    current: float = Field(..., description="Current price.")
    change: float | None = Field(None, description="Absolute change since previous close.")
    percent_change: float | None = Field(None, description="Percent change since previous close.")
    high: float | None = Field(None, description="High price of the day.")
    low: float | None = Field(None, description="Low price of the day.")
    open: float | None = Field(None, description="Open price of the day.")
    previous_close: float | None = Field(None, description="Previous close price.")
    as_of: datetime | None = Field(None, description="Quote timestamp (UTC).")


class IndicatorValue(BaseModel):
    """One headline market indicator."""

    value: float = Field(..., description="Indicator level, rounded to 2 decimals.")
    change: float = Field(..., description="Percent change, rounded to 2 decimals.")


class MarketSnapshotResponse(BaseModel):
    """Dashboard market strip: S&P 500, Bitcoin and VIX."""

    sp500: IndicatorValue = Field(..., description="S&P 500, approximated as SPY x 10.")
    btc: IndicatorValue = Field(..., description="Bitcoin in USDT (Binance).")
    vix: IndicatorValue = Field(..., description="CBOE volatility index.")
    is_market_open: bool = Field(..., description="Whether US equity markets are open.")
    last_updated: datetime = Field(..., description="When the snapshot was assembled (UTC).")
