from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.dependencies import get_market_service
from app.schemas.market import MarketSnapshotResponse, QuoteResponse
from app.services.market_service import MarketDataService

router = APIRouter(tags=["Market"])


@router.get("/market/quotes/{symbol}", response_model=QuoteResponse)
async def get_quote(
    symbol: str,
    service: Annotated[MarketDataService, Depends(get_market_service)],
) -> QuoteResponse:
    """Latest quote for one symbol, coalesced per symbol."""
    return await service.get_quote(symbol)


@router.get("/market/snapshot", response_model=MarketSnapshotResponse)
async def get_snapshot(
    service: Annotated[MarketDataService, Depends(get_market_service)],
) -> MarketSnapshotResponse:
    """Dashboard market strip: S&P 500 (via SPY), Bitcoin and VIX."""
    return await service.get_snapshot()
