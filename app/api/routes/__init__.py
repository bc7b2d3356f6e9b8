from __future__ import annotations

from app.api.routes.coalescer import router as coalescer_router
from app.api.routes.health import router as health_router
from app.api.routes.market import router as market_router
from app.api.routes.news import router as news_router

__all__ = ["coalescer_router", "health_router", "market_router", "news_router"]
