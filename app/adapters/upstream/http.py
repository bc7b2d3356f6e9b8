"""Shared JSON-over-HTTP helper for upstream clients."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from app.core.errors import UpstreamAppError
from app.core.logging import redact_url

logger = logging.getLogger(__name__)


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any],
    provider: str,
) -> Any:
    """Perform a GET request and decode the JSON body.

    ``None``-valued params are dropped before sending.

    Args:
        client: Shared async client (connection pooling, timeout).
        url: Absolute endpoint URL.
        params: Query parameters, credentials included.
        provider: Provider name for logs and error details.

    Returns:
        Decoded JSON payload.

    Raises:
        UpstreamAppError: On transport errors, non-2xx status or invalid JSON.
    """

    query = {k: v for k, v in params.items() if v is not None}
    start = time.perf_counter()
    try:
        response = await client.get(url, params=query)
    except httpx.HTTPError as exc:
        logger.warning(
            "upstream.request_failed",
            extra={
                "provider": provider,
                "url": redact_url(url),
                "error_type": type(exc).__name__,
            },
        )
        raise UpstreamAppError(
            code="upstream_request_failed",
            message=f"{provider} request failed",
            details={"provider": provider, "hint": type(exc).__name__},
        ) from exc

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    if response.is_error:
        logger.warning(
            "upstream.bad_status",
            extra={
                "provider": provider,
                "url": redact_url(str(response.request.url)),
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        raise UpstreamAppError(
            code="upstream_request_failed",
            message=f"{provider} returned HTTP {response.status_code}",
            details={"provider": provider, "upstream_status": response.status_code},
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise UpstreamAppError(
            code="upstream_bad_response",
            message=f"{provider} returned invalid JSON",
            details={"provider": provider},
        ) from exc

    logger.info(
        "upstream.request_completed",
        extra={
            "provider": provider,
            "url": redact_url(str(response.request.url)),
            "status": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return payload


def require_api_key(api_key: str | None, *, provider: str) -> str:
    """Return ``api_key`` or raise when the provider has none configured."""
    if not api_key:
        raise UpstreamAppError(
            code="upstream_not_configured",
            message=f"{provider} API key is not configured",
            details={"provider": provider, "hint": f"Set {provider.upper()}_API_KEY"},
        )
    return api_key
