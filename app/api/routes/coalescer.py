from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.adapters.coalescing.base import AbstractRequestCoalescer
from app.core.dependencies import get_request_coalescer
from app.schemas.coalescer import CoalescerClearResponse, CoalescerStatsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Coalescer"])


@router.get("/coalescer", response_model=CoalescerStatsResponse)
async def get_coalescer_stats(
    coalescer: Annotated[AbstractRequestCoalescer, Depends(get_request_coalescer)],
) -> CoalescerStatsResponse:
    """Counters and currently pending keys of the upstream coalescer.

    Values are advisory: entries may settle right after they are read.
    """
    return CoalescerStatsResponse(
        **coalescer.stats().as_dict(),
        pending_keys=[str(k) for k in coalescer.pending_keys()],
    )


@router.delete("/coalescer", response_model=CoalescerClearResponse)
async def clear_coalescer(
    coalescer: Annotated[AbstractRequestCoalescer, Depends(get_request_coalescer)],
) -> CoalescerClearResponse:
    """Drop all pending entries.

    Running upstream calls are not cancelled and requests already waiting on
    them still get their result; new requests start fresh calls.
    """
    cleared = coalescer.clear()
    logger.warning("coalescer.cleared_via_api", extra={"cleared": cleared})
    return CoalescerClearResponse(cleared=cleared)
