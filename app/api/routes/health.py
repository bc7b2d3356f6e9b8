from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check used by load balancers and monitors.

    Does not touch upstream providers or the coalescer.

    Returns:
        dict: ``{"status": "ok"}``.
    """

    return {"status": "ok"}
