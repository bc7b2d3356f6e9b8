"""Pydantic schemas for the coalescer ops endpoints."""

from pydantic import BaseModel, Field


class CoalescerStatsResponse(BaseModel):
    """Counters and pending keys of the request coalescer."""

    in_flight: int = Field(..., ge=0, description="Entries currently pending.")
    started: int = Field(..., ge=0, description="Producer invocations since startup.")
    coalesced: int = Field(..., ge=0, description="Calls served by an already pending entry.")
    succeeded: int = Field(..., ge=0, description="Entries settled with a value.")
    failed: int = Field(..., ge=0, description="Entries settled with an error.")
    cleared: int = Field(..., ge=0, description="Entries dropped by a clear.")
    pending_keys: list[str] = Field(
        default_factory=list,
        description="Keys currently pending (advisory snapshot).",
    )


class CoalescerClearResponse(BaseModel):
    """Result of clearing the registry."""

    cleared: int = Field(..., ge=0, description="Entries dropped from the registry.")
