"""Request coalescer interfaces.

Services depend on this abstraction (not the concrete implementation) so the
event-loop coalescer can be swapped for another backend without touching the
API layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CoalescerStats:
    """Point-in-time counters for a coalescer.

    Attributes:
        in_flight: Entries currently pending in the registry.
        started: Producer invocations since construction.
        coalesced: Calls that attached to an existing entry instead of
            invoking a producer.
        succeeded: Entries that settled with a value.
        failed: Entries that settled with an exception.
        cleared: Entries dropped from the registry by ``clear()``.
    """

    in_flight: int
    started: int
    coalesced: int
    succeeded: int
    failed: int
    cleared: int

    def as_dict(self) -> dict[str, int]:
        return {
            "in_flight": self.in_flight,
            "started": self.started,
            "coalesced": self.coalesced,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cleared": self.cleared,
        }


class AbstractRequestCoalescer(ABC):
    """Interface for coalescers used from async code."""

    @abstractmethod
    async def resolve(self, key: Hashable, producer: Callable[[], Any]) -> Any:
        """Return the outcome of the in-flight operation for ``key``.

        If no operation is pending for ``key``, ``producer`` is invoked exactly
        once and every caller arriving before it settles shares its outcome.

        Args:
            key: Hashable identifier for the logical operation.
            producer: Zero-argument callable returning a value or awaitable.

        Returns:
            The producer's value.

        Raises:
            Exception: Whatever the producer raised, unchanged.
        """
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> int:
        """Drop every registry entry and return how many were dropped."""
        raise NotImplementedError

    @abstractmethod
    def has(self, key: Hashable) -> bool:
        """Return whether an entry is pending for ``key`` (advisory)."""
        raise NotImplementedError

    @abstractmethod
    def size(self) -> int:
        """Return the number of pending entries (advisory)."""
        raise NotImplementedError

    @abstractmethod
    def pending_keys(self) -> list[Hashable]:
        """Return a snapshot of the pending keys (advisory)."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> CoalescerStats:
        """Return counters without exposing any results."""
        raise NotImplementedError
