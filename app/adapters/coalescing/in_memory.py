"""In-memory request coalescer for asyncio code.

Notes:
- Per-process and per-event-loop: entries hold ``asyncio.Task`` objects, so an
  instance must only be used from the loop its tasks run on.
- Check-and-register has no suspension point, which makes it atomic on a
  single event loop without an explicit lock.
- ``clear()`` only unindexes entries. Producers already running keep running
  and callers already attached still receive their outcome.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from app.adapters.coalescing.base import AbstractRequestCoalescer, CoalescerStats

logger = logging.getLogger(__name__)


def _log_key(key: Hashable) -> str:
    return str(key)[:64]


@dataclass(eq=False)
class _PendingEntry:
    key: Hashable
    task: asyncio.Task[Any]
    waiters: int = 1
    started_at: float = field(default_factory=time.perf_counter)


class InMemoryRequestCoalescer(AbstractRequestCoalescer):
    """Coalesce concurrent awaits that share a key into one producer call.

    The first caller for a key registers an entry and schedules the producer
    as a task. Callers arriving while it is pending await the same task, so
    they receive the same value object or the same exception object. The entry
    is removed from the registry inside the task itself, before the task's
    outcome is set, so nobody can attach to an already settled entry.

    Usage:
        coalescer = InMemoryRequestCoalescer()
        articles = await coalescer.resolve("news:headlines", fetch_headlines)
    """

    def __init__(self, *, name: str = "default") -> None:
        """Initialize an empty registry.

        Args:
            name: Label attached to log records, useful when several
                independent registries live in one process.
        """
        self._name = name
        self._entries: dict[Hashable, _PendingEntry] = {}
        self._started = 0
        self._coalesced = 0
        self._succeeded = 0
        self._failed = 0
        self._cleared = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryRequestCoalescer(name={self._name!r}, in_flight={len(self._entries)}, "
            f"started={self._started}, coalesced={self._coalesced})"
        )

    async def resolve(self, key: Hashable, producer: Callable[[], Any]) -> Any:
        """Attach to the pending entry for ``key`` or start a new one.

        Cancelling the awaiting caller only cancels that caller; the shared
        producer task keeps running for the others.

        Args:
            key: Hashable identifier for the logical operation.
            producer: Zero-argument callable; may return an awaitable.

        Returns:
            The producer's value (the same object for every waiter).

        Raises:
            Exception: The producer's exception, unchanged.
        """

        entry = self._entries.get(key)
        if entry is None:
            entry = self._register(key, producer)
        else:
            entry.waiters += 1
            self._coalesced += 1
            logger.debug(
                "coalescer.attached",
                extra={
                    "coalescer": self._name,
                    "coalescing_key": _log_key(key),
                    "waiters": entry.waiters,
                },
            )

        return await asyncio.shield(entry.task)

    def clear(self) -> int:
        """Drop every registry entry without cancelling running producers.

        Callers already attached to a dropped entry still get its outcome. A
        dropped entry settling later never evicts a newer entry registered for
        the same key.

        Returns:
            Number of entries dropped.
        """

        dropped = len(self._entries)
        self._entries.clear()
        self._cleared += dropped
        logger.info(
            "coalescer.cleared",
            extra={"coalescer": self._name, "dropped": dropped},
        )
        return dropped

    def has(self, key: Hashable) -> bool:
        return key in self._entries

    def size(self) -> int:
        return len(self._entries)

    def pending_keys(self) -> list[Hashable]:
        return list(self._entries)

    def stats(self) -> CoalescerStats:
        return CoalescerStats(
            in_flight=len(self._entries),
            started=self._started,
            coalesced=self._coalesced,
            succeeded=self._succeeded,
            failed=self._failed,
            cleared=self._cleared,
        )

    def _register(self, key: Hashable, producer: Callable[[], Any]) -> _PendingEntry:
        # The task cannot start before the entry is registered: no await in between.
        task = asyncio.get_running_loop().create_task(self._run(key, producer))
        entry = _PendingEntry(key=key, task=task)
        self._entries[key] = entry
        self._started += 1
        task.add_done_callback(partial(self._on_settled, entry))
        logger.debug(
            "coalescer.started",
            extra={"coalescer": self._name, "coalescing_key": _log_key(key)},
        )
        return entry

    async def _run(self, key: Hashable, producer: Callable[[], Any]) -> Any:
        task = asyncio.current_task()
        try:
            outcome = producer()
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return outcome
        finally:
            self._release(key, task)

    def _release(self, key: Hashable, task: asyncio.Task[Any] | None) -> None:
        # Identity check: after clear() the key may belong to a newer entry.
        entry = self._entries.get(key)
        if entry is not None and entry.task is task:
            del self._entries[key]

    def _on_settled(self, entry: _PendingEntry, task: asyncio.Task[Any]) -> None:
        # Covers a task cancelled before its first step, where _run never ran.
        self._release(entry.key, task)

        duration_ms = (time.perf_counter() - entry.started_at) * 1000
        if task.cancelled():
            self._failed += 1
            logger.warning(
                "coalescer.cancelled",
                extra={
                    "coalescer": self._name,
                    "coalescing_key": _log_key(entry.key),
                    "waiters": entry.waiters,
                },
            )
            return

        # Retrieving the exception also marks it as observed for asyncio.
        exc = task.exception()
        if exc is None:
            self._succeeded += 1
            logger.debug(
                "coalescer.settled",
                extra={
                    "coalescer": self._name,
                    "coalescing_key": _log_key(entry.key),
                    "waiters": entry.waiters,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return

        self._failed += 1
        logger.warning(
            "coalescer.failed",
            extra={
                "coalescer": self._name,
                "coalescing_key": _log_key(entry.key),
                "waiters": entry.waiters,
                "duration_ms": round(duration_ms, 2),
                "error_type": type(exc).__name__,
            },
        )
