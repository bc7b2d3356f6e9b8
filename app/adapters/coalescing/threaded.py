"""Thread-safe request coalescer for blocking code.

Notes:
- Per-process only: worker processes each keep their own registry.
- Thread-safe: a lock guards check-then-insert, and the producer is submitted
  to the executor while that lock is held.
- Every caller gets its own future. Cancelling it withdraws only that caller;
  the shared outcome and the producer are never reachable from outside.
- ``clear()`` only unindexes entries, exactly like the asyncio coalescer.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from app.adapters.coalescing.base import CoalescerStats

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _PendingEntry:
    key: Hashable
    outcome: Future[Any] = field(default_factory=Future)
    waiters: int = 1
    started_at: float = field(default_factory=time.perf_counter)


def _copy_outcome(waiter: Future[Any], outcome: Future[Any]) -> None:
    """Settle a caller's future from the shared outcome."""

    if outcome.cancelled():
        waiter.cancel()
        return
    # False when the caller already cancelled its own future
    if not waiter.set_running_or_notify_cancel():
        return
    exc = outcome.exception()
    if exc is None:
        waiter.set_result(outcome.result())
    else:
        waiter.set_exception(exc)


class ThreadedRequestCoalescer:
    """Coalesce concurrent calls from many threads into one producer call.

    ``submit`` never blocks: it returns a future for the caller, attached to
    the pending entry for the key, and starts the producer on the executor
    when no entry exists. ``resolve`` is ``submit(...).result()``.

    The worker removes the entry from the registry before the shared outcome
    settles, so a thread that observes the outcome can immediately start a
    fresh call for the same key. If the executor drops the queued work (for
    example ``shutdown(cancel_futures=True)`` on an injected executor), the
    entry is released and every caller's future is cancelled.

    Usage:
        coalescer = ThreadedRequestCoalescer(max_workers=4)
        quote = coalescer.resolve("quote:AAPL", lambda: client.quote("AAPL"))
    """

    def __init__(
        self,
        *,
        max_workers: int = 8,
        executor: Executor | None = None,
        name: str = "threaded",
    ) -> None:
        """Initialize the coalescer and its executor.

        Args:
            max_workers: Worker count for the owned executor.
            executor: Optional externally managed executor. When given, the
                coalescer will not shut it down.
            name: Label attached to log records.

        Raises:
            ValueError: If max_workers is invalid.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self._name = name
        self._own_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"coalescer-{name}",
        )
        self._lock = threading.Lock()
        self._entries: dict[Hashable, _PendingEntry] = {}
        self._started = 0
        self._coalesced = 0
        self._succeeded = 0
        self._failed = 0
        self._cleared = 0

    def submit(self, key: Hashable, producer: Callable[[], Any]) -> Future[Any]:
        """Return a future for ``key``'s outcome, starting the producer if needed.

        Args:
            key: Hashable identifier for the logical operation.
            producer: Zero-argument callable run on the executor.

        Returns:
            A future owned by this caller, settled with the producer's value
            or exception. Cancelling it does not affect other callers.
        """

        work: Future[Any] | None = None
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                entry.waiters += 1
                self._coalesced += 1
                logger.debug(
                    "coalescer.attached",
                    extra={
                        "coalescer": self._name,
                        "coalescing_key": str(key)[:64],
                        "waiters": entry.waiters,
                    },
                )
            else:
                entry = _PendingEntry(key=key)
                self._entries[key] = entry
                try:
                    work = self._executor.submit(self._run, entry, producer)
                except RuntimeError:
                    # Executor already shut down; leave no entry behind.
                    del self._entries[key]
                    raise
                self._started += 1
                logger.debug(
                    "coalescer.started",
                    extra={"coalescer": self._name, "coalescing_key": str(key)[:64]},
                )

        # Outside the lock: callbacks on an already finished future run inline.
        if work is not None:
            work.add_done_callback(partial(self._on_work_done, entry))

        waiter: Future[Any] = Future()
        entry.outcome.add_done_callback(partial(_copy_outcome, waiter))
        return waiter

    def resolve(self, key: Hashable, producer: Callable[[], Any]) -> Any:
        """Block until the pending operation for ``key`` settles.

        Raises:
            Exception: The producer's exception, unchanged.
        """
        return self.submit(key, producer).result()

    def clear(self) -> int:
        """Drop every registry entry without cancelling running producers.

        Returns:
            Number of entries dropped.
        """

        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._cleared += dropped
        logger.info(
            "coalescer.cleared",
            extra={"coalescer": self._name, "dropped": dropped},
        )
        return dropped

    def has(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def pending_keys(self) -> list[Hashable]:
        with self._lock:
            return list(self._entries)

    def stats(self) -> CoalescerStats:
        with self._lock:
            return CoalescerStats(
                in_flight=len(self._entries),
                started=self._started,
                coalesced=self._coalesced,
                succeeded=self._succeeded,
                failed=self._failed,
                cleared=self._cleared,
            )

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the executor if this coalescer created it."""
        if self._own_executor:
            self._executor.shutdown(wait=wait)

    def _run(self, entry: _PendingEntry, producer: Callable[[], Any]) -> None:
        # Failures go to the shared outcome, the way a worker settles its future.
        try:
            value = producer()
        except BaseException as exc:
            self._release(entry, failed=True)
            logger.warning(
                "coalescer.failed",
                extra={
                    "coalescer": self._name,
                    "coalescing_key": str(entry.key)[:64],
                    "waiters": entry.waiters,
                    "error_type": type(exc).__name__,
                },
            )
            entry.outcome.set_exception(exc)
            return

        self._release(entry, failed=False)
        logger.debug(
            "coalescer.settled",
            extra={
                "coalescer": self._name,
                "coalescing_key": str(entry.key)[:64],
                "waiters": entry.waiters,
                "duration_ms": round((time.perf_counter() - entry.started_at) * 1000, 2),
            },
        )
        entry.outcome.set_result(value)

    def _on_work_done(self, entry: _PendingEntry, work: Future[Any]) -> None:
        # Only a cancelled work item skips _run; every other path released already.
        if not work.cancelled():
            return
        self._release(entry, failed=True)
        logger.warning(
            "coalescer.cancelled",
            extra={
                "coalescer": self._name,
                "coalescing_key": str(entry.key)[:64],
                "waiters": entry.waiters,
            },
        )
        entry.outcome.cancel()

    def _release(self, entry: _PendingEntry, *, failed: bool) -> None:
        with self._lock:
            if failed:
                self._failed += 1
            else:
                self._succeeded += 1
            # Identity check: after clear() the key may belong to a newer entry.
            if self._entries.get(entry.key) is entry:
                del self._entries[entry.key]
