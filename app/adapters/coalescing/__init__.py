"""Request coalescing adapters.

A coalescer collapses concurrent calls that share a key into a single
producer invocation. Two implementations share the same contract: an asyncio
one for code running on an event loop, and a thread-safe one for code running
on worker threads.
"""

from app.adapters.coalescing.base import AbstractRequestCoalescer, CoalescerStats
from app.adapters.coalescing.in_memory import InMemoryRequestCoalescer
from app.adapters.coalescing.threaded import ThreadedRequestCoalescer

__all__ = [
    "AbstractRequestCoalescer",
    "CoalescerStats",
    "InMemoryRequestCoalescer",
    "ThreadedRequestCoalescer",
]
