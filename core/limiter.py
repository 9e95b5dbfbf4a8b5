from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from core.config import DEFAULT_CONCURRENCY_LIMIT
from core.errors import RateLimitedError

log = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """Fail-fast cap on the number of polls in flight.

    Unlike an ``asyncio.Semaphore`` an acquire never waits: when every slot
    is taken the caller gets ``RateLimitedError`` straight away. Bulk sweeps
    stay under the cap through batching rather than by queueing here.

    Slots are keyed by server id, so one server cannot be polled twice at
    the same time. All bookkeeping happens between awaits on a single event
    loop, which makes each acquire/release atomic.
    """

    def __init__(self, capacity: int = DEFAULT_CONCURRENCY_LIMIT) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._in_flight: set[int] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> frozenset[int]:
        return frozenset(self._in_flight)

    @property
    def available(self) -> int:
        return self._capacity - len(self._in_flight)

    def try_acquire(self, server_id: int) -> None:
        if len(self._in_flight) >= self._capacity or server_id in self._in_flight:
            raise RateLimitedError(server_id, self._capacity)
        self._in_flight.add(server_id)

    def release(self, server_id: int) -> None:
        self._in_flight.discard(server_id)

    @contextmanager
    def slot(self, server_id: int) -> Iterator[None]:
        """Hold a slot for the duration of the block."""
        self.try_acquire(server_id)
        try:
            yield
        finally:
            self.release(server_id)
