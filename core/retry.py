from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from core.errors import FetchError

log = logging.getLogger(__name__)

T = TypeVar("T")

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


def linear_backoff(delay: float) -> Backoff:
    """Wait ``delay * n`` seconds after the n-th failed attempt."""
    return lambda attempt: delay * attempt


async def with_retries(
    fn: Callable[[], Awaitable[T]],
    attempts: int,
    backoff: Backoff,
    *,
    retry_on: tuple[type[BaseException], ...] = (FetchError,),
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Await ``fn()`` up to ``attempts`` times.

    Only exceptions listed in ``retry_on`` trigger another attempt; anything
    else propagates immediately. There is no sleep after the final attempt,
    whose exception is re-raised to the caller.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except retry_on as exc:
            if attempt == attempts:
                raise
            delay = backoff(attempt)
            log.debug(
                "%s failed (attempt %d/%d): %s. Retrying in %.1fs",
                label, attempt, attempts, exc, delay,
            )
            await sleep(delay)

    raise AssertionError("unreachable")
