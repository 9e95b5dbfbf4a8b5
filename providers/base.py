from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx


class StatusFetcher(ABC):
    """Abstract base for status API adapters.

    A fetcher performs exactly one request per call and never retries;
    retrying is the poller's job so that cache short-circuiting and retry
    counting can be tested independently of the transport.

    A shared ``httpx.AsyncClient`` is injected at construction time so
    that all polls reuse one connection pool.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable API name (e.g. 'mcsrvstat.us')."""

    @abstractmethod
    async def fetch(self, host: str, port: int, timeout: float) -> dict[str, Any]:
        """Return the raw status payload for ``host:port``.

        Implementations raise ``core.errors.FetchError`` with reason
        ``timeout``, ``http_error`` or ``network_error`` on failure.
        """
