from __future__ import annotations

from typing import Literal

FetchFailure = Literal["timeout", "http_error", "network_error"]


class PollerError(Exception):
    """Base class for status-polling failures."""


class NotFoundError(PollerError):
    """The requested server id is unknown to the store."""

    def __init__(self, server_id: int) -> None:
        super().__init__(f"Server {server_id} not found")
        self.server_id = server_id


class FetchError(PollerError):
    """A single status API request failed.

    ``reason`` is one of ``timeout``, ``http_error`` or ``network_error``.
    """

    def __init__(self, reason: FetchFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class RateLimitedError(PollerError):
    """No concurrency slot was free for this poll."""

    def __init__(self, server_id: int, capacity: int) -> None:
        super().__init__(
            f"Too many concurrent polls - rate limited "
            f"(server {server_id}, capacity {capacity})"
        )
        self.server_id = server_id
        self.capacity = capacity
