from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable

from core.config import PollerSettings
from core.errors import FetchError, NotFoundError
from core.limiter import ConcurrencyLimiter
from core.normalizer import normalize
from core.retry import Sleep, linear_backoff, with_retries
from models.server import ServerRef
from models.snapshot import PollResult, StatusSnapshot
from providers.base import StatusFetcher
from stores.base import SnapshotStore

log = logging.getLogger(__name__)

Timer = Callable[[], float]


class ServerPoller:
    """Checks one server: cache lookup, fetch with retries, normalize, persist.

    Every poll that gets past the cache check leaves exactly one new
    snapshot behind, either with real data or as an offline record carrying
    the last fetch error.
    """

    def __init__(
        self,
        store: SnapshotStore,
        fetcher: StatusFetcher,
        limiter: ConcurrencyLimiter,
        settings: PollerSettings,
        *,
        sleep: Sleep = asyncio.sleep,
        timer: Timer = time.monotonic,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._limiter = limiter
        self._settings = settings
        self._sleep = sleep
        self._timer = timer

    def now(self) -> datetime:
        return self._store.now()

    def _elapsed_ms(self, started: float) -> int:
        return int((self._timer() - started) * 1000)

    async def poll(self, server_id: int, force_refresh: bool = False) -> PollResult:
        """Return the current status of ``server_id``.

        Raises ``RateLimitedError`` when no concurrency slot is free and
        ``NotFoundError`` for unknown servers. Fetch and store failures do
        not raise; they come back as an offline result with ``error`` set.
        """
        started = self._timer()

        with self._limiter.slot(server_id):
            server = await self._store.find_server(server_id)
            if server is None:
                raise NotFoundError(server_id)

            if not force_refresh:
                recent = await self._cached_snapshot(server_id)
                if recent is not None:
                    log.debug("Using cached status for server %d", server_id)
                    return PollResult(
                        server_id=server_id,
                        online=recent.online,
                        data=recent,
                        ping_time_ms=self._elapsed_ms(started),
                        timestamp=recent.created_at or self.now(),
                        cached=True,
                    )

            try:
                raw = await with_retries(
                    lambda: self._fetcher.fetch(
                        server.host, server.port, self._settings.request_timeout
                    ),
                    attempts=self._settings.retry_attempts + 1,
                    backoff=linear_backoff(self._settings.retry_delay),
                    sleep=self._sleep,
                    label=f"Status fetch for server {server_id}",
                )
            except FetchError as exc:
                return await self._record_failure(
                    server, str(exc), exc.reason, self._elapsed_ms(started)
                )

            try:
                return await self._record_success(server, raw, self._elapsed_ms(started))
            except Exception as exc:
                log.exception("Failed to store status for server %d", server_id)
                return await self._record_failure(
                    server,
                    f"Failed to store status: {exc}",
                    "store_error",
                    self._elapsed_ms(started),
                )

    async def _cached_snapshot(self, server_id: int) -> StatusSnapshot | None:
        """Recent real snapshot, or None; a failed lookup counts as a miss."""
        try:
            return await self._store.recent_snapshot(
                server_id, self._settings.freshness_window
            )
        except Exception as exc:
            log.warning(
                "Failed to read cached status for server %d: %s", server_id, exc
            )
            return None

    async def _record_success(
        self, server: ServerRef, raw: Any, ping_time_ms: int
    ) -> PollResult:
        snapshot = replace(normalize(raw, server.id), ping_time_ms=ping_time_ms)
        snapshot_id = await self._store.insert_snapshot(server.id, snapshot)
        stored = await self._store.get_snapshot(snapshot_id) or snapshot

        reported_max = snapshot.players.max
        if snapshot.online and reported_max and reported_max != server.max_players:
            try:
                await self._store.update_max_players(server.id, reported_max)
            except Exception as exc:
                # the snapshot is already persisted
                log.warning(
                    "Failed to update max players for server %d: %s", server.id, exc
                )

        log.debug(
            "Polled server %d (%s): online=%s players=%d/%s in %dms",
            server.id,
            server.address,
            snapshot.online,
            snapshot.players.online,
            snapshot.players.max,
            ping_time_ms,
        )
        return PollResult(
            server_id=server.id,
            online=stored.online,
            data=stored,
            ping_time_ms=ping_time_ms,
            timestamp=stored.created_at or self.now(),
        )

    async def _record_failure(
        self, server: ServerRef, message: str, reason: str, ping_time_ms: int
    ) -> PollResult:
        offline = StatusSnapshot.offline(server.id, message, ping_time_ms)

        stored: StatusSnapshot | None = offline
        try:
            snapshot_id = await self._store.insert_snapshot(server.id, offline)
            stored = await self._store.get_snapshot(snapshot_id) or offline
        except Exception:
            log.exception("Failed to store offline status for server %d", server.id)

        log.warning(
            "Status poll of server %d (%s) failed: %s [%s]",
            server.id,
            server.address,
            message,
            reason,
        )
        return PollResult(
            server_id=server.id,
            online=False,
            data=stored,
            ping_time_ms=ping_time_ms,
            timestamp=self.now(),
            error=message,
        )
