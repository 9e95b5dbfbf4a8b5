from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Iterable

from core.batch import BatchOrchestrator
from core.config import PollerSettings
from core.limiter import ConcurrencyLimiter
from core.poller import ServerPoller, Timer
from core.retry import Sleep
from core.scheduler import Scheduler
from core.selector import CandidateSelector
from core.stats import ServerStats, summarize
from models.server import ServerRef
from models.snapshot import BatchSummary, PollResult, StatusSnapshot
from providers.base import StatusFetcher
from stores.base import SnapshotStore

log = logging.getLogger(__name__)


class StatusPollingService:
    """Entry point used by the rest of the application.

    Wires the poller, batch orchestrator, candidate selector and scheduler
    around one injected store and fetcher. Instances share no state, so
    several can run side by side.
    """

    def __init__(
        self,
        store: SnapshotStore,
        fetcher: StatusFetcher,
        settings: PollerSettings | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        timer: Timer = time.monotonic,
    ) -> None:
        self.settings = settings or PollerSettings()
        self._store = store
        self._timer = timer

        self.limiter = ConcurrencyLimiter(self.settings.max_concurrent_polls)
        self.poller = ServerPoller(
            store, fetcher, self.limiter, self.settings, sleep=sleep, timer=timer
        )
        self.batches = BatchOrchestrator(self.poller, sleep=sleep)
        self.selector = CandidateSelector(store)
        self.scheduler = Scheduler(self._scheduled_sweep, self.settings.scheduler_interval)

    async def poll(self, server_id: int, force_refresh: bool = False) -> PollResult:
        """Manual "check now" for one server."""
        return await self.poller.poll(server_id, force_refresh=force_refresh)

    async def poll_many(
        self,
        server_ids: Iterable[int],
        batch_size: int | None = None,
        inter_batch_delay: float | None = None,
        force_refresh: bool = False,
    ) -> list[PollResult]:
        return await self.batches.poll_many(
            server_ids,
            batch_size=self.settings.batch_size if batch_size is None else batch_size,
            inter_batch_delay=(
                self.settings.inter_batch_delay
                if inter_batch_delay is None
                else inter_batch_delay
            ),
            force_refresh=force_refresh,
        )

    async def poll_all_due(
        self,
        max_servers: int | None = None,
        batch_size: int | None = None,
        inter_batch_delay: float | None = None,
        force_refresh: bool = False,
    ) -> BatchSummary:
        """Poll every stale server, up to ``max_servers`` of them.

        Individual poll failures never raise; they are counted in
        ``BatchSummary.failed``.
        """
        started = self._timer()
        servers = await self.stale_servers(max_servers)
        if not servers:
            log.debug("No servers need polling at this time")
            return BatchSummary()

        log.info("Starting status sweep of %d server(s)", len(servers))
        results = await self.poll_many(
            [s.id for s in servers],
            batch_size=batch_size,
            inter_batch_delay=inter_batch_delay,
            force_refresh=force_refresh,
        )
        summary = BatchSummary.from_results(
            results, int((self._timer() - started) * 1000)
        )
        log.info(
            "Status sweep completed: total=%d successful=%d failed=%d duration=%dms",
            summary.attempted,
            summary.successful,
            summary.failed,
            summary.duration_ms,
        )
        return summary

    async def latest_status(self, server_id: int) -> StatusSnapshot | None:
        return await self._store.latest_snapshot(server_id)

    async def stale_servers(self, max_count: int | None = None) -> list[ServerRef]:
        if max_count is None:
            max_count = self.settings.max_servers_per_sweep
        return await self.selector.select(max_count, self.settings.freshness_window)

    async def server_stats(self, server_id: int, days: int = 7) -> ServerStats | None:
        since = self._store.now() - timedelta(days=days)
        snapshots = await self._store.history(server_id, since)
        return summarize(server_id, snapshots, days)

    def start_scheduler(self, interval: float | None = None) -> bool:
        return self.scheduler.start(interval)

    def stop_scheduler(self) -> None:
        self.scheduler.stop()

    @property
    def scheduler_running(self) -> bool:
        return self.scheduler.running

    async def _scheduled_sweep(self) -> BatchSummary:
        return await self.poll_all_due(force_refresh=True)
