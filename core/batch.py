from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from core.poller import ServerPoller
from core.retry import Sleep
from models.snapshot import PollResult

log = logging.getLogger(__name__)


class BatchOrchestrator:
    """Polls many servers in fixed-size concurrent batches.

    Batch N+1 starts only after every poll of batch N has settled, with a
    pause in between to stay under the status API's rate limits. Results
    keep the order of the input ids.
    """

    def __init__(self, poller: ServerPoller, *, sleep: Sleep = asyncio.sleep) -> None:
        self._poller = poller
        self._sleep = sleep

    async def poll_many(
        self,
        server_ids: Iterable[int],
        batch_size: int,
        inter_batch_delay: float,
        force_refresh: bool = False,
    ) -> list[PollResult]:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        ids = list(server_ids)
        results: list[PollResult] = []

        for start in range(0, len(ids), batch_size):
            batch = ids[start:start + batch_size]
            log.debug(
                "Polling batch %d (%d server(s))", start // batch_size + 1, len(batch)
            )

            outcomes = await asyncio.gather(
                *(self._poller.poll(sid, force_refresh=force_refresh) for sid in batch),
                return_exceptions=True,
            )
            for server_id, outcome in zip(batch, outcomes):
                results.append(self._settle(server_id, outcome))

            if start + batch_size < len(ids) and inter_batch_delay > 0:
                await self._sleep(inter_batch_delay)

        return results

    def _settle(self, server_id: int, outcome: PollResult | BaseException) -> PollResult:
        if isinstance(outcome, PollResult):
            return outcome
        if not isinstance(outcome, Exception):
            raise outcome

        log.warning("Poll of server %d failed: %s", server_id, outcome)
        return PollResult(
            server_id=server_id,
            online=False,
            data=None,
            ping_time_ms=0,
            timestamp=self._poller.now(),
            error=str(outcome),
        )
