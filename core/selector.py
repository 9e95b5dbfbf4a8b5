from __future__ import annotations

import logging

from models.server import ServerRef
from stores.base import SnapshotStore

log = logging.getLogger(__name__)


class CandidateSelector:
    """Picks the servers whose status is due for a refresh."""

    def __init__(self, store: SnapshotStore) -> None:
        self._store = store

    async def select(self, max_count: int, freshness_window: float) -> list[ServerRef]:
        if max_count <= 0:
            return []
        # the store applies the cutoff on its own clock
        servers = await self._store.stale_servers(max_count, freshness_window)
        log.debug(
            "Selected %d server(s) older than %.0fs (cap %d)",
            len(servers), freshness_window, max_count,
        )
        return servers
