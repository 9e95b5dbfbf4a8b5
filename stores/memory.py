from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from models.server import DEFAULT_PORT, ServerRef
from models.snapshot import StatusSnapshot
from stores.base import SnapshotStore

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySnapshotStore(SnapshotStore):
    """Process-local store used by the demo entry point and the tests.

    Snapshots are kept per server in insertion order, which is also
    ``created_at`` order as long as the clock does not run backwards.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._servers: dict[int, ServerRef] = {}
        self._snapshots: dict[int, list[StatusSnapshot]] = {}
        self._by_id: dict[int, StatusSnapshot] = {}
        self._server_ids = itertools.count(1)
        self._snapshot_ids = itertools.count(1)

    def now(self) -> datetime:
        return self._clock()

    async def add_server(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        active: bool = True,
        with_placeholder: bool = True,
    ) -> ServerRef:
        """Register a server, writing its placeholder snapshot by default."""
        server = ServerRef(id=next(self._server_ids), host=host, port=port, active=active)
        self._servers[server.id] = server
        self._snapshots[server.id] = []
        if with_placeholder:
            await self.insert_snapshot(server.id, StatusSnapshot.initial(server.id))
        log.debug("Registered server %d (%s)", server.id, server.address)
        return server

    async def set_active(self, server_id: int, active: bool) -> None:
        self._servers[server_id] = replace(self._servers[server_id], active=active)

    async def remove_server(self, server_id: int) -> None:
        self._servers.pop(server_id, None)

    async def insert_snapshot(self, server_id: int, snapshot: StatusSnapshot) -> int:
        snapshot_id = next(self._snapshot_ids)
        stored = replace(snapshot, server_id=server_id).stamped(snapshot_id, self.now())
        self._snapshots.setdefault(server_id, []).append(stored)
        self._by_id[snapshot_id] = stored
        return snapshot_id

    async def get_snapshot(self, snapshot_id: int) -> StatusSnapshot | None:
        return self._by_id.get(snapshot_id)

    async def latest_snapshot(self, server_id: int) -> StatusSnapshot | None:
        rows = self._snapshots.get(server_id)
        return rows[-1] if rows else None

    async def recent_snapshot(
        self, server_id: int, max_age: float
    ) -> StatusSnapshot | None:
        cutoff = self.now() - timedelta(seconds=max_age)
        for row in reversed(self._snapshots.get(server_id, ())):
            if row.created_at is None or row.created_at <= cutoff:
                break
            if not row.placeholder:
                return row
        return None

    def _last_checked(self, server_id: int) -> datetime | None:
        for row in reversed(self._snapshots.get(server_id, ())):
            if not row.placeholder:
                return row.created_at
        return None

    async def stale_servers(
        self, max_count: int, freshness_window: float
    ) -> list[ServerRef]:
        if max_count <= 0:
            return []
        cutoff = self.now() - timedelta(seconds=freshness_window)

        due: list[tuple[datetime | None, ServerRef]] = []
        for server in self._servers.values():
            if not server.active:
                continue
            checked = self._last_checked(server.id)
            if checked is None or checked <= cutoff:
                due.append((checked, server))

        # never-checked first, then oldest check first; ties by id
        due.sort(key=lambda item: (item[0] is not None, item[0] or cutoff, item[1].id))
        return [server for _, server in due[:max_count]]

    async def find_server(self, server_id: int) -> ServerRef | None:
        return self._servers.get(server_id)

    async def update_max_players(self, server_id: int, max_players: int) -> None:
        server = self._servers.get(server_id)
        if server is not None:
            self._servers[server_id] = replace(server, max_players=max_players)

    async def history(self, server_id: int, since: datetime) -> list[StatusSnapshot]:
        rows = self._snapshots.get(server_id, ())
        return [
            row for row in reversed(rows)
            if row.created_at is not None and row.created_at > since
        ]
