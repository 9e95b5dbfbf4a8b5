from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from models.server import ServerRef
from models.snapshot import StatusSnapshot


class SnapshotStore(ABC):
    """Append-only persistence of status snapshots.

    The poller only ever inserts snapshots; it never updates or deletes
    them. All age comparisons (``max_age``, ``freshness_window``) are
    evaluated against the store's own clock so that several processes
    sharing one store agree on what "stale" means.
    """

    @abstractmethod
    async def insert_snapshot(self, server_id: int, snapshot: StatusSnapshot) -> int:
        """Persist ``snapshot`` and return its new row id."""

    @abstractmethod
    async def get_snapshot(self, snapshot_id: int) -> StatusSnapshot | None:
        """Return a stored snapshot with ``id`` and ``created_at`` set."""

    @abstractmethod
    async def latest_snapshot(self, server_id: int) -> StatusSnapshot | None:
        """Most recent snapshot of any kind, or None if never checked."""

    @abstractmethod
    async def recent_snapshot(
        self, server_id: int, max_age: float
    ) -> StatusSnapshot | None:
        """Newest non-placeholder snapshot younger than ``max_age`` seconds."""

    @abstractmethod
    async def stale_servers(
        self, max_count: int, freshness_window: float
    ) -> list[ServerRef]:
        """Active servers due for a check, never-checked first, oldest next.

        A server is due when its latest non-placeholder snapshot is at least
        ``freshness_window`` seconds old or it has none.
        """

    @abstractmethod
    async def find_server(self, server_id: int) -> ServerRef | None:
        """Look up a listed server."""

    @abstractmethod
    async def update_max_players(self, server_id: int, max_players: int) -> None:
        """Record the slot count most recently reported for a server."""

    @abstractmethod
    async def history(self, server_id: int, since: datetime) -> list[StatusSnapshot]:
        """Snapshots created after ``since``, newest first."""

    @abstractmethod
    def now(self) -> datetime:
        """The store's clock (timezone-aware UTC)."""
