from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True)
class Player:
    name: str
    uuid: str | None = None


@dataclass(frozen=True)
class Players:
    """Player counts; ``list`` is only present when the server exposes it."""

    online: int = 0
    max: int | None = None
    list: tuple[Player, ...] | None = None


@dataclass(frozen=True)
class Motd:
    raw: tuple[str, ...] = ()
    clean: tuple[str, ...] = ()
    html: tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusSnapshot:
    """Canonical point-in-time status of one server.

    Snapshots are append-only: the store assigns ``id`` and ``created_at``
    when the record is written and nothing mutates it afterwards.

    Fields:
        server_id:    Identifier of the polled server.
        online:       Whether the server answered the status query.
        players:      Online/max counts and the optional sample list.
        version:      Cleaned dotted game version, e.g. ``1.21.8``.
        motd:         Message of the day in raw, clean and html renditions.
        software:     Server software name reported upstream.
        icon:         Opaque encoded favicon.
        ping_time_ms: Wall time spent on the check.
        error:        Failure message; set only on failed checks.
        placeholder:  True for the synthetic record written at registration.
        id:           Store-assigned row id.
        created_at:   Store-assigned write timestamp (UTC).
    """

    server_id: int
    online: bool = False
    players: Players = field(default_factory=Players)
    version: str | None = None
    motd: Motd | None = None
    software: str | None = None
    icon: str | None = None
    ping_time_ms: int | None = None
    error: str | None = None
    placeholder: bool = False
    id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def offline(
        cls,
        server_id: int,
        error: str,
        ping_time_ms: int | None = None,
    ) -> StatusSnapshot:
        """Synthetic record persisted when every fetch attempt failed."""
        return cls(server_id=server_id, error=error, ping_time_ms=ping_time_ms)

    @classmethod
    def initial(cls, server_id: int) -> StatusSnapshot:
        """Placeholder written when a server is registered."""
        return cls(server_id=server_id, players=Players(0, 0), placeholder=True)

    def stamped(self, snapshot_id: int, created_at: datetime) -> StatusSnapshot:
        return replace(self, id=snapshot_id, created_at=created_at)

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible document as persisted by a store.

        ``id`` and ``created_at`` live in the store's own columns and are not
        part of the document.
        """
        players: dict[str, Any] = {
            "online": self.players.online,
            "max": self.players.max,
        }
        if self.players.list is not None:
            players["list"] = [
                {"name": p.name, "uuid": p.uuid} for p in self.players.list
            ]

        doc: dict[str, Any] = {
            "online": self.online,
            "players": players,
            "version": self.version,
            "motd": None,
            "software": self.software,
            "icon": self.icon,
            "ping_time": self.ping_time_ms,
        }
        if self.motd is not None:
            doc["motd"] = {
                "raw": list(self.motd.raw),
                "clean": list(self.motd.clean),
                "html": list(self.motd.html),
            }
        if self.error is not None:
            doc["error"] = self.error
        if self.placeholder:
            doc["initial"] = True
        return doc

    @classmethod
    def from_document(
        cls,
        server_id: int,
        doc: Mapping[str, Any],
        snapshot_id: int | None = None,
        created_at: datetime | None = None,
    ) -> StatusSnapshot:
        """Rebuild a snapshot from a document written by ``to_document``."""
        raw_players = doc.get("players") or {}
        player_list = raw_players.get("list")
        players = Players(
            online=raw_players.get("online") or 0,
            max=raw_players.get("max"),
            list=(
                tuple(Player(p["name"], p.get("uuid")) for p in player_list)
                if player_list is not None
                else None
            ),
        )

        raw_motd = doc.get("motd")
        motd = None
        if raw_motd is not None:
            motd = Motd(
                raw=tuple(raw_motd.get("raw", ())),
                clean=tuple(raw_motd.get("clean", ())),
                html=tuple(raw_motd.get("html", ())),
            )

        return cls(
            server_id=server_id,
            online=bool(doc.get("online")),
            players=players,
            version=doc.get("version"),
            motd=motd,
            software=doc.get("software"),
            icon=doc.get("icon"),
            ping_time_ms=doc.get("ping_time"),
            error=doc.get("error"),
            placeholder=bool(doc.get("initial")),
            id=snapshot_id,
            created_at=created_at,
        )


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll, returned to the caller and never persisted."""

    server_id: int
    online: bool
    data: StatusSnapshot | None
    ping_time_ms: int
    timestamp: datetime
    error: str | None = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchSummary:
    attempted: int = 0
    successful: int = 0
    failed: int = 0
    duration_ms: int = 0
    results: tuple[PollResult, ...] = ()

    @classmethod
    def from_results(
        cls, results: list[PollResult], duration_ms: int
    ) -> BatchSummary:
        successful = sum(1 for r in results if r.ok)
        return cls(
            attempted=len(results),
            successful=successful,
            failed=len(results) - successful,
            duration_ms=duration_ms,
            results=tuple(results),
        )
