from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from models.snapshot import StatusSnapshot


@dataclass(frozen=True)
class ServerStats:
    """Uptime summary over a period of checks.

    Fields:
        total_checks:      Number of real (non-placeholder) checks.
        online_checks:     Checks that found the server online.
        uptime_percentage: ``online_checks / total_checks * 100``.
        avg_players:       Mean online player count over online checks.
        max_players_seen:  Highest slot count reported in the period.
        last_seen_online:  ``created_at`` of the newest online check.
        period_days:       Length of the period.
    """

    server_id: int
    total_checks: int
    online_checks: int
    uptime_percentage: float
    avg_players: float
    max_players_seen: int
    last_seen_online: datetime | None
    period_days: int


def summarize(
    server_id: int, snapshots: Sequence[StatusSnapshot], period_days: int
) -> ServerStats | None:
    """Summarize ``snapshots`` (newest first). None when there are no checks."""
    checks = [s for s in snapshots if not s.placeholder]
    if not checks:
        return None

    online = [s for s in checks if s.online]
    return ServerStats(
        server_id=server_id,
        total_checks=len(checks),
        online_checks=len(online),
        uptime_percentage=len(online) / len(checks) * 100,
        avg_players=(
            sum(s.players.online for s in online) / len(online) if online else 0.0
        ),
        max_players_seen=max((s.players.max or 0) for s in checks),
        last_seen_online=online[0].created_at if online else None,
        period_days=period_days,
    )
