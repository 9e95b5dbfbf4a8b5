from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PORT = 25565


@dataclass(frozen=True)
class ServerRef:
    """A listed game server as far as the poller is concerned.

    Fields:
        id:          Store-assigned server identifier.
        host:        Hostname or IP address players connect to.
        port:        Game port; the default port is omitted from API lookups.
        active:      Inactive servers are never selected for sweeps.
        max_players: Slot count last reported by the status API, if any.
    """

    id: int
    host: str
    port: int = DEFAULT_PORT
    active: bool = True
    max_players: int | None = None

    @property
    def address(self) -> str:
        if self.port == DEFAULT_PORT:
            return self.host
        return f"{self.host}:{self.port}"
