"""Trust boundary between the untyped status API payload and StatusSnapshot.

Upstream payloads are inconsistent between server software and proxies, so
every field is coerced individually and anything unexpected degrades to a
default instead of failing the poll. Fields not in the canonical schema are
dropped.
"""
from __future__ import annotations

import math
import re
from typing import Any, Mapping

from models.snapshot import Motd, Player, Players, StatusSnapshot

# proxy-behind-backend chains, e.g. "Velocity 3.3 -> Paper 1.21"
_CHAIN_RE = re.compile(r"⇒|→|->|=>")
_VERSION_RE = re.compile(r"(?<!\d)\d+\.\d+(?:\.\d+)?(?!\d)")
_LEADING_INT_RE = re.compile(r"^\s*([-+]?\d+)")


def _parse_int(value: Any) -> int | None:
    """Integer from an int, a float or a string starting with digits."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _LEADING_INT_RE.match(value)
        return int(m.group(1)) if m else None
    return None


def clean_version(value: Any) -> str | None:
    """Reduce a decorated version string to a plain dotted version.

    >>> clean_version("Purpur 2.0.3 ⇒ 1.21.8 | 6/820")
    '1.21.8'
    """
    if not isinstance(value, str):
        return None

    version = value
    if _CHAIN_RE.search(version):
        version = _CHAIN_RE.split(version)[-1]
    version = version.split("|", 1)[0].strip()

    m = _VERSION_RE.search(version)
    if m:
        version = m.group(0)
    return version or None


def _normalize_players(raw: Any) -> Players:
    if not isinstance(raw, Mapping):
        return Players()

    online = _parse_int(raw.get("online"))
    players_list = None
    raw_list = raw.get("list")
    if isinstance(raw_list, list):
        players_list = tuple(
            Player(
                name=str(p["name"]),
                uuid=str(p["uuid"]) if p.get("uuid") is not None else None,
            )
            for p in raw_list
            if isinstance(p, Mapping) and p.get("name")
        )

    return Players(
        online=online if online is not None else 0,
        max=_parse_int(raw.get("max")),
        list=players_list,
    )


def _normalize_motd(raw: Any) -> Motd | None:
    if not isinstance(raw, Mapping):
        return None

    def lines(key: str) -> tuple[str, ...]:
        value = raw.get(key)
        if not isinstance(value, list):
            return ()
        return tuple(str(line) for line in value)

    return Motd(raw=lines("raw"), clean=lines("clean"), html=lines("html"))


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def normalize(raw: Any, server_id: int) -> StatusSnapshot:
    """Map a raw status payload to a StatusSnapshot. Never raises."""
    if not isinstance(raw, Mapping):
        return StatusSnapshot(server_id=server_id)

    protocol = raw.get("protocol")
    version_source = protocol.get("name") if isinstance(protocol, Mapping) else None
    if not version_source:
        version_source = raw.get("version")

    return StatusSnapshot(
        server_id=server_id,
        online=bool(raw.get("online")),
        players=_normalize_players(raw.get("players")),
        version=clean_version(version_source),
        motd=_normalize_motd(raw.get("motd")),
        software=_optional_str(raw.get("software")),
        icon=_optional_str(raw.get("icon")),
    )
