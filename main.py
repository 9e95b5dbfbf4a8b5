"""Server status poller -- demo entry point.

Assembles the polling pipeline around an in-memory snapshot store:

    Scheduler (one sweep per freshness window)
        -> CandidateSelector (stale servers, oldest first)
        -> BatchOrchestrator (fixed-size concurrent batches)
        -> ServerPoller (cache check, fetch with retries, normalize, persist)

A shared httpx.AsyncClient is injected into the status fetcher.
Servers to watch are given as ``host[:port]`` arguments; settings come
from ``STATUS_POLLER_*`` environment variables.
"""
from __future__ import annotations

import asyncio
import logging
import sys

import httpx

from core.config import PollerSettings
from core.service import StatusPollingService
from models.server import DEFAULT_PORT
from providers.mcsrvstat import McSrvStatFetcher
from stores.memory import InMemorySnapshotStore

log = logging.getLogger("main")

USAGE = "usage: main.py HOST[:PORT] [HOST[:PORT] ...]  (IPv6: [ADDR]:PORT)"


def parse_address(value: str) -> tuple[str, int]:
    """Split ``host[:port]``; IPv6 literals need brackets to carry a port.

    Raises ValueError for an empty host or a port outside 1-65535.
    """
    if value.startswith("["):
        host, sep, rest = value[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"Malformed address: {value!r}")
        if not rest:
            return host, DEFAULT_PORT
        if not rest.startswith(":"):
            raise ValueError(f"Malformed address: {value!r}")
        port_text = rest[1:]
    elif value.count(":") > 1:
        # bare IPv6 literal
        return value, DEFAULT_PORT
    else:
        host, sep, port_text = value.partition(":")
        if not host:
            raise ValueError(f"Malformed address: {value!r}")
        if not sep:
            return host, DEFAULT_PORT

    if not port_text.isdigit() or not 1 <= int(port_text) <= 65535:
        raise ValueError(f"Invalid port in {value!r}")
    return host, int(port_text)


async def run(servers: list[tuple[str, int]]) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    settings = PollerSettings.from_env()
    store = InMemorySnapshotStore()
    for host, port in servers:
        await store.add_server(host, port)

    async with httpx.AsyncClient(
        limits=httpx.Limits(max_connections=settings.max_concurrent_polls),
    ) as client:
        fetcher = McSrvStatFetcher(
            client,
            base_url=settings.api_base_url,
            user_agent=settings.user_agent,
        )
        service = StatusPollingService(store, fetcher, settings)

        service.start_scheduler()
        try:
            # runs until cancelled (Ctrl+C)
            await asyncio.Event().wait()
        finally:
            service.stop_scheduler()
            await service.scheduler.wait_idle()


def main(argv: list[str] | None = None) -> None:
    addresses = sys.argv[1:] if argv is None else argv
    if not addresses:
        print(USAGE, file=sys.stderr)
        sys.exit(2)
    try:
        servers = [parse_address(address) for address in addresses]
    except ValueError as exc:
        print(f"error: {exc}\n{USAGE}", file=sys.stderr)
        sys.exit(2)
    try:
        asyncio.run(run(servers))
    except KeyboardInterrupt:
        print("\nShutting down.")


if __name__ == "__main__":
    main()
