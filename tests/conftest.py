from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from core.config import PollerSettings
from core.errors import FetchError
from core.service import StatusPollingService
from providers.base import StatusFetcher
from stores.memory import InMemorySnapshotStore


class ManualClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self, events: list[tuple[str, Any]] | None = None) -> None:
        self.delays: list[float] = []
        self.events = events if events is not None else []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.events.append(("sleep", delay))
        await asyncio.sleep(0)


def online_payload(players: int = 3, max_players: int = 20, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "online": True,
        "players": {"online": players, "max": max_players},
        "protocol": {"version": 767, "name": "Paper 1.21.1"},
        "motd": {"raw": ["§aHello"], "clean": ["Hello"], "html": ["<span>Hello</span>"]},
        "software": "Paper",
    }
    payload.update(extra)
    return payload


class FakeFetcher(StatusFetcher):
    """Scripted fetcher.

    ``scripts`` maps a host to a list of outcomes consumed one per call; an
    outcome is either a payload dict or an exception to raise. Hosts in
    ``failing`` always time out. Everything else gets ``default``.
    """

    def __init__(
        self,
        default: dict[str, Any] | None = None,
        delay: float = 0.0,
        events: list[tuple[str, Any]] | None = None,
    ) -> None:
        super().__init__(client=None)  # type: ignore[arg-type]
        self.default = default if default is not None else online_payload()
        self.delay = delay
        self.scripts: dict[str, list[Any]] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, int]] = []
        self.events = events if events is not None else []
        self.active = 0
        self.max_active = 0

    @property
    def name(self) -> str:
        return "fake"

    async def fetch(self, host: str, port: int, timeout: float) -> dict[str, Any]:
        self.calls.append((host, port))
        self.events.append(("fetch", host))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if host in self.failing:
                raise FetchError("timeout", f"API request timeout after {timeout:g}s")
            script = self.scripts.get(host)
            if script:
                outcome = script.pop(0)
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
            return self.default
        finally:
            self.active -= 1

    def calls_for(self, host: str) -> int:
        return sum(1 for h, _ in self.calls if h == host)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> InMemorySnapshotStore:
    return InMemorySnapshotStore(clock=clock)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings() -> PollerSettings:
    return PollerSettings()


@pytest.fixture
def service(
    store: InMemorySnapshotStore,
    fetcher: FakeFetcher,
    settings: PollerSettings,
    sleep: RecordingSleep,
) -> StatusPollingService:
    return StatusPollingService(store, fetcher, settings, sleep=sleep)
