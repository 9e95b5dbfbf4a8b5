"""Tests for the single-server poll path."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeFetcher, ManualClock, RecordingSleep, online_payload
from core.config import PollerSettings
from core.errors import FetchError, NotFoundError, RateLimitedError
from core.service import StatusPollingService
from stores.memory import InMemorySnapshotStore


class TestFreshServer:
    @pytest.mark.asyncio
    async def test_first_poll_fetches_and_persists(self, service, store, fetcher) -> None:
        server = await store.add_server("play.example.net")

        result = await service.poll(server.id)

        assert fetcher.calls == [("play.example.net", 25565)]
        assert result.online is True
        assert result.ok
        assert result.cached is False
        assert result.data is not None
        assert result.data.players.online == 3
        assert result.data.version == "1.21.1"
        assert result.data.id is not None
        assert result.data.created_at == store.now()

        latest = await store.latest_snapshot(server.id)
        assert latest == result.data
        assert latest.placeholder is False

    @pytest.mark.asyncio
    async def test_offline_payload_is_a_successful_check(self, service, store, fetcher) -> None:
        fetcher.default = {"online": False}
        server = await store.add_server("down.example.net")

        result = await service.poll(server.id)

        assert result.online is False
        assert result.error is None
        assert result.data.online is False

    @pytest.mark.asyncio
    async def test_placeholder_is_not_a_cache_hit(self, service, store, fetcher) -> None:
        server = await store.add_server("new.example.net")
        assert (await store.latest_snapshot(server.id)).placeholder is True

        await service.poll(server.id)

        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_custom_port_is_passed_to_fetcher(self, service, store, fetcher) -> None:
        server = await store.add_server("mc.example.org", 25570)
        await service.poll(server.id)
        assert fetcher.calls == [("mc.example.org", 25570)]


class TestCache:
    @pytest.mark.asyncio
    async def test_second_poll_within_window_is_cached(self, service, store, fetcher, clock) -> None:
        server = await store.add_server("play.example.net")

        first = await service.poll(server.id)
        clock.advance(60)
        second = await service.poll(server.id)

        assert len(fetcher.calls) == 1
        assert second.cached is True
        assert second.data == first.data
        assert second.timestamp == first.data.created_at

    @pytest.mark.asyncio
    async def test_poll_after_window_fetches_again(self, service, store, fetcher, clock) -> None:
        server = await store.add_server("play.example.net")

        await service.poll(server.id)
        clock.advance(service.settings.freshness_window + 1)
        result = await service.poll(server.id)

        assert len(fetcher.calls) == 2
        assert result.cached is False

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, service, store, fetcher) -> None:
        server = await store.add_server("play.example.net")

        await service.poll(server.id)
        await service.poll(server.id, force_refresh=True)

        assert len(fetcher.calls) == 2


class TestRetries:
    @pytest.mark.asyncio
    async def test_recovers_on_second_attempt(self, service, store, fetcher, sleep) -> None:
        server = await store.add_server("flaky.example.net")
        fetcher.scripts["flaky.example.net"] = [
            FetchError("network_error", "API request failed: connection reset"),
            online_payload(players=9),
        ]

        result = await service.poll(server.id)

        assert result.online is True
        assert result.data.players.online == 9
        assert fetcher.calls_for("flaky.example.net") == 2
        assert sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_exhausted_retries_persist_offline_snapshot(
        self, service, store, fetcher, sleep
    ) -> None:
        server = await store.add_server("dead.example.net")
        fetcher.failing.add("dead.example.net")

        result = await service.poll(server.id)

        assert fetcher.calls_for("dead.example.net") == service.settings.retry_attempts + 1
        assert sleep.delays == [2.0, 4.0]
        assert result.online is False
        assert result.error
        assert "timeout" in result.error

        latest = await store.latest_snapshot(server.id)
        assert latest is not None
        assert latest.online is False
        assert latest.error == result.error
        assert latest.players.online == 0
        assert latest.placeholder is False
        assert result.data == latest

    @pytest.mark.asyncio
    async def test_retry_settings_are_honoured(self, store, fetcher, sleep) -> None:
        settings = PollerSettings(retry_attempts=0, retry_delay=5.0)
        service = StatusPollingService(store, fetcher, settings, sleep=sleep)
        server = await store.add_server("dead.example.net")
        fetcher.failing.add("dead.example.net")

        await service.poll(server.id)

        assert len(fetcher.calls) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_failed_check_is_cached_too(self, service, store, fetcher) -> None:
        server = await store.add_server("dead.example.net")
        fetcher.failing.add("dead.example.net")

        await service.poll(server.id)
        result = await service.poll(server.id)

        assert result.cached is True
        assert result.online is False
        assert fetcher.calls_for("dead.example.net") == 3


class TestErrors:
    @pytest.mark.asyncio
    async def test_unknown_server_raises(self, service, fetcher) -> None:
        with pytest.raises(NotFoundError):
            await service.poll(404)
        assert fetcher.calls == []
        assert service.limiter.available == service.limiter.capacity

    @pytest.mark.asyncio
    async def test_store_failure_releases_slot(self, service, store, monkeypatch) -> None:
        server = await store.add_server("play.example.net")

        async def broken_insert(server_id, snapshot):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(store, "insert_snapshot", broken_insert)

        result = await service.poll(server.id)

        assert result.online is False
        assert "database unavailable" in result.error
        assert service.limiter.available == service.limiter.capacity

    @pytest.mark.asyncio
    async def test_insert_failure_is_recorded_offline(
        self, service, store, fetcher, monkeypatch
    ) -> None:
        server = await store.add_server("play.example.net")
        real_insert = store.insert_snapshot

        async def insert_rejecting_online(server_id, snapshot):
            if snapshot.online:
                raise RuntimeError("database unavailable")
            return await real_insert(server_id, snapshot)

        monkeypatch.setattr(store, "insert_snapshot", insert_rejecting_online)

        result = await service.poll(server.id)

        assert result.online is False
        assert result.error == "Failed to store status: database unavailable"
        latest = await store.latest_snapshot(server.id)
        assert latest.error == result.error
        assert latest.placeholder is False

    @pytest.mark.asyncio
    async def test_cache_lookup_failure_falls_through_to_fetch(
        self, service, store, fetcher, monkeypatch
    ) -> None:
        server = await store.add_server("play.example.net")
        await service.poll(server.id)

        async def broken_recent(server_id, max_age):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(store, "recent_snapshot", broken_recent)

        result = await service.poll(server.id)

        assert result.ok
        assert result.online is True
        assert result.cached is False
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_max_players_update_failure_keeps_success(
        self, service, store, fetcher, monkeypatch
    ) -> None:
        fetcher.default = online_payload(max_players=64)
        server = await store.add_server("play.example.net")

        async def broken_update(server_id, max_players):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(store, "update_max_players", broken_update)

        result = await service.poll(server.id)

        assert result.ok
        assert result.online is True
        assert result.data == await store.latest_snapshot(server.id)
        assert result.data.players.max == 64

    @pytest.mark.asyncio
    async def test_store_failures_do_not_fail_the_sweep(
        self, service, store, monkeypatch
    ) -> None:
        for i in range(3):
            await store.add_server(f"s{i}.example.net")

        async def broken_update(server_id, max_players):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(store, "update_max_players", broken_update)

        summary = await service.poll_all_due()

        assert summary.successful == 3
        assert all(r.data is not None for r in summary.results)

    @pytest.mark.asyncio
    async def test_offline_record_failure_still_returns_result(
        self, service, store, fetcher, monkeypatch
    ) -> None:
        server = await store.add_server("dead.example.net")
        fetcher.failing.add("dead.example.net")

        async def broken_insert(server_id, snapshot):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(store, "insert_snapshot", broken_insert)

        result = await service.poll(server.id)

        assert result.online is False
        assert result.error
        assert result.data.error == result.error

    @pytest.mark.asyncio
    async def test_rate_limited_when_no_slot_free(self, store, sleep) -> None:
        fetcher = FakeFetcher(delay=0.05)
        service = StatusPollingService(
            store, fetcher, PollerSettings(max_concurrent_polls=1), sleep=sleep
        )
        a = await store.add_server("a.example.net")
        b = await store.add_server("b.example.net")

        first = asyncio.create_task(service.poll(a.id))
        await asyncio.sleep(0)
        with pytest.raises(RateLimitedError):
            await service.poll(b.id)
        assert (await first).online is True
        assert service.limiter.available == 1


class TestMaxPlayers:
    @pytest.mark.asyncio
    async def test_reported_slot_count_is_recorded(self, service, store, fetcher) -> None:
        fetcher.default = online_payload(max_players=120)
        server = await store.add_server("play.example.net")

        await service.poll(server.id)

        assert (await store.find_server(server.id)).max_players == 120

    @pytest.mark.asyncio
    async def test_offline_result_does_not_touch_slot_count(
        self, service, store, fetcher
    ) -> None:
        fetcher.default = {"online": False, "players": {"online": 0, "max": 50}}
        server = await store.add_server("play.example.net")

        await service.poll(server.id)

        assert (await store.find_server(server.id)).max_players is None


@pytest.mark.asyncio
async def test_independent_services_do_not_share_limiter(clock: ManualClock) -> None:
    store = InMemorySnapshotStore(clock=clock)
    first = StatusPollingService(store, FakeFetcher(), sleep=RecordingSleep())
    second = StatusPollingService(store, FakeFetcher(), sleep=RecordingSleep())

    first.limiter.try_acquire(1)

    assert second.limiter.available == second.limiter.capacity
