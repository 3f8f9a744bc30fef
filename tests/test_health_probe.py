"""
Tests for the memoised Redis health probe.

The clock is injected so TTL behaviour is exercised without sleeping; probe
clients come from the FakeRedis factory in conftest.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_archivenet.cache.health import (
    STATUS_DISCONNECTED,
    STATUS_NOT_CONFIGURED,
    STATUS_READY,
    HealthProbeCache,
)

REDIS_URL = "redis://localhost:6379/0"


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_not_configured_performs_no_io():
    """No URL: snapshot synthesised without touching the transport."""

    def forbidden_factory(url, timeout):
        pytest.fail("probe client must not be created when REDIS_URL is unset")

    cache = HealthProbeCache(None, client_factory=forbidden_factory)
    snapshot = asyncio.run(cache.check_connectivity())
    assert snapshot.configured is False
    assert snapshot.connected is False
    assert snapshot.status == STATUS_NOT_CONFIGURED


def test_healthy_probe_reports_connected_and_closes_client(fake_redis_factory):
    cache = HealthProbeCache(REDIS_URL, client_factory=fake_redis_factory)
    snapshot = asyncio.run(cache.check_connectivity())
    assert snapshot.configured is True
    assert snapshot.connected is True
    assert snapshot.status == STATUS_READY
    assert fake_redis_factory.created[0].closed is True


def test_snapshot_memoised_for_ttl(fake_redis_factory):
    """Two calls within 30s: one probe. A call after 31s: a new probe."""
    clock = FakeClock()
    cache = HealthProbeCache(REDIS_URL, client_factory=fake_redis_factory, clock=clock)

    first = asyncio.run(cache.check_connectivity())
    clock.now += 10
    second = asyncio.run(cache.check_connectivity())
    assert second is first
    assert len(fake_redis_factory.created) == 1

    clock.now += 21
    third = asyncio.run(cache.check_connectivity())
    assert third is not first
    assert len(fake_redis_factory.created) == 2


def test_not_configured_snapshot_also_memoised():
    clock = FakeClock()
    cache = HealthProbeCache(None, clock=clock)
    first = asyncio.run(cache.check_connectivity())
    clock.now += 29
    assert asyncio.run(cache.check_connectivity()) is first
    assert cache.cached() is first
    clock.now += 2
    assert cache.cached() is None


def test_probe_timeout_reports_disconnected(fake_redis_factory):
    fake_redis_factory.ping_delay = 5.0
    cache = HealthProbeCache(
        REDIS_URL, client_factory=fake_redis_factory, probe_timeout_sec=0.05
    )
    snapshot = asyncio.run(cache.check_connectivity())
    assert snapshot.configured is True
    assert snapshot.connected is False
    assert snapshot.status == STATUS_DISCONNECTED
    assert "timeout" in snapshot.details
    assert fake_redis_factory.created[0].closed is True


def test_probe_error_reports_disconnected(fake_redis_factory):
    fake_redis_factory.ping_error = ConnectionError("Connection refused")
    cache = HealthProbeCache(REDIS_URL, client_factory=fake_redis_factory)
    snapshot = asyncio.run(cache.check_connectivity())
    assert snapshot.connected is False
    assert snapshot.details == "Redis connection failed"
    assert fake_redis_factory.created[0].closed is True


def test_concurrent_checks_release_every_probe_client(fake_redis_factory):
    """Racing callers may each probe, but no probe client is left open."""
    fake_redis_factory.ping_delay = 0.02
    cache = HealthProbeCache(REDIS_URL, client_factory=fake_redis_factory)

    async def run():
        return await asyncio.gather(*(cache.check_connectivity() for _ in range(5)))

    snapshots = asyncio.run(run())
    assert all(s.connected for s in snapshots)
    assert fake_redis_factory.created
    assert all(c.closed for c in fake_redis_factory.created)
    assert cache.cached() is not None


def test_slow_earlier_check_does_not_replace_newer_snapshot(fake_redis_factory):
    clock = FakeClock()
    cache = HealthProbeCache(REDIS_URL, client_factory=fake_redis_factory, clock=clock)

    async def run():
        fake_redis_factory.ping_error = ConnectionError("Connection refused")
        fake_redis_factory.ping_delay = 0.05
        slow = asyncio.create_task(cache.check_connectivity())
        await asyncio.sleep(0)

        clock.now += 1
        fake_redis_factory.ping_error = None
        fake_redis_factory.ping_delay = 0.0
        fast = await cache.check_connectivity()
        return await slow, fast

    slow, fast = asyncio.run(run())
    assert len(fake_redis_factory.created) == 2
    assert slow.connected is False
    assert fast.connected is True
    assert cache.cached() is fast


def test_snapshot_to_dict():
    cache = HealthProbeCache(None, wall_clock=lambda: 1700000000.0)
    snapshot = asyncio.run(cache.check_connectivity())
    assert snapshot.to_dict() == {
        "configured": False,
        "connected": False,
        "status": "not_configured",
        "details": "REDIS_URL environment variable not set",
        "captured_at": 1700000000.0,
    }
