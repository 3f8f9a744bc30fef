"""
Pytest fixtures for ArchiveNET bootstrap tests.

Settings point keypair and state-cache files at tmp_path. Redis is replaced by
an in-memory FakeRedis; no test needs a Redis server or a Solana validator.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_archivenet.config.settings import BootstrapSettings


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (ping/get/set/delete/aclose)."""

    def __init__(self, *, ping_error: Exception | None = None, ping_delay: float = 0.0) -> None:
        self.ping_error = ping_error
        self.ping_delay = ping_delay
        self.ping_calls = 0
        self.closed = False
        self.store: dict[str, str] = {}
        self.fail_reads = False

    async def ping(self) -> bool:
        self.ping_calls += 1
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        if self.ping_error is not None:
            raise self.ping_error
        return True

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise ConnectionError("redis read failed")
        return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        self.store[key] = value

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis_factory():
    """
    Factory usable as a client_factory; records every client it creates.
    Configure behaviour via factory.ping_error / factory.ping_delay before use.
    """

    class _Factory:
        def __init__(self) -> None:
            self.created: list[FakeRedis] = []
            self.ping_error: Exception | None = None
            self.ping_delay = 0.0

        def __call__(self, url, *args) -> FakeRedis:
            client = FakeRedis(ping_error=self.ping_error, ping_delay=self.ping_delay)
            self.created.append(client)
            return client

    return _Factory()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def dev_settings(tmp_path) -> BootstrapSettings:
    """Development settings without Redis; files under tmp_path."""
    return BootstrapSettings(
        deployment_mode="development",
        dev_keypair_path=tmp_path / "dev-wallet.json",
        state_cache_path=tmp_path / "cache" / "ledger-state.db",
        local_probe_timeout_sec=0.2,
    )


@pytest.fixture(autouse=True)
def reset_localnet_hint():
    """The localnet Redis hint is once per process; reset it between tests."""
    import backend_archivenet.ledger.network as network

    network._redis_hint_emitted = False
    yield
    network._redis_hint_emitted = False
