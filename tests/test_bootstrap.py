"""
End-to-end bootstrap tests: initialize_ledger with injected probe and fake Redis.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace

import pytest
from solders.keypair import Keypair

from backend_archivenet.cache.connection import CacheConnectionManager, CacheStatus
from backend_archivenet.config.settings import BootstrapSettings
from backend_archivenet.core.exceptions import (
    FatalConfigurationError,
    IdentityMismatchError,
)
from backend_archivenet.ledger.bootstrap import initialize_ledger
from backend_archivenet.ledger.network import DEPLOY_CAPABILITY, ExecutionMode

REDIS_URL = "redis://localhost:6379/0"


async def validator_down(port, timeout):
    return False


async def validator_up(port, timeout):
    return True


def _bootstrap(settings, probe=validator_down, **kwargs):
    async def run():
        runtime = await initialize_ledger(settings, local_probe=probe, **kwargs)
        await runtime.close()
        return runtime

    return asyncio.run(run())


def test_dev_bootstrap_provisions_then_reuses_identity(dev_settings):
    first = _bootstrap(dev_settings)
    assert first.get_identity().generated is True
    assert dev_settings.dev_keypair_path.exists()

    second = _bootstrap(dev_settings)
    assert second.get_identity().generated is False
    assert second.get_identity().address == first.get_identity().address


def test_dev_bootstrap_without_validator_uses_remote_fallback(dev_settings):
    runtime = _bootstrap(dev_settings)
    target = runtime.get_execution_target()
    assert target.mode is ExecutionMode.REMOTE_FALLBACK
    assert target.supports(DEPLOY_CAPABILITY)
    assert runtime.get_cache_handle() is None
    assert target.uses_distributed_cache is False


def test_dev_bootstrap_with_validator_uses_localnet(dev_settings):
    runtime = _bootstrap(dev_settings, probe=validator_up)
    assert runtime.get_execution_target().mode is ExecutionMode.LOCAL_PREFERRED


def test_bootstrap_attaches_redis_when_ready(dev_settings, fake_redis_factory):
    settings = replace(dev_settings, redis_url=REDIS_URL)
    manager = CacheConnectionManager(settings, client_factory=fake_redis_factory)

    async def run():
        runtime = await initialize_ledger(
            settings,
            cache_manager=manager,
            local_probe=validator_down,
            health_client_factory=fake_redis_factory,
        )
        assert runtime.get_cache_handle() is fake_redis_factory.created[0]
        assert runtime.get_execution_target().uses_distributed_cache is True
        assert runtime.state_cache.uses_redis is True
        snapshot = await runtime.check_connectivity()
        await runtime.close()
        return snapshot

    snapshot = asyncio.run(run())
    assert snapshot.connected is True
    # Health probe used its own client, not the long-lived one
    assert len(fake_redis_factory.created) == 2
    assert all(c.closed for c in fake_redis_factory.created)
    assert manager.state.status is CacheStatus.DISCONNECTED


def test_bootstrap_degrades_when_redis_unreachable(dev_settings, fake_redis_factory):
    fake_redis_factory.ping_error = ConnectionError("Connection refused")
    settings = replace(dev_settings, redis_url=REDIS_URL)
    manager = CacheConnectionManager(settings, client_factory=fake_redis_factory)
    runtime = _bootstrap(settings, cache_manager=manager)
    assert runtime.get_cache_handle() is None
    assert runtime.get_execution_target().uses_distributed_cache is False
    assert runtime.state_cache.uses_redis is False


def test_production_bootstrap_missing_variables(tmp_path):
    settings = BootstrapSettings(deployment_mode="production", dev_keypair_path=tmp_path / "dev.json")
    with pytest.raises(FatalConfigurationError):
        _bootstrap(settings)


def test_production_bootstrap_mismatch_returns_no_runtime(tmp_path, fake_redis_factory):
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
    settings = BootstrapSettings(
        deployment_mode="production",
        redis_url=REDIS_URL,
        service_keypair_path=str(path),
        service_wallet_address=str(Keypair().pubkey()),
    )
    manager = CacheConnectionManager(settings, client_factory=fake_redis_factory)
    with pytest.raises(IdentityMismatchError):
        _bootstrap(settings, cache_manager=manager)
    # Redis connection opened before identity validation is released again
    assert fake_redis_factory.created[0].closed is True
    assert manager.handle is None


def test_production_bootstrap_valid_identity(tmp_path):
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
    settings = BootstrapSettings(
        deployment_mode="production",
        service_keypair_path=str(path),
        service_wallet_address=str(keypair.pubkey()),
    )
    runtime = _bootstrap(settings)
    assert runtime.get_execution_target().mode is ExecutionMode.PRODUCTION
    assert runtime.get_identity().address == str(keypair.pubkey())
