"""
Ledger bootstrap: one sequential startup step producing an immutable LedgerRuntime.

Order: Redis connect (absence is fine) -> local validator probe -> cluster
selection -> identity. Only identity/configuration failures propagate
(BootstrapError); everything else degrades with a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from backend_archivenet.archivenet_logging import get_logger, ledger_context
from backend_archivenet.cache.connection import CacheConnectionManager, CacheHandle
from backend_archivenet.cache.health import HealthProbeCache, HealthSnapshot, create_probe_client
from backend_archivenet.cache.state_store import StateCacheFactory
from backend_archivenet.config.settings import BootstrapSettings, get_settings
from backend_archivenet.ledger.identity import Identity, load_identity
from backend_archivenet.ledger.network import (
    ExecutionTarget,
    LocalProbe,
    probe_local_validator,
    resolve_execution_target,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class LedgerRuntime:
    """Fully configured connectivity handle shared read-only by the rest of the process."""

    target: ExecutionTarget
    identity: Identity
    cache: CacheHandle | None
    state_cache: StateCacheFactory
    health: HealthProbeCache
    cache_manager: CacheConnectionManager

    def get_execution_target(self) -> ExecutionTarget:
        return self.target

    def get_identity(self) -> Identity:
        return self.identity

    def get_cache_handle(self) -> CacheHandle | None:
        return self.cache

    async def check_connectivity(self) -> HealthSnapshot:
        return await self.health.check_connectivity()

    async def close(self) -> None:
        await self.cache_manager.close()


def _ledger_context(settings: BootstrapSettings, target: ExecutionTarget):
    return ledger_context(
        environment=settings.deployment_mode,
        cluster=target.cluster,
        mode=target.mode.value,
    )

async def initialize_ledger(
    settings: BootstrapSettings | None = None,
    *,
    cache_manager: CacheConnectionManager | None = None,
    local_probe: LocalProbe = probe_local_validator,
    health_client_factory: Callable = create_probe_client,
) -> LedgerRuntime:
    """
    Build the LedgerRuntime for this process.

    Raises:
        FatalConfigurationError: production identity variables missing.
        FatalIdentityError: keypair unreadable, mismatched, or not provisionable.
    """
    settings = settings or get_settings()
    manager = cache_manager or CacheConnectionManager(settings)

    redis = await manager.connect()
    try:
        target = await resolve_execution_target(
            settings, redis_attached=redis is not None, probe=local_probe
        )
        with _ledger_context(settings, target):
            identity = load_identity(settings, target)
    except BaseException:
        await manager.close()
        raise

    runtime = LedgerRuntime(
        target=target,
        identity=identity,
        cache=redis,
        state_cache=StateCacheFactory(settings.state_cache_path, redis),
        health=HealthProbeCache(
            settings.redis_url,
            ttl_sec=settings.health_cache_ttl_sec,
            probe_timeout_sec=settings.health_probe_timeout_sec,
            client_factory=health_client_factory,
        ),
        cache_manager=manager,
    )
    with _ledger_context(settings, target):
        logger.info(
            "ledger_configured",
            address=identity.address,
            redis=redis is not None,
            message=f"Ledger configured for {settings.deployment_mode} environment",
        )
    return runtime
