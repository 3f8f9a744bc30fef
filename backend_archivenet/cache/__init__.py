"""
Cache package — the Redis connection, its health probe, and the tiered
contract-state cache (Redis -> SQLite -> source).
"""

from backend_archivenet.cache.connection import (
    CacheConnectionManager,
    CacheConnectionState,
    CacheHandle,
    CacheStatus,
    DisconnectLogGate,
    GateState,
)
from backend_archivenet.cache.health import HealthProbeCache, HealthSnapshot
from backend_archivenet.cache.state_store import StateCacheFactory, TieredStateCache

__all__ = [
    "CacheConnectionManager",
    "CacheConnectionState",
    "CacheHandle",
    "CacheStatus",
    "DisconnectLogGate",
    "GateState",
    "HealthProbeCache",
    "HealthSnapshot",
    "StateCacheFactory",
    "TieredStateCache",
]
