"""
Redis connectivity check for health endpoints.

Uses a separate, short-lived probe client per check so that a saturated
long-lived connection cannot distort the signal and a failed probe cannot
disturb the long-lived connection's log gate. Results are memoised for
30 seconds in a single slot to bound the cost of frequent polling.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable

from redis.asyncio import Redis

from backend_archivenet.archivenet_logging import get_logger
from backend_archivenet.config.settings import (
    DEFAULT_HEALTH_CACHE_TTL_SEC,
    DEFAULT_HEALTH_PROBE_TIMEOUT_SEC,
)

logger = get_logger(__name__)

STATUS_NOT_CONFIGURED = "not_configured"
STATUS_READY = "ready"
STATUS_DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class HealthSnapshot:
    configured: bool
    connected: bool
    status: str
    details: str
    captured_at: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def create_probe_client(url: str, timeout_sec: float) -> Redis:
    return Redis.from_url(
        url,
        socket_connect_timeout=timeout_sec,
        socket_timeout=timeout_sec,
        decode_responses=True,
    )


class HealthProbeCache:
    """
    check_connectivity() never raises and performs at most one probe per TTL window.

    Concurrent callers may race to recompute; each recomputation closes its own
    probe client, and the slot keeps the snapshot of the most recently started
    probe. The TTL window is measured from when that probe started.
    """

    def __init__(
        self,
        redis_url: str | None,
        *,
        ttl_sec: float = DEFAULT_HEALTH_CACHE_TTL_SEC,
        probe_timeout_sec: float = DEFAULT_HEALTH_PROBE_TIMEOUT_SEC,
        client_factory: Callable[[str, float], Any] = create_probe_client,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis_url = redis_url
        self._ttl_sec = ttl_sec
        self._probe_timeout_sec = probe_timeout_sec
        self._client_factory = client_factory
        self._clock = clock
        self._wall_clock = wall_clock
        self._slot: tuple[float, HealthSnapshot] | None = None

    def cached(self) -> HealthSnapshot | None:
        """Return the memoised snapshot if still fresh, else None."""
        slot = self._slot
        if slot is None:
            return None
        stored_at, snapshot = slot
        if self._clock() - stored_at < self._ttl_sec:
            return snapshot
        return None

    async def check_connectivity(self) -> HealthSnapshot:
        snapshot = self.cached()
        if snapshot is not None:
            return snapshot

        started_at = self._clock()
        if not self._redis_url:
            snapshot = self._snapshot(
                configured=False,
                connected=False,
                status=STATUS_NOT_CONFIGURED,
                details="REDIS_URL environment variable not set",
            )
        else:
            snapshot = await self._probe(self._redis_url)
        # A slower probe that started earlier never replaces a newer result
        if self._slot is None or self._slot[0] <= started_at:
            self._slot = (started_at, snapshot)
        return snapshot

    async def _probe(self, url: str) -> HealthSnapshot:
        client = None
        try:
            client = self._client_factory(url, self._probe_timeout_sec)
            await asyncio.wait_for(client.ping(), timeout=self._probe_timeout_sec)
        except asyncio.TimeoutError:
            logger.debug("redis_health_probe_timeout", timeout_sec=self._probe_timeout_sec)
            return self._snapshot(
                configured=True,
                connected=False,
                status=STATUS_DISCONNECTED,
                details="Redis connection timeout",
            )
        except Exception as e:
            logger.debug("redis_health_probe_failed", error=str(e))
            return self._snapshot(
                configured=True,
                connected=False,
                status=STATUS_DISCONNECTED,
                details="Redis connection failed",
            )
        finally:
            if client is not None:
                await self._release(client)
        return self._snapshot(
            configured=True,
            connected=True,
            status=STATUS_READY,
            details="Redis connection is healthy",
        )

    async def _release(self, client: Any) -> None:
        try:
            await client.aclose()
        except Exception as e:
            logger.debug("redis_health_probe_close_failed", error=str(e))

    def _snapshot(self, **fields: Any) -> HealthSnapshot:
        return HealthSnapshot(captured_at=self._wall_clock(), **fields)
