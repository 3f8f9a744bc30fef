"""
Long-lived Redis connection for the contract-state cache.

- connect() never raises: any failure degrades to None (run without Redis).
- Bounded client: connect timeout, per-command timeout, small retry count.
- DisconnectLogGate suppresses log storms on a flapping link: one warning per
  disconnection episode, reset on the next successful round-trip.
- redis-py emits no ready/error events, so a watchdog task pings the server
  and feeds the results into the gate.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff

from backend_archivenet.archivenet_logging import get_logger
from backend_archivenet.config.settings import BootstrapSettings

logger = get_logger(__name__)

CacheHandle = Redis


class CacheStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"


class GateState(str, Enum):
    QUIET = "quiet"
    WARNED = "warned"


@dataclass
class CacheConnectionState:
    """Mutated only by the manager's ready/error callbacks."""

    status: CacheStatus = CacheStatus.DISCONNECTED
    last_error_logged_at: float | None = None


class DisconnectLogGate:
    """
    Two-state log-storm suppressor.

    QUIET --error--> WARNED (logs one warning)
    WARNED --error--> WARNED (silent)
    any --ready--> QUIET
    """

    def __init__(
        self,
        state: CacheConnectionState | None = None,
        *,
        log: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state or CacheConnectionState()
        self._log = log or logger
        self._clock = clock
        self._gate = GateState.QUIET

    @property
    def gate_state(self) -> GateState:
        return self._gate

    def on_ready(self) -> None:
        if self.state.status is not CacheStatus.READY:
            self._log.info("redis_ready", message="Redis connected successfully for caching")
        self.state.status = CacheStatus.READY
        self._gate = GateState.QUIET

    def on_error(self, error: BaseException | str | None = None) -> bool:
        """Record an error; return True when this call emitted the warning."""
        self.state.status = CacheStatus.DEGRADED
        if self._gate is GateState.WARNED:
            return False
        self._gate = GateState.WARNED
        self.state.last_error_logged_at = self._clock()
        self._log.warning(
            "redis_connection_lost",
            error=str(error) if error is not None else None,
        )
        return True


def create_redis_client(url: str, settings: BootstrapSettings) -> Redis:
    """Construct the long-lived client with explicit timeouts and bounded retries."""
    return Redis.from_url(
        url,
        socket_connect_timeout=settings.redis_connect_timeout_sec,
        socket_timeout=settings.redis_command_timeout_sec,
        retry=Retry(ExponentialBackoff(), settings.redis_max_retries),
        retry_on_timeout=True,
        decode_responses=True,
        encoding="utf-8",
    )


class CacheConnectionManager:
    """
    Owns the single long-lived Redis connection of the process.

    Consumers only read `handle`; nobody else may construct a second
    long-lived client.
    """

    def __init__(
        self,
        settings: BootstrapSettings,
        *,
        client_factory: Callable[[str, BootstrapSettings], Redis] = create_redis_client,
        gate: DisconnectLogGate | None = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory
        self._gate = gate or DisconnectLogGate()
        self._client: Redis | None = None
        self._watch_task: asyncio.Task | None = None

    @property
    def state(self) -> CacheConnectionState:
        return self._gate.state

    @property
    def gate(self) -> DisconnectLogGate:
        return self._gate

    @property
    def handle(self) -> Redis | None:
        return self._client

    async def connect(self) -> Redis | None:
        """Connect and ping once. Returns the handle, or None to run without Redis."""
        url = self._settings.redis_url
        if not url:
            logger.info("redis_not_configured", message="No REDIS_URL provided, proceeding without Redis cache")
            return None
        if self._client is not None:
            return self._client

        logger.info("redis_connecting", redis_url=url)
        self.state.status = CacheStatus.CONNECTING
        client: Redis | None = None
        try:
            client = self._client_factory(url, self._settings)
            await asyncio.wait_for(
                client.ping(), timeout=self._settings.redis_connect_timeout_sec
            )
        except Exception as e:
            self.state.status = CacheStatus.DEGRADED
            logger.warning(
                "redis_initial_connection_failed",
                error=str(e) or type(e).__name__,
                message="proceeding without Redis cache",
            )
            if client is not None:
                await _close_client(client)
            return None

        self._gate.on_ready()
        logger.info("redis_ping_ok", redis_url=url)
        self._client = client
        self._watch_task = asyncio.create_task(self._watch(client), name="redis-watchdog")
        return client

    async def _watch(self, client: Redis) -> None:
        """Periodic liveness round-trip; feeds ready/error into the log gate."""
        interval = self._settings.redis_watch_interval_sec
        while True:
            await asyncio.sleep(interval)
            try:
                await asyncio.wait_for(
                    client.ping(), timeout=self._settings.redis_command_timeout_sec
                )
            except Exception as e:
                self._gate.on_error(e)
                continue
            self._gate.on_ready()

    async def close(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None
        if self._client is not None:
            await _close_client(self._client)
            self._client = None
        self.state.status = CacheStatus.DISCONNECTED


async def _close_client(client: Redis) -> None:
    try:
        await client.aclose()
    except Exception as e:
        logger.debug("redis_close_failed", error=str(e))
