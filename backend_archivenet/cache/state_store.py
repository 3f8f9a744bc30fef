"""
Tiered contract-state cache.

Cache hierarchy, fastest first:
1. Redis (optional) - shared across API replicas
2. SQLite file - local persistent fallback
3. Source - the caller's compute function (ledger read / state evaluation)

Each contract id is its own namespace. A hit in a lower tier back-fills the
tiers above it; a tier that errors is skipped for that call.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from redis.asyncio import Redis

from backend_archivenet.archivenet_logging import get_logger

logger = get_logger(__name__)

STATE_KEY_PREFIX = "archivenet:state"


class StateStore(Protocol):
    name: str

    async def get(self, key: str) -> str | None:
        """Return the serialized value or None on a miss."""

    async def put(self, key: str, value: str) -> None:
        """Store one serialized value."""

    async def delete(self, key: str) -> None:
        """Drop one key; missing keys are ignored."""


class RedisStateStore:
    name = "redis"

    def __init__(self, client: Redis, namespace: str) -> None:
        self._client = client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{STATE_KEY_PREFIX}:{self._namespace}:{key}"

    async def get(self, key: str) -> str | None:
        value = await self._client.get(self._key(key))
        if value is None:
            return None
        return str(value)

    async def put(self, key: str, value: str) -> None:
        await self._client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))


class SqliteStateStore:
    """SQLite-backed tier. Blocking sqlite3 calls run in a worker thread."""

    name = "sqlite"

    def __init__(self, path: str | Path, namespace: str) -> None:
        self._path = Path(path)
        self._namespace = namespace
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path)
        if not self._initialized:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS contract_state (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
                """
            )
            conn.commit()
            self._initialized = True
        return conn

    def _get_sync(self, key: str) -> str | None:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM contract_state WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            ).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def _put_sync(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO contract_state (namespace, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET
                    value = excluded.value, updated_at = excluded.updated_at
                """,
                (self._namespace, key, value, int(time.time())),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "DELETE FROM contract_state WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            )
            conn.commit()
        finally:
            conn.close()

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._put_sync, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)


class TieredStateCache:
    """Read-through cache over an ordered list of tiers for one contract."""

    def __init__(self, contract_id: str, tiers: list[StateStore]) -> None:
        self.contract_id = contract_id
        self.tiers = list(tiers)

    @property
    def tier_names(self) -> list[str]:
        return [t.name for t in self.tiers]

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        missed: list[StateStore] = []
        for tier in self.tiers:
            try:
                raw = await tier.get(key)
            except Exception as e:
                logger.warning(
                    "state_cache_tier_read_failed",
                    tier=tier.name,
                    contract_id=self.contract_id,
                    error=str(e),
                )
                continue
            if raw is not None:
                await self._backfill(missed, key, raw)
                return json.loads(raw)
            missed.append(tier)

        value = await compute()
        await self._backfill(missed, key, json.dumps(value))
        return value

    async def invalidate(self, key: str) -> None:
        for tier in self.tiers:
            try:
                await tier.delete(key)
            except Exception as e:
                logger.warning(
                    "state_cache_tier_delete_failed",
                    tier=tier.name,
                    contract_id=self.contract_id,
                    error=str(e),
                )

    async def _backfill(self, tiers: list[StateStore], key: str, raw: str) -> None:
        for tier in tiers:
            try:
                await tier.put(key, raw)
            except Exception as e:
                logger.warning(
                    "state_cache_tier_write_failed",
                    tier=tier.name,
                    contract_id=self.contract_id,
                    error=str(e),
                )


class StateCacheFactory:
    """Builds one TieredStateCache per contract id; Redis tier only when attached."""

    def __init__(self, sqlite_path: str | Path, redis: Redis | None = None) -> None:
        self._sqlite_path = Path(sqlite_path)
        self._redis = redis

    @property
    def uses_redis(self) -> bool:
        return self._redis is not None

    def for_contract(self, contract_id: str) -> TieredStateCache:
        tiers: list[StateStore] = []
        if self._redis is not None:
            tiers.append(RedisStateStore(self._redis, contract_id))
        tiers.append(SqliteStateStore(self._sqlite_path, contract_id))
        return TieredStateCache(contract_id, tiers)
