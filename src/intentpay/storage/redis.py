"""
Redis storage backend.

For deployments where several processes pay from one account, or where
the schedule must survive restarts. Each collection is one Redis hash
(``{prefix}:{collection}``) mapping record keys to JSON; locks are plain
keys under ``{prefix}:locks:``.
"""

from __future__ import annotations

import json
import os
import uuid
from typing import Any

import redis.asyncio as redis

from intentpay.core.logging import get_logger
from intentpay.storage.base import StorageBackend, matches, register_storage_backend

logger = get_logger("storage.redis")

# Delete the lock only while it still holds our token
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisStorage(StorageBackend):
    """Redis-backed storage (``redis.asyncio``)."""

    def __init__(self, redis_url: str | None = None, prefix: str = "intentpay") -> None:
        """
        Args:
            redis_url: Connection URL (default: INTENTPAY_REDIS_URL, then localhost)
            prefix: Namespace for every key this backend writes
        """
        self._redis_url = redis_url or os.environ.get(
            "INTENTPAY_REDIS_URL", "redis://localhost:6379/0"
        )
        self._prefix = prefix
        self._client: redis.Redis | None = None

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _collection_key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}"

    def _lock_key(self, key: str) -> str:
        return f"{self._prefix}:locks:{key}"

    async def save(self, collection: str, key: str, data: dict[str, Any]) -> None:
        await self._get_client().hset(self._collection_key(collection), key, json.dumps(data))

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        raw = await self._get_client().hget(self._collection_key(collection), key)
        return json.loads(raw) if raw is not None else None

    async def delete(self, collection: str, key: str) -> bool:
        removed = await self._get_client().hdel(self._collection_key(collection), key)
        return removed > 0

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        raw = await self._get_client().hgetall(self._collection_key(collection))
        results = []
        for key in sorted(raw):
            record = json.loads(raw[key])
            if matches(record, filters):
                record["_key"] = key
                results.append(record)
        return results

    async def acquire_lock(self, key: str, ttl: int = 30) -> str | None:
        token = uuid.uuid4().hex
        acquired = await self._get_client().set(self._lock_key(key), token, nx=True, ex=ttl)
        return token if acquired else None

    async def release_lock(self, key: str, token: str) -> bool:
        released = await self._get_client().eval(
            _RELEASE_LOCK_SCRIPT, 1, self._lock_key(key), token
        )
        return int(released) > 0

    async def health_check(self) -> bool:
        try:
            await self._get_client().ping()
        except redis.RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False
        return True

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


register_storage_backend("redis", RedisStorage)
