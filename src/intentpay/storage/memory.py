"""
In-memory storage backend.

Default for development, tests and single-process deployments. Nothing
survives a restart, so ``RecurringScheduler.restore`` finds nothing.
"""

from __future__ import annotations

import time
import uuid
from copy import deepcopy
from typing import Any

from intentpay.storage.base import StorageBackend, matches, register_storage_backend


class InMemoryStorage(StorageBackend):
    """
    Dict-backed storage.

    No method awaits anything, so each call is atomic with respect to other
    tasks on the same event loop. Locks expire on the monotonic clock.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._locks: dict[str, tuple[str, float]] = {}

    def _records(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def save(self, collection: str, key: str, data: dict[str, Any]) -> None:
        self._records(collection)[key] = deepcopy(data)

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        record = self._records(collection).get(key)
        return deepcopy(record) if record is not None else None

    async def delete(self, collection: str, key: str) -> bool:
        return self._records(collection).pop(key, None) is not None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        # Insertion order, which is creation order for the scheduler's records
        return [
            {**deepcopy(record), "_key": key}
            for key, record in self._records(collection).items()
            if matches(record, filters)
        ]

    async def acquire_lock(self, key: str, ttl: int = 30) -> str | None:
        now = time.monotonic()
        held = self._locks.get(key)
        if held is not None and now < held[1]:
            return None

        token = uuid.uuid4().hex
        self._locks[key] = (token, now + ttl)
        return token

    async def release_lock(self, key: str, token: str) -> bool:
        held = self._locks.get(key)
        if held is None or held[0] != token:
            return False
        del self._locks[key]
        return True


register_storage_backend("memory", InMemoryStorage)
