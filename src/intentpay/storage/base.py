"""
Abstract Storage Backend for intentpay.

The scheduler mirrors recurring payment records and execution history
here, and the transfer executor takes its per-account submission lock
here. A backend is shared by every process that pays from one account.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageBackend(ABC):
    """
    Keyed JSON records grouped in collections, plus expiring locks.

    Records must be JSON-serializable; callers convert ints, datetimes and
    enums with their own ``to_dict``/``from_dict``.
    """

    @abstractmethod
    async def save(self, collection: str, key: str, data: dict[str, Any]) -> None:
        """Insert or replace the record at ``key``."""
        ...

    @abstractmethod
    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        """
        Get one record.

        Returns:
            A copy of the record, or None if not found
        """
        ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool:
        """
        Delete one record.

        Returns:
            True if it existed
        """
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        All records of a collection matching ``filters`` (exact match per field).

        Each returned record carries its key under ``_key``.
        """
        ...

    @abstractmethod
    async def acquire_lock(self, key: str, ttl: int = 30) -> str | None:
        """
        Acquire a lock that expires after ``ttl`` seconds.

        Returns:
            Ownership token if acquired, None if already held
        """
        ...

    @abstractmethod
    async def release_lock(self, key: str, token: str) -> bool:
        """
        Release a lock, only if ``token`` still owns it.

        Returns:
            True if released
        """
        ...

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None


def matches(record: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Exact-match filter shared by the backends."""
    return not filters or all(record.get(k) == v for k, v in filters.items())


_STORAGE_BACKENDS: dict[str, type[StorageBackend]] = {}


def register_storage_backend(name: str, backend_class: type[StorageBackend]) -> None:
    """Register a storage backend by name."""
    _STORAGE_BACKENDS[name] = backend_class


def get_storage_backend(name: str) -> type[StorageBackend] | None:
    return _STORAGE_BACKENDS.get(name)


def list_storage_backends() -> list[str]:
    return list(_STORAGE_BACKENDS)
