"""
Storage backends for intentpay.

Selected with INTENTPAY_STORAGE_BACKEND ("memory" or "redis"); the Redis
backend reads INTENTPAY_REDIS_URL.
"""

from __future__ import annotations

import os
from typing import Any

from intentpay.storage.base import (
    StorageBackend,
    get_storage_backend,
    list_storage_backends,
    register_storage_backend,
)
from intentpay.storage.memory import InMemoryStorage
from intentpay.storage.redis import RedisStorage


def get_storage(backend_name: str | None = None, **kwargs: Any) -> StorageBackend:
    """
    Build a storage backend by name.

    Args:
        backend_name: Registered name (default: INTENTPAY_STORAGE_BACKEND, then "memory")
        **kwargs: Backend constructor arguments, e.g. ``redis_url``

    Raises:
        ValueError: If no backend is registered under the name
    """
    name = backend_name or os.environ.get("INTENTPAY_STORAGE_BACKEND", "memory")
    backend_class = get_storage_backend(name)
    if backend_class is None:
        raise ValueError(
            f"Unknown storage backend: '{name}'. Available: {', '.join(list_storage_backends())}"
        )
    return backend_class(**kwargs)


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "get_storage",
    "get_storage_backend",
    "list_storage_backends",
    "register_storage_backend",
]
