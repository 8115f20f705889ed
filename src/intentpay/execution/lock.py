"""
Account transaction lock.

Serializes chain transactions (deposits and transfers) per account, so
two schedulers or two processes sharing one account never sign against
the same balance at the same time.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from intentpay.core.exceptions import AccountBusyError
from intentpay.core.logging import get_logger

if TYPE_CHECKING:
    from intentpay.storage.base import StorageBackend

logger = get_logger("lock")


class AccountLock:
    """
    Mutex over an account, backed by the storage backend.

    Locks are token-owned: only the holder of the token returned by
    ``acquire`` can release the lock. A crashed holder's lock expires
    after its TTL.
    """

    def __init__(self, storage: StorageBackend) -> None:
        """
        Initialize lock service.

        Args:
            storage: Storage backend (Redis/Memory)
        """
        self._storage = storage

    @staticmethod
    def _key(account_id: str) -> str:
        return f"lock:account:{account_id}"

    async def acquire(
        self,
        account_id: str,
        ttl: int = 60,
        retry_count: int = 3,
        retry_delay: float = 0.5,
    ) -> str | None:
        """
        Acquire the submission lock for an account.

        Args:
            account_id: Account to lock
            ttl: Lock time-to-live in seconds
            retry_count: Number of retries if lock is held
            retry_delay: Delay between retries

        Returns:
            lock_token (str) if successful, None if failed
        """
        for i in range(retry_count + 1):
            token = await self._storage.acquire_lock(self._key(account_id), ttl)
            if token:
                logger.debug(f"Acquired lock for account {account_id} (token: {token[:8]}...)")
                return token

            if i < retry_count:
                logger.debug(f"Account {account_id} locked, retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)

        logger.warning(
            f"Failed to acquire lock for account {account_id} after {retry_count} retries"
        )
        return None

    async def release(self, account_id: str, token: str) -> bool:
        """
        Release a previously acquired lock.

        Returns:
            True if released, False if not found or token mismatch
        """
        result = await self._storage.release_lock(self._key(account_id), token)
        if result:
            logger.debug(f"Released lock for account {account_id}")
        else:
            logger.warning(f"Lock for account {account_id} was not held by token {token[:8]}...")
        return result

    def hold(
        self,
        account_id: str,
        ttl: int = 60,
        retry_count: int = 3,
        retry_delay: float = 0.5,
    ) -> HeldLock:
        """
        Lock the account for the duration of an ``async with`` block.

        Example:
            >>> async with lock.hold("alice.near"):
            ...     await account.deposit_native(amount)

        Raises:
            AccountBusyError: On entry, if the lock could not be acquired
        """
        return HeldLock(self, account_id, ttl, retry_count, retry_delay)


class HeldLock:
    """Async context manager over one acquire/release pair."""

    def __init__(
        self,
        lock: AccountLock,
        account_id: str,
        ttl: int,
        retry_count: int,
        retry_delay: float,
    ) -> None:
        self._lock = lock
        self._account_id = account_id
        self._ttl = ttl
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self.token: str | None = None

    async def __aenter__(self) -> HeldLock:
        self.token = await self._lock.acquire(
            self._account_id,
            ttl=self._ttl,
            retry_count=self._retry_count,
            retry_delay=self._retry_delay,
        )
        if self.token is None:
            raise AccountBusyError(self._account_id)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        token, self.token = self.token, None
        if token is not None:
            await self._lock.release(self._account_id, token)
        return False
