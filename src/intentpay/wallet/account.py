"""
Account interface consumed by the payment engine.

Key management, signing and chain RPC live behind this interface. The
engine only needs balance reads, the native-coin deposit, and a token
transfer to a settlement target.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

from intentpay.core.logging import get_logger


class Account(ABC):
    """
    Abstract signing account.

    Implementations raise whatever their chain client raises; the balance
    guard and the transfer executor translate those errors.
    """

    @property
    @abstractmethod
    def account_id(self) -> str:
        """On-chain account identifier (also used as refund recipient)."""
        ...

    @abstractmethod
    async def query_balance(self, asset_id: str) -> int:
        """
        Balance of ``asset_id`` held for this account in the intents contract.

        Returns:
            Amount in the asset's smallest unit
        """
        ...

    @abstractmethod
    async def query_native_balance(self) -> int:
        """Spendable native coin balance outside the intents contract."""
        ...

    @abstractmethod
    async def deposit_native(self, amount: int) -> str:
        """
        Wrap ``amount`` of the native coin and deposit it into the intents contract.

        Returns:
            Transaction hash
        """
        ...

    @abstractmethod
    async def submit_transfer(self, target: str, asset_id: str, amount: int) -> str:
        """
        Transfer ``amount`` of ``asset_id`` to ``target`` (a quote's deposit address).

        Returns:
            Transaction hash
        """
        ...


@dataclass
class SubmittedTransfer:
    """A transfer recorded by SimulatedAccount."""

    tx_hash: str
    target: str
    asset_id: str
    amount: int


class SimulatedAccount(Account):
    """
    In-memory account for dry runs and tests.

    Balances move exactly as a real account's would: deposits move native
    balance into the wrapped asset, transfers debit the asset and fail when
    the balance is short.
    """

    def __init__(
        self,
        account_id: str,
        native_balance: int = 0,
        balances: dict[str, int] | None = None,
        wrap_asset: str = "nep141:wrap.near",
    ) -> None:
        self._account_id = account_id
        self._native_balance = native_balance
        self._balances: dict[str, int] = dict(balances or {})
        self._wrap_asset = wrap_asset
        self.transfers: list[SubmittedTransfer] = []
        self.deposits: list[int] = []
        self._logger = get_logger("account.simulated")

    @property
    def account_id(self) -> str:
        return self._account_id

    async def query_balance(self, asset_id: str) -> int:
        return self._balances.get(asset_id, 0)

    async def query_native_balance(self) -> int:
        return self._native_balance

    async def deposit_native(self, amount: int) -> str:
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")
        if amount > self._native_balance:
            raise RuntimeError(
                f"Not enough native balance to deposit {amount} (have {self._native_balance})"
            )
        self._native_balance -= amount
        self._balances[self._wrap_asset] = self._balances.get(self._wrap_asset, 0) + amount
        self.deposits.append(amount)
        tx_hash = f"sim-deposit-{uuid.uuid4().hex[:16]}"
        self._logger.debug(f"Deposited {amount} into {self._wrap_asset} ({tx_hash})")
        return tx_hash

    async def submit_transfer(self, target: str, asset_id: str, amount: int) -> str:
        available = self._balances.get(asset_id, 0)
        if amount > available:
            raise RuntimeError(f"Transfer of {amount} {asset_id} exceeds balance {available}")
        self._balances[asset_id] = available - amount
        tx_hash = f"sim-transfer-{uuid.uuid4().hex[:16]}"
        self.transfers.append(
            SubmittedTransfer(tx_hash=tx_hash, target=target, asset_id=asset_id, amount=amount)
        )
        self._logger.debug(f"Transferred {amount} {asset_id} to {target} ({tx_hash})")
        return tx_hash
